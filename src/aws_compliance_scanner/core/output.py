"""
Output formatting and report generation
"""

import json
import logging
from collections import OrderedDict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

from .. import __version__
from .engine import PartialScanReport
from .framework import Verdict

logger = logging.getLogger(__name__)


class OutputEngine:
    """Handle output formatting and report generation"""

    @staticmethod
    def summarize(verdicts: List[Verdict]) -> Dict[str, Any]:
        """Compliant / non-compliant counts overall, per rule and per resource type"""
        by_rule = OrderedDict()
        by_resource_type = OrderedDict()

        for verdict in verdicts:
            for key, counts in ((verdict.rule, by_rule),
                                (verdict.resource.type, by_resource_type)):
                entry = counts.setdefault(key, {"compliant": 0, "non_compliant": 0})
                entry["compliant" if verdict.compliant else "non_compliant"] += 1

        compliant = sum(1 for v in verdicts if v.compliant)
        return {
            "total": len(verdicts),
            "compliant": compliant,
            "non_compliant": len(verdicts) - compliant,
            "by_rule": by_rule,
            "by_resource_type": by_resource_type,
        }

    @staticmethod
    def format_json(verdicts: List[Verdict], account_id: str,
                    metadata: Dict[str, Any] = None) -> Dict[str, Any]:
        """Format verdicts as JSON report"""

        if metadata is None:
            metadata = {}

        return {
            "metadata": {
                "tool": "aws-compliance-scanner",
                "version": __version__,
                "scan_timestamp": datetime.now(timezone.utc).isoformat(),
                "account_id": account_id,
                **metadata
            },
            "summary": OutputEngine.summarize(verdicts),
            "results": [verdict.to_dict() for verdict in verdicts],
        }

    @staticmethod
    def format_partial_json(report: PartialScanReport, account_id: str,
                            metadata: Dict[str, Any] = None) -> Dict[str, Any]:
        """Format a partial scan, including the rules that failed to evaluate"""
        formatted = OutputEngine.format_json(report.verdicts, account_id, metadata)
        formatted["summary"]["rules_evaluated"] = report.rules_evaluated
        formatted["summary"]["rules_total"] = report.rules_total
        formatted["errors"] = [error.to_dict() for error in report.errors]
        return formatted

    @staticmethod
    def save_report(report: Dict[str, Any], output_file: str):
        """Save JSON report to file"""
        output_path = Path(output_file)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(report, f, indent=2, default=str)

        logger.info(f"Report saved to: {output_path}")
