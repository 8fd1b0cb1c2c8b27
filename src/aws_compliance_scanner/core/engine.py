"""
Core scanning engine that orchestrates compliance checks
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List

from .config import ScanConfig
from .errors import ScanCancelledError, ScannerError
from .executor import CancellationToken
from .framework import ComplianceChecker, Rule, Verdict
from .provider import AWSProvider
from .regions import RegionDirectory
from .registry import CheckRegistry

logger = logging.getLogger(__name__)


@dataclass
class RuleError:
    """A rule that could not be evaluated in a partial scan"""
    service: str
    rule_id: str
    error: ScannerError

    def to_dict(self) -> Dict[str, Any]:
        return {"service": self.service, "rule_id": self.rule_id, **self.error.to_dict()}


@dataclass
class PartialScanReport:
    """Outcome of a scan that keeps going when individual rules fail"""
    verdicts: List[Verdict] = field(default_factory=list)
    errors: List[RuleError] = field(default_factory=list)
    rules_evaluated: int = 0
    rules_total: int = 0

    @property
    def complete(self) -> bool:
        return not self.errors

    @property
    def summary(self) -> str:
        return f"{self.rules_evaluated} of {self.rules_total} rules evaluated"


class ScanEngine:
    """Core scanning engine that orchestrates compliance checks

    Regions are resolved once, every selected checker is built with the
    provider and the region set, and rules run in catalogue order. The
    verdicts of all rules are concatenated in that same order.
    """

    def __init__(self, aws_provider: AWSProvider, registry: CheckRegistry = None,
                 config: ScanConfig = None):
        self.aws_provider = aws_provider
        self.registry = registry or CheckRegistry()
        self.config = config or ScanConfig()

        if self.config.rules:
            self.registry.validate_rule_ids(self.config.rules)

    def run_scan(self) -> List[Verdict]:
        """Run the scan, returning every verdict or raising the first error

        Verdicts produced before a failure are discarded.
        """
        all_verdicts = []

        with self._cancellation() as token:
            try:
                checkers = self._build_checkers(token)
                logger.info(f"Running {len(checkers)} checkers...")

                for checker in checkers:
                    for rule in self._selected_rules(checker):
                        all_verdicts.extend(checker.evaluate_rule(rule))
            except ScannerError as e:
                logger.error(f"Scan failed: {e}")
                raise

        logger.info(f"Scan completed. Total verdicts: {len(all_verdicts)}")
        return all_verdicts

    def run_scan_partial(self) -> PartialScanReport:
        """Run the scan, collecting per-rule errors instead of aborting

        Region resolution failures and cancellation still abort the scan.
        """
        report = PartialScanReport()

        with self._cancellation() as token:
            checkers = self._build_checkers(token)

            for checker in checkers:
                for rule in self._selected_rules(checker):
                    report.rules_total += 1
                    self._scope_rule(checker, token)
                    try:
                        report.verdicts.extend(checker.evaluate_rule(rule))
                    except ScanCancelledError:
                        raise
                    except ScannerError as e:
                        logger.error(f"Rule {rule.rule_id} failed: {e}")
                        report.errors.append(RuleError(checker.service, rule.rule_id, e))
                    else:
                        report.rules_evaluated += 1

        logger.info(f"Partial scan completed: {report.summary}")
        return report

    @contextmanager
    def _cancellation(self) -> Iterator[CancellationToken]:
        token = CancellationToken()
        timer = token.start_timer(self.config.timeout) if self.config.timeout else None
        try:
            yield token
        finally:
            if timer is not None:
                timer.cancel()

    def _build_checkers(self, token: CancellationToken) -> List[ComplianceChecker]:
        provider = self.aws_provider.with_cancellation(token)
        regions = RegionDirectory(provider).resolve(self.config.regions)
        checkers = []
        for checker_class in self.registry.get_checkers(self.config.services):
            checker = checker_class(provider, regions, self.config)
            checker.cancel_token = token
            checkers.append(checker)
        return checkers

    def _scope_rule(self, checker: ComplianceChecker, token: CancellationToken):
        """Bind the checker to a per-rule token so a failing rule only stops itself"""
        scope = token.child()
        checker.aws_provider = self.aws_provider.with_cancellation(scope)
        checker.cancel_token = scope

    def _selected_rules(self, checker: ComplianceChecker) -> List[Rule]:
        rules = checker.rules()
        if self.config.rules is None:
            return rules
        return [rule for rule in rules if rule.rule_id in self.config.rules]
