"""
Registry for the compliance rule catalogue
"""

from typing import Dict, List, Optional, Sequence, Type

from .errors import ConfigurationError
from .framework import ComplianceChecker
from .regions import RegionSet


class CheckRegistry:
    """Registry of domain checkers, kept in catalogue order"""

    def __init__(self):
        self.checkers: Dict[str, Type[ComplianceChecker]] = {}
        self._register_default_checkers()

    def _register_default_checkers(self):
        """Register default checkers in evaluation order"""
        from ..checks.iam import IdentityChecker
        from ..checks.s3 import StorageChecker
        from ..checks.vpc import NetworkChecker
        from ..checks.cloudtrail import AuditTrailChecker

        default_checkers = [
            IdentityChecker,
            StorageChecker,
            NetworkChecker,
            AuditTrailChecker,
        ]

        for checker in default_checkers:
            self.register_checker(checker)

    def register_checker(self, checker: Type[ComplianceChecker]):
        """Register a checker class under its service name"""
        self.checkers[checker.service] = checker

    def get_checker(self, service: str) -> Optional[Type[ComplianceChecker]]:
        """Get a specific checker by service"""
        return self.checkers.get(service)

    def get_checkers(self, services: Optional[Sequence[str]] = None) -> List[Type[ComplianceChecker]]:
        """Checkers for `services` (all if None), always in catalogue order"""
        if services is None:
            return list(self.checkers.values())

        unknown = [s for s in services if s not in self.checkers]
        if unknown:
            raise ConfigurationError(f"Unknown services: {', '.join(unknown)}")
        return [checker for service, checker in self.checkers.items() if service in services]

    def list_rules(self) -> Dict[str, List[Dict[str, str]]]:
        """List the rule catalogue per service"""
        catalogue = {}
        for service, checker in self.checkers.items():
            rules = checker(None, RegionSet()).rules()
            catalogue[service] = [{"rule_id": rule.rule_id, "statement": rule.statement}
                                  for rule in rules]
        return catalogue

    def validate_rule_ids(self, rule_ids: Sequence[str]):
        known = {rule["rule_id"]
                 for rules in self.list_rules().values() for rule in rules}
        unknown = [rule_id for rule_id in rule_ids if rule_id not in known]
        if unknown:
            raise ConfigurationError(f"Unknown rules: {', '.join(unknown)}")
