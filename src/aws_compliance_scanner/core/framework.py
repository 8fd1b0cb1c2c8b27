"""
Core framework classes and interfaces for compliance checks
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, TYPE_CHECKING, TypeVar

from .executor import CancellationToken, map_ordered

if TYPE_CHECKING:
    from .config import ScanConfig
    from .provider import AWSProvider
    from .regions import RegionSet

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class Resource:
    """Resource a verdict is about"""
    type: str  # e.g. aws/iam-user, aws/vpc
    name: str  # ARN, ID or account-unique name


@dataclass(frozen=True)
class Verdict:
    """Compliance outcome of one rule for one resource"""
    resource: Resource
    rule: str
    compliant: bool
    reason: str = ""

    def __post_init__(self):
        if not self.compliant and not self.reason:
            raise ValueError(f"Non-compliant verdict for {self.resource.name} needs a reason")

    def to_dict(self) -> Dict[str, Any]:
        """Convert verdict to dictionary for JSON output"""
        return {
            "resourceType": self.resource.type,
            "resourceName": self.resource.name,
            "rule": self.rule,
            "compliant": self.compliant,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class Rule:
    """A named compliance predicate together with the enumeration it runs over"""
    rule_id: str
    statement: str
    evaluate: Callable[["Rule"], Iterable[Verdict]]

    def verdict(self, resource: Resource, compliant: bool, reason: str = "") -> Verdict:
        """Helper method to create a verdict for this rule"""
        return Verdict(resource=resource, rule=self.statement,
                       compliant=compliant, reason=reason)

    def run(self) -> List[Verdict]:
        return list(self.evaluate(self))


class ComplianceChecker(ABC):
    """Abstract base class for domain checkers

    A checker owns a fixed, ordered list of rules over one resource category.
    It keeps no state between rule invocations.
    """

    service: str = ""
    description: str = ""

    def __init__(self, aws_provider: 'AWSProvider', regions: 'RegionSet',
                 config: Optional['ScanConfig'] = None):
        self.aws_provider = aws_provider
        self.regions = regions
        self.config = config
        self.cancel_token: Optional[CancellationToken] = None
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @abstractmethod
    def rules(self) -> List[Rule]:
        """Return the checker's rules in evaluation order"""
        pass

    def check(self) -> List[Verdict]:
        """Evaluate every rule in order and concatenate their verdicts"""
        verdicts = []
        for rule in self.rules():
            verdicts.extend(self.evaluate_rule(rule))
        return verdicts

    def evaluate_rule(self, rule: Rule) -> List[Verdict]:
        self.logger.debug(f"Evaluating rule {rule.rule_id}")
        verdicts = rule.run()
        failed = sum(1 for v in verdicts if not v.compliant)
        self.logger.info(f"Completed rule {rule.rule_id} "
                         f"({len(verdicts)} verdicts, {failed} non-compliant)")
        return verdicts

    @property
    def max_workers(self) -> int:
        return self.config.max_workers if self.config else 1

    def fan_out(self, func: Callable[[T], List[R]], items: Iterable[T]) -> List[R]:
        """Run `func` per item on the worker pool, flattening results in item order

        A failing item trips `cancel_token` so the other items stop issuing
        provider calls.
        """
        flattened = []
        for chunk in map_ordered(func, items, self.max_workers, self.cancel_token):
            flattened.extend(chunk)
        return flattened
