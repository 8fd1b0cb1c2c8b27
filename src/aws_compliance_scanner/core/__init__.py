"""Core framework components for AWS Compliance Scanner"""

from .framework import ComplianceChecker, Resource, Rule, Verdict
from .provider import AWSProvider, RegionContext
from .regions import RegionDirectory, RegionSet
from .engine import ScanEngine, PartialScanReport
from .registry import CheckRegistry
from .output import OutputEngine

__all__ = [
    "ComplianceChecker",
    "Resource",
    "Rule",
    "Verdict",
    "AWSProvider",
    "RegionContext",
    "RegionDirectory",
    "RegionSet",
    "ScanEngine",
    "PartialScanReport",
    "CheckRegistry",
    "OutputEngine",
]
