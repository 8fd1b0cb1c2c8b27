"""
AWS Compliance Scanner - SOC2-style control attestation for AWS accounts

This package evaluates a fixed catalogue of compliance rules (credential
hygiene, encryption at rest, network exposure, audit-log integrity) against a
point-in-time view of an AWS account and produces one verdict per resource
per rule.
"""

__version__ = "1.0.0"

from .core.framework import ComplianceChecker, Resource, Rule, Verdict
from .core.provider import AWSProvider, RegionContext
from .core.engine import ScanEngine, PartialScanReport
from .core.registry import CheckRegistry
from .core.output import OutputEngine
from .core.config import AWSCredentials, ScanConfig

__all__ = [
    "ComplianceChecker",
    "Resource",
    "Rule",
    "Verdict",
    "AWSProvider",
    "RegionContext",
    "ScanEngine",
    "PartialScanReport",
    "CheckRegistry",
    "OutputEngine",
    "AWSCredentials",
    "ScanConfig",
]
