"""
tests/test_cloudtrail.py - AuditTrailChecker
"""

import pytest

from aws_compliance_scanner.checks.cloudtrail import AuditTrailChecker, logs_all_management_events
from aws_compliance_scanner.core.config import ScanConfig
from aws_compliance_scanner.core.provider import RegionContext


def trail(name, region, multi_region=False, kms_key=None, validation=False):
    return {
        "Name": name,
        "TrailARN": f"arn:aws:cloudtrail:{region}:123456789012:trail/{name}",
        "HomeRegion": region,
        "IsMultiRegionTrail": multi_region,
        "KmsKeyId": kms_key,
        "LogFileValidationEnabled": validation,
    }


ORG = trail("org", "us-east-1", multi_region=True, kms_key="arn:kms", validation=True)
LOCAL = trail("local", "us-east-1")
EU = trail("eu", "eu-west-1", kms_key="arn:kms")


@pytest.fixture
def trail_provider(provider):
    views = {
        None: [ORG, LOCAL],
        "us-east-1": [ORG, LOCAL],
        # multi-region trails show up as shadow trails in every region
        "eu-west-1": [ORG, EU],
    }
    provider.describe_trails.side_effect = lambda region=None: views[region.region if region else None]
    return provider


class TestEncryption:
    def test_every_trail_evaluated_once(self, trail_provider, regions, run_rule):
        verdicts = run_rule(AuditTrailChecker(trail_provider, regions), "cloudtrail_encryption")

        assert [(v.resource.name, v.compliant) for v in verdicts] == [
            ("org", True), ("local", False), ("eu", True),
        ]
        assert verdicts[1].reason == "CloudTrail is not encrypted"
        assert verdicts[1].resource.type == "aws/cloudtrail"

    def test_single_region_trails_listed_per_region(self, trail_provider, regions, run_rule):
        run_rule(AuditTrailChecker(trail_provider, regions), "cloudtrail_encryption")

        trail_provider.describe_trails.assert_any_call(RegionContext("us-east-1"))
        trail_provider.describe_trails.assert_any_call(RegionContext("eu-west-1"))

    def test_parallel_enumeration_same_order(self, trail_provider, regions, run_rule):
        checker = AuditTrailChecker(trail_provider, regions, ScanConfig(max_workers=4))

        verdicts = run_rule(checker, "cloudtrail_encryption")

        assert [v.resource.name for v in verdicts] == ["org", "local", "eu"]


class TestMultiRegionTrail:
    def test_first_satisfying_trail_stops_evaluation(self, provider, regions, run_rule):
        trails = [trail(name, "us-east-1", multi_region=True) for name in ("a", "b", "c")]
        provider.describe_trails.return_value = trails
        selectors = {
            "a": [{"IncludeManagementEvents": False}],
            "b": [{"IncludeManagementEvents": True, "ExcludeManagementEventSources": []}],
            "c": [{"IncludeManagementEvents": True}],
        }
        provider.get_event_selectors.side_effect = lambda name, region: selectors[name]

        verdicts = run_rule(AuditTrailChecker(provider, regions), "cloudtrail_multi_region")

        assert len(verdicts) == 1
        assert verdicts[0].compliant is True
        assert verdicts[0].resource.name == "b"
        assert provider.get_event_selectors.call_count == 2

    def test_no_qualifying_trail(self, provider, regions, run_rule):
        provider.describe_trails.return_value = [
            trail("a", "us-east-1", multi_region=True),
            trail("b", "eu-west-1", multi_region=True),
            trail("single", "us-east-1"),
        ]
        provider.get_event_selectors.return_value = [
            {"IncludeManagementEvents": True, "ExcludeManagementEventSources": ["kms.amazonaws.com"]},
        ]

        verdicts = run_rule(AuditTrailChecker(provider, regions), "cloudtrail_multi_region")

        assert len(verdicts) == 1
        assert verdicts[0].resource.name == "N/A"
        assert verdicts[0].compliant is False
        assert verdicts[0].reason == "CloudTrail does not have multi-region trails enabled"
        provider.get_event_selectors.assert_any_call("b", RegionContext("eu-west-1"))
        assert provider.get_event_selectors.call_count == 2

    def test_no_trails_at_all(self, provider, regions, run_rule):
        verdicts = run_rule(AuditTrailChecker(provider, regions), "cloudtrail_multi_region")

        assert [(v.resource.name, v.compliant) for v in verdicts] == [("N/A", False)]

    @pytest.mark.parametrize("selectors, expected", [
        ([], False),
        ([{"IncludeManagementEvents": True}], True),
        ([{"IncludeManagementEvents": False}, {"IncludeManagementEvents": True}], True),
        ([{"IncludeManagementEvents": True, "ExcludeManagementEventSources": ["rdsdata.amazonaws.com"]}], False),
    ])
    def test_logs_all_management_events(self, selectors, expected):
        assert logs_all_management_events(selectors) is expected


class TestLogValidation:
    def test_every_trail(self, trail_provider, regions, run_rule):
        verdicts = run_rule(AuditTrailChecker(trail_provider, regions), "cloudtrail_log_validation")

        assert [(v.resource.name, v.compliant) for v in verdicts] == [
            ("org", True), ("local", False), ("eu", False),
        ]
        assert verdicts[2].reason == "CloudTrail does not have log file validation enabled"
