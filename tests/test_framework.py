"""
tests/test_framework.py - Resource / Verdict / Rule / ComplianceChecker
"""

import pytest

from aws_compliance_scanner.core.config import ScanConfig
from aws_compliance_scanner.core.framework import ComplianceChecker, Resource, Rule, Verdict
from aws_compliance_scanner.core.regions import RegionSet

BUCKET = Resource("aws/s3-bucket", "logs")


class TestVerdict:
    def test_non_compliant_requires_reason(self):
        with pytest.raises(ValueError):
            Verdict(BUCKET, "S3 buckets must be encrypted", False, "")

    def test_passing_verdict_defaults_to_empty_reason(self):
        verdict = Verdict(BUCKET, "S3 buckets must be encrypted", True)
        assert verdict.reason == ""

    def test_to_dict(self):
        verdict = Verdict(BUCKET, "S3 buckets must be encrypted", False, "Bucket is not encrypted")

        assert verdict.to_dict() == {
            "resourceType": "aws/s3-bucket",
            "resourceName": "logs",
            "rule": "S3 buckets must be encrypted",
            "compliant": False,
            "reason": "Bucket is not encrypted",
        }

    def test_immutable(self):
        verdict = Verdict(BUCKET, "rule", True)
        with pytest.raises(AttributeError):
            verdict.compliant = False


class TestRule:
    def test_verdict_carries_statement(self):
        rule = Rule("s3_bucket_encryption", "S3 buckets must be encrypted", lambda r: [])
        verdict = rule.verdict(BUCKET, True)

        assert verdict.rule == "S3 buckets must be encrypted"
        assert verdict.resource == BUCKET

    def test_run_materializes_generator(self):
        def evaluate(rule):
            yield rule.verdict(BUCKET, True)
            yield rule.verdict(Resource("aws/s3-bucket", "data"), False, "Bucket is not encrypted")

        verdicts = Rule("r", "statement", evaluate).run()

        assert [v.resource.name for v in verdicts] == ["logs", "data"]


class _TwoRuleChecker(ComplianceChecker):
    service = "demo"

    def rules(self):
        return [
            Rule("first", "First rule", lambda r: [r.verdict(Resource("demo", "a"), True)]),
            Rule("second", "Second rule", lambda r: [r.verdict(Resource("demo", "b"), True),
                                                     r.verdict(Resource("demo", "c"), True)]),
        ]


class TestComplianceChecker:
    def test_check_concatenates_in_rule_order(self):
        checker = _TwoRuleChecker(None, RegionSet())

        verdicts = checker.check()

        assert [(v.rule, v.resource.name) for v in verdicts] == [
            ("First rule", "a"),
            ("Second rule", "b"),
            ("Second rule", "c"),
        ]

    def test_max_workers_defaults_to_sequential(self):
        assert _TwoRuleChecker(None, RegionSet()).max_workers == 1
        assert _TwoRuleChecker(None, RegionSet(), ScanConfig(max_workers=4)).max_workers == 4

    def test_fan_out_flattens_in_item_order(self):
        checker = _TwoRuleChecker(None, RegionSet(), ScanConfig(max_workers=3))

        assert checker.fan_out(lambda n: [n] * n, [1, 2, 3]) == [1, 2, 2, 3, 3, 3]
