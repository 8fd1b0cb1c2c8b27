"""
tests/conftest.py - shared pytest fixtures

Checkers are exercised against a MagicMock provider whose inventory methods
return empty collections by default; tests override just what they need.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from aws_compliance_scanner.core.errors import ProviderError
from aws_compliance_scanner.core.provider import AWSProvider
from aws_compliance_scanner.core.regions import RegionSet

ACCOUNT = "123456789012"
NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch):
    """Never talk to a real account"""
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")


@pytest.fixture
def client_error():
    """Factory for botocore ClientError with a given error code"""
    def make(code, operation="Operation"):
        return ClientError({"Error": {"Code": code, "Message": code}}, operation)
    return make


@pytest.fixture
def provider_error(client_error):
    """Factory for ProviderError wrapping a ClientError"""
    def make(service="iam", operation="list_users", code="AccessDenied", region="us-east-1"):
        return ProviderError(service, operation, region, cause=client_error(code, operation))
    return make


@pytest.fixture
def provider():
    """AWSProvider mock describing an empty, compliant account"""
    mock = MagicMock(spec=AWSProvider)
    mock.list_regions.return_value = ["us-east-1", "eu-west-1"]

    mock.list_users.return_value = []
    mock.list_mfa_devices.return_value = []
    mock.get_login_profile.return_value = None
    mock.list_access_keys.return_value = []
    mock.get_access_key_last_used.return_value = None
    mock.get_account_summary.return_value = {
        "AccountMFAEnabled": 1,
        "AccountAccessKeysPresent": 0,
    }
    mock.list_policies.return_value = []
    mock.list_user_policies.return_value = []
    mock.list_attached_user_policies.return_value = []

    mock.list_buckets.return_value = []
    mock.get_bucket_location.return_value = None
    mock.get_bucket_encryption.return_value = {
        "Rules": [{"ApplyServerSideEncryptionByDefault": {"SSEAlgorithm": "AES256"}}]
    }

    mock.describe_vpcs.return_value = []
    mock.describe_flow_logs.return_value = []
    mock.describe_security_groups.return_value = []

    mock.describe_trails.return_value = []
    mock.get_event_selectors.return_value = []

    mock.get_account_id.return_value = ACCOUNT
    mock.with_cancellation.return_value = mock
    return mock


@pytest.fixture
def regions():
    return RegionSet(["us-east-1", "eu-west-1"])


@pytest.fixture
def run_rule():
    """Evaluate a single rule of a checker by id"""
    def run(checker, rule_id):
        rule = next(r for r in checker.rules() if r.rule_id == rule_id)
        return checker.evaluate_rule(rule)
    return run


def make_user(name):
    return {"UserName": name, "Arn": f"arn:aws:iam::{ACCOUNT}:user/{name}"}


@pytest.fixture
def user():
    return make_user
