"""
tests/test_regions.py - RegionSet / RegionDirectory
"""

import pytest

from aws_compliance_scanner.core.errors import ConfigurationError, ProviderError
from aws_compliance_scanner.core.provider import RegionContext
from aws_compliance_scanner.core.regions import RegionDirectory, RegionSet


def test_region_set_dedupes_keeping_order():
    regions = RegionSet(["eu-west-1", "us-east-1", "eu-west-1"])

    assert tuple(regions) == ("eu-west-1", "us-east-1")
    assert regions.contexts() == (RegionContext("eu-west-1"), RegionContext("us-east-1"))


class TestRegionDirectory:
    def test_resolves_enabled_regions(self, provider):
        provider.list_regions.return_value = ["us-east-1", "eu-west-1", "us-east-1"]

        assert RegionDirectory(provider).resolve() == ("us-east-1", "eu-west-1")
        provider.list_regions.assert_called_once_with()

    def test_filter_keeps_enabled_order(self, provider):
        provider.list_regions.return_value = ["us-east-1", "eu-west-1", "ap-south-1"]

        regions = RegionDirectory(provider).resolve(["ap-south-1", "us-east-1"])

        assert regions == ("us-east-1", "ap-south-1")

    def test_filter_rejects_disabled_region(self, provider):
        with pytest.raises(ConfigurationError) as excinfo:
            RegionDirectory(provider).resolve(["me-south-1"])

        assert excinfo.value.details["invalid_regions"] == ["me-south-1"]

    def test_provider_error_propagates(self, provider, provider_error):
        provider.list_regions.side_effect = provider_error("ec2", "describe_regions")

        with pytest.raises(ProviderError) as excinfo:
            RegionDirectory(provider).resolve()

        assert excinfo.value.error_code == "AccessDenied"
