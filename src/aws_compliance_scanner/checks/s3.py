"""
S3 compliance checks
"""

from typing import Any, Dict, Iterator, List, Optional

from ..core.framework import ComplianceChecker, Resource, Rule, Verdict
from ..core.provider import RegionContext

BUCKET = "aws/s3-bucket"

# Buckets in us-east-1 report a null LocationConstraint
PRIMARY_REGION = "us-east-1"
LEGACY_LOCATIONS = {"EU": "eu-west-1"}


def bucket_region(location_constraint: Optional[str]) -> str:
    """Map a GetBucketLocation LocationConstraint to a region name"""
    if not location_constraint:
        return PRIMARY_REGION
    return LEGACY_LOCATIONS.get(location_constraint, location_constraint)


class StorageChecker(ComplianceChecker):
    """Encryption-at-rest rules for S3 buckets"""

    service = "s3"
    description = "Amazon Simple Storage Service - bucket encryption"

    def rules(self) -> List[Rule]:
        return [
            Rule("s3_bucket_encryption",
                 "S3 buckets must be encrypted",
                 self.check_bucket_encryption),
        ]

    def check_bucket_encryption(self, rule: Rule) -> Iterator[Verdict]:
        def evaluate(bucket: Dict[str, Any]) -> List[Verdict]:
            bucket_name = bucket['Name']
            region = RegionContext(
                bucket_region(self.aws_provider.get_bucket_location(bucket_name)))

            resource = Resource(BUCKET, bucket_name)
            if self.aws_provider.get_bucket_encryption(bucket_name, region) is None:
                return [rule.verdict(resource, False, "Bucket is not encrypted")]
            return [rule.verdict(resource, True)]

        return iter(self.fan_out(evaluate, self.aws_provider.list_buckets()))
