"""
AWS provider for authentication and read-only inventory access
"""

import copy
import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .config import AWSCredentials, DEFAULT_REGION
from .errors import ConfigurationError, ProviderError
from .executor import CancellationToken

logger = logging.getLogger(__name__)

# Bounded client-side retries; the scan itself never retries
DEFAULT_CLIENT_CONFIG = Config(
    retries={"max_attempts": 3, "mode": "standard"},
    connect_timeout=10,
    read_timeout=30,
)

NOT_FOUND_CODES = {
    "get_login_profile": "NoSuchEntity",
    "get_bucket_encryption": "ServerSideEncryptionConfigurationNotFoundError",
}


@dataclass(frozen=True)
class RegionContext:
    """Region a provider call is bound to"""
    region: str

    def __str__(self) -> str:
        return self.region


class AWSProvider:
    """AWS provider for authentication and service client management

    Every inventory operation goes through `_call` / `_paginate`, which check
    the cancellation token first and turn botocore failures into
    ProviderError. Regional operations take a RegionContext; omitting it
    means the default region.
    """

    def __init__(self, access_key: str = None, secret_key: str = None,
                 session_token: str = None, region: str = DEFAULT_REGION,
                 profile: str = None, session: boto3.Session = None,
                 client_config: Config = None):
        self.access_key = access_key
        self.secret_key = secret_key
        self.session_token = session_token
        self.region = region
        self.profile = profile
        self.session = session
        self.client_config = client_config or DEFAULT_CLIENT_CONFIG
        self.cancel_token: Optional[CancellationToken] = None
        self.account_id = None
        self._clients = {}
        self._clients_lock = threading.Lock()

        if self.session is None:
            self._initialize_session()

    @classmethod
    def from_credentials(cls, credentials: AWSCredentials) -> "AWSProvider":
        return cls(
            access_key=credentials.access_key_id,
            secret_key=credentials.secret_access_key,
            session_token=credentials.session_token,
            region=credentials.region,
            profile=credentials.profile,
        )

    def _initialize_session(self):
        """Initialize boto3 session with provided credentials"""
        try:
            if self.profile:
                self.session = boto3.Session(profile_name=self.profile,
                                             region_name=self.region)
            elif self.access_key and self.secret_key:
                self.session = boto3.Session(
                    aws_access_key_id=self.access_key,
                    aws_secret_access_key=self.secret_key,
                    aws_session_token=self.session_token,
                    region_name=self.region
                )
            else:
                # Use environment variables or instance metadata
                self.session = boto3.Session(region_name=self.region)
        except BotoCoreError as e:
            raise ConfigurationError("Failed to initialize AWS session", cause=e) from e

    def get_account_id(self) -> str:
        """Get AWS account ID, or "unknown" if STS is not reachable"""
        if self.account_id is None:
            try:
                sts_client = self.get_client('sts')
                self.account_id = sts_client.get_caller_identity()['Account']
            except (ClientError, BotoCoreError) as e:
                logger.warning(f"Could not retrieve account ID: {str(e)}")
                self.account_id = "unknown"
        return self.account_id

    def with_cancellation(self, token: CancellationToken) -> "AWSProvider":
        """Return a handle sharing this session and client cache, bound to `token`"""
        bound = copy.copy(self)
        bound.cancel_token = token
        return bound

    @property
    def default_context(self) -> RegionContext:
        return RegionContext(self.region)

    def get_client(self, service_name: str, region: Optional[RegionContext] = None):
        """Get (cached) boto3 client for AWS service in a region"""
        region_name = region.region if region else self.region

        client_key = f"{service_name}_{region_name}"
        with self._clients_lock:
            if client_key not in self._clients:
                self._clients[client_key] = self.session.client(
                    service_name, region_name=region_name, config=self.client_config
                )
            return self._clients[client_key]

    def _call(self, service_name: str, operation: str,
              region: Optional[RegionContext] = None, **kwargs) -> Dict[str, Any]:
        if self.cancel_token is not None:
            self.cancel_token.raise_if_cancelled()
        region = region or self.default_context
        logger.debug(f"Calling {service_name}:{operation} in {region}")
        try:
            client = self.get_client(service_name, region)
            return getattr(client, operation)(**kwargs)
        except (ClientError, BotoCoreError) as e:
            raise ProviderError(service_name, operation, region.region, cause=e) from e

    def _call_or_none(self, service_name: str, operation: str,
                      region: Optional[RegionContext] = None,
                      **kwargs) -> Optional[Dict[str, Any]]:
        """Like `_call`, but return None when the API reports the entity as absent"""
        try:
            return self._call(service_name, operation, region, **kwargs)
        except ProviderError as e:
            if e.error_code == NOT_FOUND_CODES[operation]:
                return None
            raise

    def _paginate(self, service_name: str, operation: str, result_key: str,
                  region: Optional[RegionContext] = None, **kwargs) -> List[Any]:
        if self.cancel_token is not None:
            self.cancel_token.raise_if_cancelled()
        region = region or self.default_context
        logger.debug(f"Paginating {service_name}:{operation} in {region}")
        items = []
        try:
            paginator = self.get_client(service_name, region).get_paginator(operation)
            for page in paginator.paginate(**kwargs):
                items.extend(page.get(result_key, []))
                if self.cancel_token is not None:
                    self.cancel_token.raise_if_cancelled()
        except (ClientError, BotoCoreError) as e:
            raise ProviderError(service_name, operation, region.region, cause=e) from e
        return items

    # Region directory

    def list_regions(self) -> List[str]:
        """Regions enabled for the account"""
        response = self._call('ec2', 'describe_regions')
        return [r['RegionName'] for r in response.get('Regions', [])]

    # IAM

    def list_users(self) -> List[Dict[str, Any]]:
        return self._paginate('iam', 'list_users', 'Users')

    def list_mfa_devices(self, user_name: str) -> List[Dict[str, Any]]:
        return self._paginate('iam', 'list_mfa_devices', 'MFADevices', UserName=user_name)

    def get_login_profile(self, user_name: str) -> Optional[Dict[str, Any]]:
        """Console login profile, or None when the user has no console access"""
        response = self._call_or_none('iam', 'get_login_profile', UserName=user_name)
        return response['LoginProfile'] if response else None

    def list_access_keys(self, user_name: str) -> List[Dict[str, Any]]:
        return self._paginate('iam', 'list_access_keys', 'AccessKeyMetadata',
                              UserName=user_name)

    def get_access_key_last_used(self, access_key_id: str) -> Optional[datetime]:
        response = self._call('iam', 'get_access_key_last_used', AccessKeyId=access_key_id)
        return response.get('AccessKeyLastUsed', {}).get('LastUsedDate')

    def get_account_summary(self) -> Dict[str, int]:
        return self._call('iam', 'get_account_summary').get('SummaryMap', {})

    def list_policies(self, scope: str = 'Local') -> List[Dict[str, Any]]:
        return self._paginate('iam', 'list_policies', 'Policies', Scope=scope)

    def get_policy_version(self, policy_arn: str, version_id: str) -> Union[str, Dict[str, Any]]:
        """Policy document of a version

        botocore normally hands back the decoded document as a dict; the raw
        URL-encoded JSON string is passed through unchanged when it does not.
        """
        response = self._call('iam', 'get_policy_version',
                              PolicyArn=policy_arn, VersionId=version_id)
        return response['PolicyVersion']['Document']

    def list_user_policies(self, user_name: str) -> List[str]:
        return self._paginate('iam', 'list_user_policies', 'PolicyNames', UserName=user_name)

    def list_attached_user_policies(self, user_name: str) -> List[Dict[str, Any]]:
        return self._paginate('iam', 'list_attached_user_policies', 'AttachedPolicies',
                              UserName=user_name)

    # S3

    def list_buckets(self) -> List[Dict[str, Any]]:
        return self._call('s3', 'list_buckets').get('Buckets', [])

    def get_bucket_location(self, bucket_name: str) -> Optional[str]:
        """Raw LocationConstraint, which is None or "" for us-east-1"""
        return self._call('s3', 'get_bucket_location',
                          Bucket=bucket_name).get('LocationConstraint')

    def get_bucket_encryption(self, bucket_name: str,
                              region: RegionContext) -> Optional[Dict[str, Any]]:
        response = self._call_or_none('s3', 'get_bucket_encryption', region,
                                      Bucket=bucket_name)
        if response is None:
            return None
        return response.get('ServerSideEncryptionConfiguration')

    # EC2 / VPC

    def describe_vpcs(self, region: RegionContext) -> List[Dict[str, Any]]:
        return self._paginate('ec2', 'describe_vpcs', 'Vpcs', region)

    def describe_flow_logs(self, region: RegionContext, vpc_id: str) -> List[Dict[str, Any]]:
        return self._paginate('ec2', 'describe_flow_logs', 'FlowLogs', region,
                              Filters=[{'Name': 'resource-id', 'Values': [vpc_id]}])

    def describe_security_groups(self, region: RegionContext,
                                 filters: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return self._paginate('ec2', 'describe_security_groups', 'SecurityGroups', region,
                              Filters=filters)

    # CloudTrail

    def describe_trails(self, region: Optional[RegionContext] = None) -> List[Dict[str, Any]]:
        return self._call('cloudtrail', 'describe_trails', region).get('trailList', [])

    def get_event_selectors(self, trail_name: str,
                            region: Optional[RegionContext] = None) -> List[Dict[str, Any]]:
        """Basic event selectors of a trail (advanced selectors are not returned)"""
        response = self._call('cloudtrail', 'get_event_selectors', region,
                              TrailName=trail_name)
        return response.get('EventSelectors') or []
