"""
Scan configuration models
"""

from dataclasses import dataclass, field
from typing import List, Optional

from .errors import ConfigurationError

DEFAULT_REGION = "us-east-1"
DEFAULT_CREDENTIAL_MAX_AGE_DAYS = 90


@dataclass
class AWSCredentials:
    """How to establish the boto3 session"""
    profile: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    session_token: Optional[str] = None
    region: str = DEFAULT_REGION


@dataclass
class ScanConfig:
    """Scan configuration

    Attributes:
        credentials: session settings; `credentials.region` is the default region
        regions: restrict regional fan-out to these regions (None = all enabled)
        services: checker services to run (None = all, in catalogue order)
        rules: rule ids to run (None = all rules of the selected services)
        max_workers: worker pool size for regional/resource fan-out, 1 = sequential
        timeout: scan deadline in seconds (None = no deadline)
        credential_max_age_days: access keys unused for longer are non-compliant
        flag_list_wildcards: also treat ["*"] Action/Resource lists as admin access
    """
    credentials: AWSCredentials = field(default_factory=AWSCredentials)
    regions: Optional[List[str]] = None
    services: Optional[List[str]] = None
    rules: Optional[List[str]] = None
    max_workers: int = 1
    timeout: Optional[float] = None
    credential_max_age_days: int = DEFAULT_CREDENTIAL_MAX_AGE_DAYS
    flag_list_wildcards: bool = False

    def __post_init__(self):
        if self.max_workers < 1:
            raise ConfigurationError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.timeout is not None and self.timeout <= 0:
            raise ConfigurationError(f"timeout must be positive, got {self.timeout}")
        if self.credential_max_age_days < 1:
            raise ConfigurationError(
                f"credential_max_age_days must be >= 1, got {self.credential_max_age_days}")
        if self.regions is not None and not self.regions:
            raise ConfigurationError("regions filter must not be empty")

    @property
    def default_region(self) -> str:
        return self.credentials.region
