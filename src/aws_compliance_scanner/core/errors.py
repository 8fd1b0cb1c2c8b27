"""
Exception hierarchy for the compliance scanner

Every error is fatal to the scan in progress and is surfaced to the caller
as-is:

    ScannerError
    ├── ProviderError        (any failed AWS API call)
    ├── PolicyParseError     (undecodable or malformed IAM policy document)
    ├── ScanCancelledError   (scan aborted through its cancellation token)
    │   └── ScanTimeoutError
    └── ConfigurationError   (invalid scan configuration)
"""

from typing import Any, Dict, Optional


class ScannerError(Exception):
    """Base class for all scanner errors"""

    def __init__(self, message: str, cause: Optional[BaseException] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.details = details or {}

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message}: {self.cause}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for JSON output"""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "cause": str(self.cause) if self.cause else None,
            "details": self.details,
        }


class ProviderError(ScannerError):
    """A call to the AWS inventory failed (network, throttling, access denied...)"""

    def __init__(self, service: str, operation: str, region: str,
                 cause: Optional[BaseException] = None):
        super().__init__(f"{service}:{operation} failed in {region}", cause)
        self.service = service
        self.operation = operation
        self.region = region
        self.error_code = _error_code(cause)
        self.details.update({
            "service": service,
            "operation": operation,
            "region": region,
            "error_code": self.error_code,
        })


class PolicyParseError(ScannerError):
    """An IAM policy document could not be decoded into statements"""

    def __init__(self, policy_arn: str, reason: str,
                 cause: Optional[BaseException] = None):
        super().__init__(f"Cannot parse policy {policy_arn}: {reason}", cause)
        self.policy_arn = policy_arn
        self.reason = reason
        self.details["policy_arn"] = policy_arn


class ScanCancelledError(ScannerError):
    """The scan was cancelled before it completed"""

    def __init__(self, message: str = "Scan cancelled"):
        super().__init__(message)


class ScanTimeoutError(ScanCancelledError):
    """The scan exceeded its configured timeout"""

    def __init__(self, timeout: float):
        super().__init__(f"Scan timed out after {timeout:g}s")
        self.timeout = timeout
        self.details["timeout"] = timeout


class ConfigurationError(ScannerError):
    """Invalid scan configuration"""


def _error_code(cause: Optional[BaseException]) -> Optional[str]:
    response = getattr(cause, "response", None)
    if isinstance(response, dict):
        return response.get("Error", {}).get("Code")
    return None
