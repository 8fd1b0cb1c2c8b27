"""
Region directory: resolves the regions a scan fans out over
"""

import logging
from typing import Iterable, Optional, Sequence, Tuple

from .errors import ConfigurationError
from .provider import AWSProvider, RegionContext

logger = logging.getLogger(__name__)


class RegionSet(tuple):
    """Ordered, de-duplicated region names, shared read-only by all checkers"""

    def __new__(cls, regions: Iterable[str] = ()):
        return super().__new__(cls, dict.fromkeys(regions))

    def contexts(self) -> Tuple[RegionContext, ...]:
        return tuple(RegionContext(region) for region in self)


class RegionDirectory:
    """Resolves the account's enabled regions once, at scan start"""

    def __init__(self, aws_provider: AWSProvider):
        self.aws_provider = aws_provider

    def resolve(self, allowed: Optional[Sequence[str]] = None) -> RegionSet:
        """Return enabled regions, optionally restricted to `allowed`

        Raises ConfigurationError when `allowed` names a region that is not
        enabled for the account.
        """
        enabled = RegionSet(self.aws_provider.list_regions())
        logger.info(f"Resolved {len(enabled)} enabled regions")

        if allowed is None:
            return enabled

        unknown = [region for region in allowed if region not in enabled]
        if unknown:
            raise ConfigurationError(
                f"Regions not enabled for this account: {', '.join(unknown)}",
                details={"invalid_regions": unknown, "enabled_regions": list(enabled)},
            )
        selected = set(allowed)
        return RegionSet(region for region in enabled if region in selected)
