"""API version resolution for date-based and legacy addressing."""

import logging
import re
from abc import ABC, abstractmethod
from typing import Dict

from .exceptions import InvalidVersionFormat

logger = logging.getLogger(__name__)

DATE_VERSION_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$", re.ASCII)

# Legacy tokens and the path prefix each one is served from.
LEGACY_PREFIXES: Dict[str, str] = {
    "0.9": "/api",
    "2.0": "/api/2.0",
    "2.0b": "/api/2.0",
    "2.1": "/api/2.1",
    "3.0": "/api/3.0",
    "3.0b": "/api/3.0",
}

LEGACY_FALLBACK = "2.0"


def is_valid_version(version: str) -> bool:
    """Return True if `version` is a YYYY-MM date version."""
    return isinstance(version, str) and DATE_VERSION_PATTERN.fullmatch(version) is not None


def validate_version(version: str) -> str:
    """Validate a date version, returning it unchanged.

    Raises:
        InvalidVersionFormat: If the version is not YYYY-MM with month 01-12
    """
    if not is_valid_version(version):
        raise InvalidVersionFormat(version)
    return version


def legacy_prefix(token: str) -> str:
    """Map a legacy version token to its path prefix.

    Unknown tokens resolve to the 2.0 prefix instead of failing.
    """
    prefix = LEGACY_PREFIXES.get(token)
    if prefix is None:
        logger.warning(
            f"Unknown legacy API version '{token}', using {LEGACY_FALLBACK} instead"
        )
        return LEGACY_PREFIXES[LEGACY_FALLBACK]
    return prefix


class VersionResolver(ABC):
    """Turns a version identifier into the path prefix for a request."""

    regime: str = ""

    @abstractmethod
    def validate(self, version: str) -> str:
        """Check a version for this regime, returning it unchanged."""

    @abstractmethod
    def prefix(self, version: str) -> str:
        """Path prefix to prepend to the endpoint."""


class DateVersionResolver(VersionResolver):
    """`/api/YYYY-MM` addressing."""

    regime = "date"

    def validate(self, version: str) -> str:
        return validate_version(version)

    def prefix(self, version: str) -> str:
        return "/api/" + self.validate(version)


class LegacyVersionResolver(VersionResolver):
    """`/api/X.Y` addressing through the fixed legacy table."""

    regime = "legacy"

    def validate(self, version: str) -> str:
        return version

    def prefix(self, version: str) -> str:
        return legacy_prefix(version)


_RESOLVERS = {
    "date": DateVersionResolver,
    "legacy": LegacyVersionResolver,
}


def get_resolver(regime: str) -> VersionResolver:
    """Build the resolver for `regime` ("date" or "legacy")."""
    try:
        return _RESOLVERS[regime]()
    except KeyError:
        raise ValueError(
            f"Unknown versioning regime: {regime!r}. Use one of: {', '.join(_RESOLVERS)}"
        ) from None
