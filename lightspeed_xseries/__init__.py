"""Client library for the Lightspeed X-Series retail API."""

from .client import LightspeedClient
from .config import Settings, TransportConfig, get_settings, settings
from .logging_config import setup_logging
from .oauth import LightspeedOAuth
from .objects import Customer, LightspeedObject, Product, Sale
from .transport import Transport
from .versions import (
    DateVersionResolver,
    LegacyVersionResolver,
    LEGACY_FALLBACK,
    LEGACY_PREFIXES,
    VersionResolver,
    get_resolver,
    is_valid_version,
    validate_version,
)
from .exceptions import (
    LightspeedError,
    InvalidVersionFormat,
    InvalidMethod,
    UnexpectedNullResult,
    RateLimitError,
    RateLimitClockSkew,
    RateLimitTimeout,
    HttpError,
    ApplicationError,
    OAuthError,
    OAuthResponseError,
    TransportError,
    EntityError,
)

__version__ = "0.3.0"

__all__ = [
    # Client
    "LightspeedClient",
    "LightspeedOAuth",
    "Transport",

    # Configuration
    "Settings",
    "TransportConfig",
    "get_settings",
    "settings",
    "setup_logging",

    # Entities
    "LightspeedObject",
    "Product",
    "Customer",
    "Sale",

    # Versions
    "VersionResolver",
    "DateVersionResolver",
    "LegacyVersionResolver",
    "LEGACY_PREFIXES",
    "LEGACY_FALLBACK",
    "get_resolver",
    "is_valid_version",
    "validate_version",

    # Exceptions
    "LightspeedError",
    "InvalidVersionFormat",
    "InvalidMethod",
    "UnexpectedNullResult",
    "RateLimitError",
    "RateLimitClockSkew",
    "RateLimitTimeout",
    "HttpError",
    "ApplicationError",
    "OAuthError",
    "OAuthResponseError",
    "TransportError",
    "EntityError",
]
