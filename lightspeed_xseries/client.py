"""Lightspeed X-Series API client: versioned requests, error classification and rate-limit retry."""

import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple, Type
from urllib.parse import urlencode

from dateutil import parser as date_parser

from .config import Settings, TransportConfig, get_settings
from .exceptions import (
    ApplicationError,
    HttpError,
    InvalidMethod,
    RateLimitClockSkew,
    RateLimitTimeout,
    UnexpectedNullResult,
)
from .objects import Customer, Product, Sale, unwrap
from .transport import Transport
from .versions import LegacyVersionResolver, VersionResolver, get_resolver

logger = logging.getLogger(__name__)

METHODS = ("get", "post", "put", "delete")

# Marks "use settings.rate_limit_max_wait"; None already means "wait forever".
_DEFAULT = object()

# Two defaults that differ in every date field; a timestamp missing any of
# year, month or day parses differently against them.
_PARSE_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 2))


def _parse_retry_after(value: str) -> Optional[datetime]:
    """Parse a complete retry-after timestamp, or return None.

    Bare numbers and partial dates ("60", "5", "October") are rejected
    rather than completed from today's date.
    """
    value = value.strip()
    if not value or value.isdigit():
        return None
    try:
        first, second = (date_parser.parse(value, default=d) for d in _PARSE_DEFAULTS)
    except (ValueError, OverflowError):
        return None
    if first != second:
        return None
    return first


class LightspeedClient:
    """Client for a single Lightspeed X-Series store."""

    def __init__(
        self,
        url: str,
        token_type: str,
        access_token: str,
        version: Optional[str] = None,
        *,
        regime: str = "date",
        settings: Optional[Settings] = None,
        transport_class: Type[Transport] = Transport,
        transport_config: Optional[TransportConfig] = None,
    ):
        """Initialize the client.

        Args:
            url: Store URL, e.g. https://mystore.retail.lightspeed.app
            token_type: Authorization scheme, usually "Bearer"
            access_token: OAuth access token
            version: Version for this instance; defaults to the settings default
            regime: "date" for YYYY-MM versions, "legacy" for 0.9/2.0/... tokens
            settings: Settings to read defaults from. If None, uses the global settings.
            transport_class: Transport implementation, replaceable for testing
            transport_config: Timeouts and headers for the transport
        """
        self.settings = settings or get_settings()
        self.url = url.rstrip("/")
        self.resolver: VersionResolver = get_resolver(regime)
        self._legacy_resolver = LegacyVersionResolver()

        self._instance_version: Optional[str] = None
        if version is not None:
            self._instance_version = self.resolver.validate(version)

        self.allow_time_slip = self.settings.allow_time_slip
        self._debug = False
        self.last_result_raw: Optional[str] = None
        self.last_result: Any = None

        config = transport_config or TransportConfig.from_settings(self.settings)
        self.request = transport_class(self.url, token_type, access_token, config)

    # Versioning

    @property
    def regime(self) -> str:
        return self.resolver.regime

    @property
    def version(self) -> str:
        """Instance version if one was set, otherwise the configured default."""
        if self._instance_version is not None:
            return self._instance_version
        if self.regime == "legacy":
            return self.settings.default_legacy_version
        return self.settings.default_version

    def set_version(self, version: str) -> None:
        """Pin this instance to `version`, overriding the default."""
        self._instance_version = self.resolver.validate(version)

    # Debugging

    def debug(self, enabled: bool = True) -> None:
        """Turn on transport logging and keep the last raw and decoded results."""
        self.request.set_debug(enabled)
        self._debug = enabled

    @property
    def last_http_code(self) -> int:
        return self.request.status_code

    # Requests

    def call(
        self,
        endpoint: str,
        method: str,
        data: Optional[Dict[str, Any]] = None,
        version: Optional[str] = None,
        *,
        max_wait: Any = _DEFAULT,
    ) -> Any:
        """Make a request to any API endpoint.

        Args:
            endpoint: Endpoint path, e.g. "products" or "customers/123"
            method: get, post, put or delete (any case)
            data: Query parameters for get, JSON body otherwise
            version: Version override for this call only
            max_wait: Upper bound in seconds on total rate-limit waiting.
                Defaults to settings.rate_limit_max_wait; None waits forever.

        Returns:
            The decoded JSON response.

        Examples:
            client.call("products", "get", {"page_size": 100})
            client.call("customers", "post", {"first_name": "John"})
            client.call("fulfillments", "get", None, "2026-04")
        """
        if version is not None:
            self.resolver.validate(version)
        return self._dispatch(self.resolver, version, endpoint, method, data, max_wait)

    def legacy_call(
        self,
        endpoint: str,
        method: str,
        legacy_version: str,
        data: Optional[Dict[str, Any]] = None,
        *,
        max_wait: Any = _DEFAULT,
    ) -> Any:
        """Make a request to a legacy endpoint (0.9, 2.0, 2.1, ...).

        Use this for endpoints not yet available under date-based versions,
        such as register_sales which only exists on 0.9.
        """
        return self._dispatch(
            self._legacy_resolver, legacy_version, endpoint, method, data, max_wait
        )

    def _dispatch(
        self,
        resolver: VersionResolver,
        version: Optional[str],
        endpoint: str,
        method: str,
        data: Optional[Dict[str, Any]],
        max_wait: Any,
    ) -> Any:
        if max_wait is _DEFAULT:
            max_wait = self.settings.rate_limit_max_wait

        waited = 0.0
        while True:
            result, raw, status_code = self._attempt(resolver, version, endpoint, method, data)
            if status_code == 429:
                waited += self._wait_for_rate_limit(result, waited, max_wait)
                continue
            return self._check_result(result, raw, status_code)

    def _build_path(self, resolver: VersionResolver, version: Optional[str], endpoint: str) -> str:
        if version is None:
            version = self.version
        return resolver.prefix(version) + "/" + endpoint.lstrip("/")

    def _attempt(
        self,
        resolver: VersionResolver,
        version: Optional[str],
        endpoint: str,
        method: str,
        data: Optional[Dict[str, Any]],
    ) -> Tuple[Any, str, int]:
        """Send one request and decode the body."""
        path = self._build_path(resolver, version, endpoint)

        method = str(method).lower()
        if method not in METHODS:
            raise InvalidMethod(method)

        body = None
        if method == "get":
            if data:
                path += "?" + urlencode(data, doseq=True)
        elif data is not None:
            body = json.dumps(data)

        if method == "get":
            raw = self.request.get(path)
        elif method == "post":
            raw = self.request.post(path, body)
        elif method == "put":
            raw = self.request.put(path, body)
        else:
            raw = self.request.delete(path)

        status_code = self.request.status_code

        try:
            result = json.loads(raw) if raw else None
        except ValueError:
            result = None

        if result is None:
            raise UnexpectedNullResult(
                raw or "",
                status_code=status_code,
                request_method=method.upper(),
                request_path=path,
            )

        return result, raw, status_code

    def _check_result(self, result: Any, raw: str, status_code: int) -> Any:
        """Classify a decoded, non-rate-limited response."""
        error = result.get("error") if isinstance(result, dict) else None

        if status_code >= 400:
            message = str(error) if error is not None else "Unknown error"
            raise HttpError(status_code, message, raw)

        if error is not None:
            details = result.get("details")
            raise ApplicationError(str(error), str(details) if details is not None else None)

        if self._debug:
            self.last_result_raw = raw
            self.last_result = result

        return result

    # Rate limiting

    def _retry_after(self, result: Any, now: float) -> float:
        """Epoch seconds after which the request may be retried."""
        value = result.get("retry-after") if isinstance(result, dict) else None
        parsed = _parse_retry_after(value) if isinstance(value, str) else None
        if parsed is not None:
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed.timestamp()
        return now + self.settings.rate_limit_fallback_seconds

    def _wait_for_rate_limit(self, result: Any, waited: float, max_wait: Optional[float]) -> float:
        """Block until a 429 may be retried. Returns the seconds waited."""
        now = time.time()
        retry_after = self._retry_after(result, now)

        if retry_after < now:
            if not self.allow_time_slip:
                raise RateLimitClockSkew(retry_after=retry_after)
            delay = self.settings.rate_limit_fallback_seconds
            self._check_wait_budget(waited, delay, max_wait, retry_after)
            logger.warning(
                f"Rate limit hit with retry-after in the past. Sleeping {delay:g}s"
            )
            time.sleep(delay)
            return time.time() - now

        delay = retry_after - now
        self._check_wait_budget(waited, delay, max_wait, retry_after)
        logger.warning(
            "Rate limit hit. Sleeping until "
            f"{datetime.fromtimestamp(retry_after, tz=timezone.utc).isoformat()}"
        )
        while time.time() < retry_after:
            time.sleep(self.settings.rate_limit_poll_interval)
        return time.time() - now

    @staticmethod
    def _check_wait_budget(
        waited: float,
        delay: float,
        max_wait: Optional[float],
        retry_after: float,
    ) -> None:
        if max_wait is not None and waited + delay > max_wait:
            raise RateLimitTimeout(waited, max_wait, retry_after=retry_after)

    # Products

    def list_products(self, **params) -> Any:
        return self.call("products", "get", params or None)

    def get_product(self, product_id: str) -> Product:
        return Product(unwrap(self.call(f"products/{product_id}", "get")), api=self)

    def create_product(self, data: Dict[str, Any]) -> Any:
        return self.call("products", "post", data)

    def update_product(self, product_id: str, data: Dict[str, Any]) -> Any:
        return self.call(f"products/{product_id}", "put", data)

    def delete_product(self, product_id: str) -> Any:
        return self.call(f"products/{product_id}", "delete")

    # Customers

    def list_customers(self, **params) -> Any:
        return self.call("customers", "get", params or None)

    def get_customer(self, customer_id: str) -> Customer:
        return Customer(unwrap(self.call(f"customers/{customer_id}", "get")), api=self)

    def create_customer(self, data: Dict[str, Any]) -> Any:
        return self.call("customers", "post", data)

    def update_customer(self, customer_id: str, data: Dict[str, Any]) -> Any:
        return self.call(f"customers/{customer_id}", "put", data)

    # Sales

    def list_sales(self, **params) -> Any:
        return self.call("sales", "get", params or None)

    def get_sale(self, sale_id: str) -> Sale:
        return Sale(unwrap(self.call(f"sales/{sale_id}", "get")), api=self)

    def create_sale(self, data: Dict[str, Any]) -> Any:
        # Sales can only be created through the 0.9 register_sales endpoint
        return self.legacy_call("register_sales", "post", "0.9", data)

    def close(self):
        """Close the underlying transport."""
        close = getattr(self.request, "close", None)
        if close is not None:
            close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
