"""HTTP transport for the Lightspeed X-Series API."""

import logging
from typing import Dict, Optional

import httpx

from .config import TransportConfig
from .exceptions import TransportError

logger = logging.getLogger(__name__)


class Transport:
    """Performs single HTTP exchanges against one store.

    Each verb method returns the response body as text and records the
    status code in `status_code`. Non-2xx statuses are not errors here;
    classifying them is the caller's job.
    """

    def __init__(
        self,
        base_url: str,
        token_type: str,
        access_token: str,
        config: Optional[TransportConfig] = None,
    ):
        self.url = base_url.rstrip("/")
        self.config = config or TransportConfig()
        self.headers: Dict[str, str] = dict(self.config.default_headers or {})
        self.headers["Authorization"] = f"{token_type} {access_token}"
        self.status_code: int = 0
        self.debug = False
        self._client: Optional[httpx.Client] = None

    def _get_client(self) -> httpx.Client:
        """Get or create the HTTP client."""
        if self._client is None:
            connect_timeout, read_timeout = self.config.timeout
            self._client = httpx.Client(
                timeout=httpx.Timeout(read_timeout, connect=connect_timeout),
                headers=self.headers,
            )
        return self._client

    def set_debug(self, enabled: bool = True) -> None:
        """Log every request and response at DEBUG level while enabled."""
        self.debug = bool(enabled)

    def get(self, path: str) -> str:
        return self._request("GET", path)

    def post(self, path: str, body: str) -> str:
        return self._request("POST", path, body)

    def put(self, path: str, body: str) -> str:
        return self._request("PUT", path, body)

    def delete(self, path: str) -> str:
        return self._request("DELETE", path)

    def _request(self, method: str, path: str, body: Optional[str] = None) -> str:
        request_url = self.url + path

        if self.debug:
            self._log_request(method, request_url, body)

        try:
            response = self._get_client().request(method, request_url, content=body)
        except httpx.HTTPError as e:
            raise self._handle_network_exception(e, request_url, method) from e

        self.status_code = response.status_code

        if self.debug:
            self._log_response(response)

        return response.text

    def _handle_network_exception(
        self,
        exception: Exception,
        request_url: str,
        request_method: str,
    ) -> TransportError:
        """Classify an httpx failure."""
        error_context = {
            "request_url": request_url,
            "request_method": request_method,
        }

        if isinstance(exception, httpx.TimeoutException):
            timeout_type = "unknown"
            if isinstance(exception, httpx.ConnectTimeout):
                timeout_type = "connect"
            elif isinstance(exception, httpx.ReadTimeout):
                timeout_type = "read"
            elif isinstance(exception, httpx.WriteTimeout):
                timeout_type = "write"
            elif isinstance(exception, httpx.PoolTimeout):
                timeout_type = "pool"

            return TransportError(
                f"Request timed out ({timeout_type}): {exception}",
                error_type=f"timeout_{timeout_type}",
                original_exception=exception,
                **error_context
            )

        if isinstance(exception, httpx.ConnectError):
            return TransportError(
                f"Unable to connect to the server: {exception}",
                error_type="connection",
                original_exception=exception,
                **error_context
            )

        return TransportError(
            f"HTTP error: {exception}",
            error_type="http",
            original_exception=exception,
            **error_context
        )

    def _redacted_headers(self) -> Dict[str, str]:
        headers = dict(self.headers)
        if "Authorization" in headers:
            scheme = headers["Authorization"].split(" ", 1)[0]
            headers["Authorization"] = f"{scheme} ***"
        return headers

    def _log_request(self, method: str, url: str, body: Optional[str]) -> None:
        logger.debug(f"> {method} {url}")
        for name, value in self._redacted_headers().items():
            logger.debug(f"> {name}: {value}")
        if body:
            logger.debug(f"> {body}")

    def _log_response(self, response: httpx.Response) -> None:
        logger.debug(f"< {response.status_code} {response.reason_phrase}")
        for name, value in response.headers.items():
            logger.debug(f"< {name}: {value}")
        logger.debug(f"< {response.text}")

    def close(self):
        """Close the HTTP client."""
        if self._client:
            self._client.close()
            self._client = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
