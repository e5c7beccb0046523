"""Shared test helpers: a recording transport and a controllable clock."""

import json
from typing import Any, List, Optional, Tuple
from unittest.mock import patch

import pytest

from lightspeed_xseries import LightspeedClient, Settings

STORE_URL = "https://mystore.retail.lightspeed.app"


class FakeTransport:
    """Stands in for Transport: records requests and replays queued responses."""

    def __init__(self, base_url, token_type, access_token, config=None):
        self.url = base_url
        self.token_type = token_type
        self.access_token = access_token
        self.config = config
        self.debug = False
        self.status_code = 0
        self.requests: List[Tuple[str, str, Optional[str]]] = []
        self.responses: List[Tuple[int, str]] = []
        self.default_response: Tuple[int, str] = (200, '{"data": []}')

    def queue(self, body: Any, status: int = 200) -> None:
        """Queue a response; dicts and lists are JSON-encoded."""
        if not isinstance(body, str):
            body = json.dumps(body)
        self.responses.append((status, body))

    def set_debug(self, enabled=True):
        self.debug = enabled

    def get(self, path):
        return self._respond("get", path)

    def post(self, path, body):
        return self._respond("post", path, body)

    def put(self, path, body):
        return self._respond("put", path, body)

    def delete(self, path):
        return self._respond("delete", path)

    def _respond(self, method, path, body=None):
        self.requests.append((method, path, body))
        status, text = self.responses.pop(0) if self.responses else self.default_response
        self.status_code = status
        return text

    @property
    def last_method(self):
        return self.requests[-1][0]

    @property
    def last_path(self):
        return self.requests[-1][1]

    @property
    def last_data(self):
        return self.requests[-1][2]


class FakeClock:
    """Replaces time.time/time.sleep; sleeping advances the clock."""

    def __init__(self, start: float = 1_800_000_000.0):
        self.now = start
        self.sleeps: List[float] = []

    def time(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def make_client(version=None, settings=None, **kwargs) -> LightspeedClient:
    """Client wired to a FakeTransport and isolated settings."""
    return LightspeedClient(
        STORE_URL,
        "Bearer",
        "test-token",
        version,
        settings=settings or Settings(_env_file=None),
        transport_class=FakeTransport,
        **kwargs
    )


@pytest.fixture
def clock():
    """Patch the client's clock so rate-limit waits return immediately."""
    fake = FakeClock()
    with patch("lightspeed_xseries.client.time") as mock_time:
        mock_time.time.side_effect = fake.time
        mock_time.sleep.side_effect = fake.sleep
        yield fake
