"""Tests for settings, transport config, logging setup and exceptions."""

import json
import logging
import sys

import pytest
from pydantic import ValidationError

from lightspeed_xseries import (
    ApplicationError,
    HttpError,
    InvalidVersionFormat,
    LightspeedError,
    Settings,
    TransportConfig,
    get_settings,
    settings,
    setup_logging,
)
from lightspeed_xseries.logging_config import LOGGER_NAME, JsonFormatter


class TestSettings:
    """pydantic-settings configuration."""

    def test_defaults(self):
        config = Settings(_env_file=None)

        assert config.default_version == "2026-01"
        assert config.default_legacy_version == "2.0"
        assert config.platform_host == "retail.lightspeed.app"
        assert config.request_timeout == 120.0
        assert config.oauth_timeout == 30.0
        assert config.allow_time_slip is False
        assert config.rate_limit_fallback_seconds == 60.0
        assert config.rate_limit_poll_interval == 1.0
        assert config.rate_limit_max_wait is None

    def test_environment_variables(self, monkeypatch):
        monkeypatch.setenv("LIGHTSPEED_DEFAULT_VERSION", "2026-04")
        monkeypatch.setenv("LIGHTSPEED_ALLOW_TIME_SLIP", "true")
        monkeypatch.setenv("LIGHTSPEED_RATE_LIMIT_MAX_WAIT", "300")

        config = Settings(_env_file=None)

        assert config.default_version == "2026-04"
        assert config.allow_time_slip is True
        assert config.rate_limit_max_wait == 300.0

    def test_invalid_version_from_environment(self, monkeypatch):
        monkeypatch.setenv("LIGHTSPEED_DEFAULT_VERSION", "2026-4")
        with pytest.raises(ValidationError, match="Invalid API version format"):
            Settings(_env_file=None)

    def test_set_default_version(self):
        config = Settings(_env_file=None)
        config.set_default_version("2026-07")
        assert config.get_default_version() == "2026-07"

    def test_set_default_version_rejects_invalid(self):
        config = Settings(_env_file=None)
        with pytest.raises(InvalidVersionFormat):
            config.set_default_version("2026-7")
        assert config.default_version == "2026-01"

    def test_global_settings(self):
        assert get_settings() is settings


class TestTransportConfig:
    """Transport timeouts and headers."""

    def test_defaults(self):
        config = TransportConfig()
        assert config.timeout == (30.0, 120.0)
        assert config.default_headers["Accept"] == "application/json"
        assert config.default_headers["Content-Type"] == "application/json"

    def test_from_settings(self):
        config = TransportConfig.from_settings(
            Settings(_env_file=None, request_timeout=10.0, user_agent="my-app/1.0")
        )
        assert config.read_timeout == 10.0
        assert config.default_headers["User-Agent"] == "my-app/1.0"

    def test_with_headers_copies(self):
        config = TransportConfig()
        extended = config.with_headers({"X-Trace": "1"})

        assert extended.default_headers["X-Trace"] == "1"
        assert "X-Trace" not in config.default_headers
        assert extended.read_timeout == config.read_timeout

    def test_with_timeout(self):
        config = TransportConfig().with_timeout(5.0)
        assert config.timeout == (30.0, 5.0)


class TestLogging:
    """Logger setup."""

    def setup_method(self):
        self.logger = logging.getLogger(LOGGER_NAME)
        self.saved_handlers = list(self.logger.handlers)
        self.saved_level = self.logger.level

    def teardown_method(self):
        for handler in self.logger.handlers:
            if handler not in self.saved_handlers:
                handler.close()
        self.logger.handlers = self.saved_handlers
        self.logger.setLevel(self.saved_level)

    def test_rich_handler_by_default(self):
        from rich.logging import RichHandler

        logger = setup_logging("DEBUG")

        assert logger.name == LOGGER_NAME
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], RichHandler)

    def test_json_format(self):
        logger = setup_logging("warning", json_format=True)

        assert logger.level == logging.WARNING
        assert isinstance(logger.handlers[0].formatter, JsonFormatter)

    def test_log_file(self, tmp_path):
        log_file = tmp_path / "client.log"
        logger = setup_logging("INFO", log_file=str(log_file), json_format=True)

        assert len(logger.handlers) == 2
        logger.info("hello")
        logger.handlers[1].flush()

        record = json.loads(log_file.read_text().splitlines()[-1])
        assert record["message"] == "hello"
        assert record["level"] == "INFO"

    def test_json_formatter_includes_error_context(self):
        try:
            raise HttpError(404, "Not found", "{}", request_path="/api/2026-01/x")
        except HttpError:
            record = logging.LogRecord(
                LOGGER_NAME, logging.ERROR, __file__, 1, "request failed", None, sys.exc_info()
            )

        data = json.loads(JsonFormatter().format(record))

        assert data["message"] == "request failed"
        assert data["exception_type"] == "HttpError"
        assert data["error_context"] == {"request_path": "/api/2026-01/x"}


class TestExceptions:
    """Exception hierarchy and serialization."""

    def test_all_errors_share_base(self):
        assert isinstance(HttpError(500, "boom"), LightspeedError)
        assert isinstance(ApplicationError("bad"), LightspeedError)
        assert isinstance(InvalidVersionFormat("x"), LightspeedError)

    def test_to_dict(self):
        error = HttpError(502, "Bad gateway", "raw", request_path="/api/x")
        data = error.to_dict()

        assert data["error_type"] == "HttpError"
        assert data["message"] == "HTTP 502: Bad gateway - raw"
        assert data["context"] == {"request_path": "/api/x"}

    def test_errors_are_logged(self, caplog):
        caplog.set_level(logging.ERROR, logger="lightspeed_xseries")
        ApplicationError("Invalid outlet", "outlet_id unknown")
        assert "ApplicationError: Invalid outlet: outlet_id unknown" in caplog.text
