"""Tests for settings validation and log redaction."""

import json
import logging

import pytest
from pydantic import ValidationError as PydanticValidationError

from scriptdesk.core.config import ConfigurationError, Environment, Settings
from scriptdesk.core.logging_config import _ContextFilter, _JsonFormatter, mask_url, request_id_var
from scriptdesk.schemas.script import ScriptStatus


def _settings(**overrides):
    return Settings(_env_file=None, **overrides)


class TestSettings:

    def test_log_level_normalised(self):
        assert _settings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(PydanticValidationError):
            _settings(log_level="chatty")

    def test_invalid_log_format(self):
        with pytest.raises(PydanticValidationError):
            _settings(log_format="xml")

    def test_cors_origins_split(self):
        settings = _settings(cors_allowed_origins="https://a.example, https://b.example,")
        assert settings.get_cors_origins() == ["https://a.example", "https://b.example"]

    def test_wildcard_cors_rejected(self):
        with pytest.raises(ValueError):
            _settings(cors_allowed_origins="*").get_cors_origins()

    def test_production_rejects_sqlite(self):
        settings = _settings(
            environment=Environment.PRODUCTION,
            cors_allowed_origins="https://app.example",
        )
        with pytest.raises(ConfigurationError):
            settings.validate_production_config()

    def test_development_tolerates_sqlite(self):
        _settings().validate_production_config()


class TestMaskUrl:

    def test_password_redacted(self):
        assert mask_url("postgresql://app:s3cret@db:5432/scripts") == "postgresql://app:***@db:5432/scripts"

    def test_url_without_credentials_unchanged(self):
        assert mask_url("sqlite:///./scriptdesk.db") == "sqlite:///./scriptdesk.db"


def _record(msg, *args, **extra):
    record = logging.LogRecord("scriptdesk.test", logging.INFO, __file__, 1, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestLogRecords:

    def test_url_in_args_is_masked(self):
        record = _record("Connecting to %s", "postgresql://app:s3cret@db/scripts")
        _ContextFilter().filter(record)
        assert record.getMessage() == "Connecting to postgresql://app:***@db/scripts"

    def test_request_id_stamped(self):
        token = request_id_var.set("req-42")
        try:
            record = _record("hello")
            _ContextFilter().filter(record)
        finally:
            request_id_var.reset(token)
        assert record.request_id == "req-42"

    def test_json_line_carries_request_id_and_extras(self):
        token = request_id_var.set("req-7")
        try:
            record = _record("Moved script", script_id="s-1", status=ScriptStatus.FINAL)
            _ContextFilter().filter(record)
        finally:
            request_id_var.reset(token)

        payload = json.loads(_JsonFormatter().format(record))
        assert payload["message"] == "Moved script"
        assert payload["request_id"] == "req-7"
        assert payload["script_id"] == "s-1"
        assert payload["status"] == "final"
        assert "args" not in payload

    def test_json_line_omits_request_id_outside_requests(self):
        record = _record("startup")
        _ContextFilter().filter(record)
        assert "request_id" not in json.loads(_JsonFormatter().format(record))
