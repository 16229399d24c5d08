"""Tests for environment-driven settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from sfudash.config import Settings


class TestDefaults:
    def test_defaults(self, monkeypatch):
        for name in ("SFUDASH_RATE_LIMIT", "SFUDASH_HEARTBEAT_INTERVAL", "SFUDASH_SORA_API_URL"):
            monkeypatch.delenv(name, raising=False)
        s = Settings()
        assert s.heartbeat_interval == 15.0
        assert s.rate_limit == "60/minute"
        assert s.rate_limit_enabled is True
        assert s.sora_api_url == "http://127.0.0.1:3000/"
        assert s.project_name == "sfu-dashboard"

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("SFUDASH_HEARTBEAT_INTERVAL", "5")
        monkeypatch.setenv("SFUDASH_AUTH_CHANNEL_PREFIX", "sora-")
        monkeypatch.setenv("SFUDASH_LOG_FORMAT", "JSON")
        s = Settings()
        assert s.heartbeat_interval == 5.0
        assert s.auth_channel_prefix == "sora-"
        assert s.log_format == "json"

    def test_rate_limit_can_be_disabled(self, monkeypatch):
        monkeypatch.setenv("SFUDASH_RATE_LIMIT", "None")
        assert Settings().rate_limit_enabled is False

    def test_cors_origin_list(self, monkeypatch):
        monkeypatch.setenv("SFUDASH_CORS_ORIGINS", "http://a.test, http://b.test,")
        assert Settings().cors_origin_list == ["http://a.test", "http://b.test"]


class TestValidation:
    @pytest.mark.parametrize(
        ("name", "value"),
        [
            ("SFUDASH_LOG_FORMAT", "xml"),
            ("SFUDASH_LOG_LEVEL", "LOUD"),
            ("SFUDASH_SORA_API_URL", "ftp://sfu.test/"),
            ("SFUDASH_HEARTBEAT_INTERVAL", "0"),
            ("SFUDASH_PORT", "70000"),
        ],
    )
    def test_invalid_values_rejected(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)
        with pytest.raises(ValidationError):
            Settings()
