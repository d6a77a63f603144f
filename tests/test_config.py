"""Tests for settings loading and API base normalization."""

import pytest

from quota_engine.config import (
    DEFAULT_API_BASE,
    DashboardSettings,
    is_local_host,
    normalize_api_base,
)
from quota_engine.errors import ConfigurationError


@pytest.mark.parametrize(
    "value,expected",
    [
        ("0.0.0.0:8317", "http://127.0.0.1:8317"),
        ("localhost", "http://localhost:8317"),
        ("192.168.1.5:9000", "http://192.168.1.5:9000"),
        ("proxy.example.com", "https://proxy.example.com:8317"),
        ("proxy.example.com:443", "https://proxy.example.com:443"),
        ("https://proxy.example.com/", "https://proxy.example.com"),
        ("http://0.0.0.0:8317", "http://127.0.0.1:8317"),
        ("  http://127.0.0.1:8317  ", "http://127.0.0.1:8317"),
        ("[::]:8317", "http://[::1]:8317"),
        ("http://[::]:9000/", "http://[::1]:9000"),
        ("intranet-box", "http://intranet-box:8317"),
    ],
)
def test_normalize_api_base(value, expected):
    assert normalize_api_base(value) == expected


@pytest.mark.parametrize("value", ["", "   ", "localhost:abc"])
def test_normalize_api_base_rejects_bad_input(value):
    with pytest.raises(ConfigurationError):
        normalize_api_base(value)


def test_is_local_host():
    assert is_local_host("172.20.0.1")
    assert not is_local_host("172.40.0.1")
    assert not is_local_host("example.com")


class TestDashboardSettings:
    def test_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        settings = DashboardSettings.from_env(environ={})
        assert settings.api_base == DEFAULT_API_BASE
        assert settings.management_key == ""
        assert settings.api_keys == []
        assert settings.timeout == 30.0
        assert settings.log_level == "WARNING"

    def test_env_file_and_environment(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text(
            "QUOTA_DASHBOARD_API_BASE=0.0.0.0:9000\n"
            "QUOTA_DASHBOARD_MANAGEMENT_KEY=from-file\n"
            "QUOTA_DASHBOARD_API_KEYS=a, b,,c\n"
        )
        settings = DashboardSettings.from_env(
            env_file,
            environ={"QUOTA_DASHBOARD_MANAGEMENT_KEY": "from-env", "QUOTA_DASHBOARD_LOG_LEVEL": "debug"},
        )
        assert settings.api_base == "http://127.0.0.1:9000"
        assert settings.management_key == "from-env"
        assert settings.api_keys == ["a", "b", "c"]
        assert settings.log_level == "DEBUG"

    def test_bad_values_fall_back(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        settings = DashboardSettings.from_env(
            environ={
                "QUOTA_DASHBOARD_TIMEOUT": "soon",
                "QUOTA_DASHBOARD_QUOTA_TIMEOUT": "0",
                "QUOTA_DASHBOARD_LOG_LEVEL": "chatty",
            }
        )
        assert settings.timeout == 30.0
        assert settings.quota_timeout == 1.0
        assert settings.log_level == "WARNING"

    def test_missing_env_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            DashboardSettings.from_env(tmp_path / "missing.env", environ={})
