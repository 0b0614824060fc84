"""Tests for settings loading and logging setup."""

from pathlib import Path

import pytest

from callrelay.config import Settings, UpstreamConfig, load_settings
from callrelay.main import build_server
from callrelay.utils.logging import _filter_sensitive
from callrelay.utils.platform import get_config_dir, get_data_dir


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ("CALLRELAY_CONFIG", "CALLRELAY_DEBUG", "CALLRELAY_UPSTREAM__AUTH_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("CALLRELAY_CONFIG_DIR", str(tmp_path / "config"))


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.server.port == 9000
        assert settings.server.cors_origin == "*"
        assert settings.stream.keepalive_interval == 25.0
        assert settings.upstream.auth_token == ""
        assert settings.journal.enabled is True
        assert settings.effective_log_level() == "INFO"

    def test_api_base_trailing_slashes_stripped(self):
        assert UpstreamConfig(api_base="http://api.local:8080///").api_base == "http://api.local:8080"

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("CALLRELAY_UPSTREAM__AUTH_TOKEN", "from-env")
        monkeypatch.setenv("CALLRELAY_DEBUG", "1")
        settings = Settings()
        assert settings.upstream.auth_token == "from-env"
        assert settings.effective_log_level() == "DEBUG"

    def test_journal_dir_defaults_under_data_dir(self, tmp_path):
        settings = Settings(data_dir=str(tmp_path))
        assert settings.get_journal_dir() == tmp_path / "logs"
        settings = Settings(journal={"log_dir": str(tmp_path / "raw")})
        assert settings.get_journal_dir() == tmp_path / "raw"


class TestLoadSettings:
    def test_yaml_file(self, tmp_path):
        path = tmp_path / "relay.yaml"
        path.write_text(
            "upstream:\n"
            "  api_base: http://pbx.internal/\n"
            "server:\n"
            "  port: 9100\n"
        )
        settings = load_settings(path)
        assert settings.upstream.api_base == "http://pbx.internal"
        assert settings.server.port == 9100

    def test_missing_file_uses_defaults(self, tmp_path):
        settings = load_settings(tmp_path / "absent.yaml")
        assert settings.server.port == 9000

    def test_default_config_dir(self, tmp_path):
        config_dir = Path(tmp_path / "config")
        config_dir.mkdir()
        (config_dir / "config.yaml").write_text("log_level: WARNING\n")
        assert load_settings().log_level == "WARNING"


class TestBuildServer:
    async def test_journal_disabled(self, tmp_path):
        settings = Settings(data_dir=str(tmp_path), journal={"enabled": False})
        server = build_server(settings)
        assert server._store._journal is None
        await server.stop()

    async def test_journal_enabled(self, tmp_path):
        settings = Settings(data_dir=str(tmp_path))
        server = build_server(settings)
        assert server._store._journal.log_dir == tmp_path / "logs"
        await server.stop()


class TestSensitiveFilter:
    def test_auth_token_redacted(self):
        event = {"event": "proxy", "body": "auth_token=abc123"}
        result = _filter_sensitive(None, "info", event)
        assert "abc123" not in result["body"]
        assert "REDACTED" in result["body"]

    def test_non_strings_untouched(self):
        event = {"event": "x", "status": 200}
        assert _filter_sensitive(None, "info", event) == {"event": "x", "status": 200}

    def test_nested_payload_redacted_without_mutation(self):
        payload = {
            "call_id": "c1",
            "body": {"to": "+1555", "auth_token": "abc123"},
            "legs": [{"Authorization": "Bearer xyz"}],
        }
        result = _filter_sensitive(None, "debug", {"event": "webhook_payload", "payload": payload})

        assert result["payload"]["call_id"] == "c1"
        assert result["payload"]["body"] == {"to": "+1555", "auth_token": "***REDACTED***"}
        assert result["payload"]["legs"] == [{"Authorization": "***REDACTED***"}]
        # The stored event must keep its credential
        assert payload["body"]["auth_token"] == "abc123"

    def test_sensitive_key_redacted(self):
        result = _filter_sensitive(None, "info", {"event": "x", "auth_token": "abc123"})
        assert result["auth_token"] == "***REDACTED***"

    def test_event_name_untouched(self):
        result = _filter_sensitive(None, "info", {"event": "token=rotated"})
        assert result["event"] == "token=rotated"


class TestPlatformDirs:
    def test_env_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CALLRELAY_CONFIG_DIR", str(tmp_path / "cfg"))
        monkeypatch.setenv("CALLRELAY_DATA_DIR", str(tmp_path / "data"))
        assert get_config_dir() == tmp_path / "cfg"
        assert get_data_dir() == tmp_path / "data"

    def test_xdg_on_linux(self, monkeypatch, tmp_path):
        monkeypatch.delenv("CALLRELAY_CONFIG_DIR", raising=False)
        monkeypatch.delenv("CALLRELAY_DATA_DIR", raising=False)
        monkeypatch.setattr("callrelay.utils.platform.get_platform", lambda: "linux")
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xc"))
        monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xd"))
        assert get_config_dir() == tmp_path / "xc" / "callrelay"
        assert get_data_dir() == tmp_path / "xd" / "callrelay"
