# tests/test_config_loading.py
"""
Tests for settings models, layered loading and API key resolution.
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from schemachat.config import (
    PROVIDER_API_KEY_ENV,
    ClientSettings,
    ContextConfig,
    parse_rc_file,
    resolve_api_key,
)


class TestContextConfig:
    """Tests for the ContextConfig model."""

    def test_defaults(self):
        """Defaults enable validation and caching but not streaming."""
        config = ContextConfig()
        assert config.enable_validation is True
        assert config.enable_caching is True
        assert config.enable_streaming_support is False
        assert config.default_max_tokens is None
        assert config.default_temperature is None
        assert config.custom_parameters == {}

    def test_unknown_field_rejected(self):
        """Typos in option names are errors."""
        with pytest.raises(PydanticValidationError):
            ContextConfig(enable_validaton=False)


class TestClientSettings:
    """Tests for the ClientSettings model."""

    def test_log_level_normalized(self):
        """Level names are upper-cased."""
        assert ClientSettings(log_level="debug").log_level == "DEBUG"

    def test_bad_log_level(self):
        """Unknown level names are rejected."""
        with pytest.raises(PydanticValidationError):
            ClientSettings(log_level="chatty")

    def test_timeout_must_be_positive(self):
        """A zero timeout is rejected."""
        with pytest.raises(PydanticValidationError):
            ClientSettings(timeout=0)

    def test_negative_retries_rejected(self):
        """max_retries cannot be negative."""
        with pytest.raises(PydanticValidationError):
            ClientSettings(max_retries=-1)


class TestLoadSettings:
    """Tests for load_settings() on top of confy."""

    @pytest.fixture(autouse=True)
    def _require_confy(self):
        pytest.importorskip("confy.loader")

    def test_packaged_defaults(self):
        """Without a file the packaged defaults are used."""
        from schemachat.config import load_settings

        settings = load_settings(env_prefix=None)
        assert settings.timeout == 30.0
        assert settings.max_retries == 3
        assert settings.schema_directory is None
        assert settings.context.enable_caching is True

    def test_file_overrides_defaults(self, tmp_path):
        """Values from a user TOML file win over defaults."""
        from schemachat.config import load_settings

        config_file = tmp_path / "chat.toml"
        config_file.write_text(
            '[schemachat]\ntimeout = 12.5\nschema_directory = "/srv/schemas"\n'
            "[schemachat.context]\nenable_caching = false\n",
            encoding="utf-8",
        )
        settings = load_settings(config_file_path=str(config_file), env_prefix=None)
        assert settings.timeout == 12.5
        assert settings.schema_directory == "/srv/schemas"
        assert settings.context.enable_caching is False

    def test_overrides_win(self):
        """Explicit overrides have the highest priority."""
        from schemachat.config import load_settings

        settings = load_settings(env_prefix=None, overrides={"schemachat.max_retries": 7})
        assert settings.max_retries == 7

    def test_invalid_values_raise_config_error(self):
        """Validation failures surface as ConfigError."""
        from schemachat.config import load_settings
        from schemachat.exceptions import ConfigError

        with pytest.raises(ConfigError):
            load_settings(env_prefix=None, overrides={"schemachat.timeout": -1})


class TestParseRcFile:
    """Tests for KEY=VALUE rc file parsing."""

    def test_missing_file(self, tmp_path):
        """A missing file yields no values."""
        assert parse_rc_file(tmp_path / "nope") == {}

    def test_parses_and_trims(self, tmp_path):
        """Keys and values are trimmed; lines without '=' are skipped."""
        rc = tmp_path / ".rc"
        rc.write_text("OA_API_KEY = sk-1 \n# comment line\n\nDS_API_KEY=ds=with=equals\n", encoding="utf-8")
        values = parse_rc_file(rc)
        assert values == {"OA_API_KEY": "sk-1", "DS_API_KEY": "ds=with=equals"}


class TestResolveApiKey:
    """Tests for resolve_api_key()."""

    def test_env_wins(self, monkeypatch, tmp_path):
        """The environment variable takes precedence over the rc file."""
        rc = tmp_path / ".rc"
        rc.write_text("OA_API_KEY=from-file\n", encoding="utf-8")
        monkeypatch.setenv("OA_API_KEY", "from-env")
        assert resolve_api_key("openai", rc) == "from-env"

    def test_rc_fallback(self, monkeypatch, tmp_path):
        """Without an environment variable the rc file is consulted."""
        rc = tmp_path / ".rc"
        rc.write_text("CL_API_KEY=from-file\n", encoding="utf-8")
        monkeypatch.delenv("CL_API_KEY", raising=False)
        assert resolve_api_key("claude", rc) == "from-file"

    def test_missing_everywhere(self, monkeypatch, tmp_path):
        """No key anywhere resolves to an empty string."""
        monkeypatch.delenv("MS_API_KEY", raising=False)
        assert resolve_api_key("mistral", tmp_path / "absent") == ""

    def test_unknown_provider(self):
        """Providers without a known variable resolve to an empty string."""
        assert resolve_api_key("someone-else") == ""

    def test_case_insensitive_provider(self, monkeypatch):
        """Provider names are matched case-insensitively."""
        monkeypatch.setenv("DS_API_KEY", "ds")
        assert resolve_api_key("DeepSeek") == "ds"

    def test_variable_table(self):
        """All bundled providers have a variable."""
        assert set(PROVIDER_API_KEY_ENV) == {"openai", "deepseek", "claude", "mistral"}
