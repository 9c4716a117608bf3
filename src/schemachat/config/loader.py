# src/schemachat/config/loader.py
"""
Layered settings loading and API key resolution.

Settings are assembled with ``confy`` from, in increasing priority:
the packaged ``default_config.toml``, an optional user TOML file,
environment variables carrying ``env_prefix``, and explicit overrides.
The ``[schemachat]`` section is then validated into :class:`ClientSettings`.
"""

import importlib.resources
import logging
import os
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from ..exceptions import ConfigError
from .models import ClientSettings, ContextConfig

logger = logging.getLogger(__name__)

DEFAULT_ENV_PREFIX = "SCHEMACHAT"
DEFAULT_RC_FILE = "~/.schemachatrc"

# Provider name (as in the schema's provider.name) -> environment variable
PROVIDER_API_KEY_ENV: Dict[str, str] = {
    "openai": "OA_API_KEY",
    "deepseek": "DS_API_KEY",
    "claude": "CL_API_KEY",
    "mistral": "MS_API_KEY",
}


def _load_default_config() -> Dict[str, Any]:
    resource = importlib.resources.files("schemachat.config").joinpath("default_config.toml")
    with resource.open("rb") as f:
        return tomllib.load(f)


def load_settings(
    config_file_path: Optional[str] = None,
    env_prefix: Optional[str] = DEFAULT_ENV_PREFIX,
    overrides: Optional[Dict[str, Any]] = None,
) -> ClientSettings:
    """
    Load and validate client settings.

    Args:
        config_file_path: Optional TOML file merged over the packaged defaults.
        env_prefix: Prefix for environment variable overrides.
        overrides: Dotted-key dictionary merged last (highest priority),
                   e.g. ``{"schemachat.timeout": 10}``.

    Returns:
        The validated ClientSettings.

    Raises:
        ConfigError: If confy cannot assemble the configuration or the result
                     fails validation.
    """
    try:
        from confy.loader import Config as ConfyConfig

        config = ConfyConfig(
            defaults=_load_default_config(),
            file_path=config_file_path,
            prefix=env_prefix,
            overrides_dict=overrides,
        )
    except Exception as e:
        raise ConfigError(f"schemachat configuration loading failed: {e}")

    section: Dict[str, Any] = {
        # An empty directory string in TOML means "bundled schemas"
        "schema_directory": config.get("schemachat.schema_directory") or None,
        "timeout": config.get("schemachat.timeout", 30.0),
        "max_retries": config.get("schemachat.max_retries", 3),
        "log_level": config.get("schemachat.log_level", "INFO"),
        "rc_file": config.get("schemachat.rc_file") or None,
    }
    context_section: Dict[str, Any] = {}
    for key in ContextConfig.model_fields:
        value = config.get(f"schemachat.context.{key}")
        if value is not None:
            context_section[key] = dict(value) if key == "custom_parameters" else value
    section["context"] = context_section

    try:
        settings = ClientSettings.model_validate(section)
    except PydanticValidationError as e:
        raise ConfigError(f"Invalid schemachat configuration: {e}")

    logging.getLogger("schemachat").setLevel(settings.log_level)
    logger.debug(f"Loaded settings (schema_directory={settings.schema_directory}, timeout={settings.timeout})")
    return settings


def parse_rc_file(path: str | Path) -> Dict[str, str]:
    """
    Parse a ``KEY=VALUE`` file. Whitespace around keys and values is trimmed,
    lines without ``=`` are ignored, and a missing file yields an empty dict.
    """
    rc_path = Path(path).expanduser()
    values: Dict[str, str] = {}
    if not rc_path.is_file():
        return values

    with open(rc_path, encoding="utf-8") as f:
        for line in f:
            key, sep, value = line.partition("=")
            if not sep:
                continue
            key = key.strip()
            if key:
                values[key] = value.strip()
    return values


def resolve_api_key(provider_name: str, rc_path: Optional[str | Path] = None) -> str:
    """
    Find the API key for a provider.

    The provider's environment variable wins; otherwise the rc file is
    consulted under the same variable name. Unknown providers and missing
    keys resolve to an empty string.
    """
    env_var = PROVIDER_API_KEY_ENV.get(provider_name.lower())
    if env_var is None:
        logger.debug(f"No API key variable known for provider '{provider_name}'")
        return ""

    value = os.environ.get(env_var)
    if value:
        return value

    return parse_rc_file(rc_path or DEFAULT_RC_FILE).get(env_var, "")
