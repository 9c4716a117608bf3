# src/schemachat/config/__init__.py
"""
Configuration models and loaders for schemachat.

``ContextConfig`` drives a single context; ``ClientSettings`` is built from
layered sources (packaged defaults, user TOML, environment, overrides) by
``load_settings``. API keys are looked up with ``resolve_api_key``.
"""

from .loader import (
    PROVIDER_API_KEY_ENV,
    load_settings,
    parse_rc_file,
    resolve_api_key,
)
from .models import ClientSettings, ContextConfig

__all__ = [
    "ClientSettings",
    "ContextConfig",
    "PROVIDER_API_KEY_ENV",
    "load_settings",
    "parse_rc_file",
    "resolve_api_key",
]
