# src/schemachat/__init__.py
"""
schemachat - One client API for many LLM chat providers, driven by JSON schemas.

Each provider is described by a declarative schema (endpoint, headers,
request template, message formats, response paths, parameter constraints).
A ChatContext interprets the schema; ChatAPI sends through a pluggable
transport. Schemas for OpenAI, Claude, DeepSeek and Mistral are bundled.
"""

from importlib.metadata import PackageNotFoundError, version

from .chat_api import ChatAPI, ChatAPIBuilder, create_chat_api
from .config import ClientSettings, ContextConfig, load_settings, resolve_api_key
from .context import ChatContext
from .exceptions import (
    BuilderStateError,
    ConfigError,
    ExtractionError,
    NoUserMessageError,
    ProviderError,
    ResponseParseError,
    SchemaChatError,
    SchemaError,
    StreamingNotSupportedError,
    ValidationError,
)
from .factory import CacheStats, ContextFactory, ProviderContext
from .logging_config import configure_logging
from .registry import SchemaRegistry
from .transport import HttpResponse, HttpxTransport, Transport

try:
    __version__ = version("schemachat")
except PackageNotFoundError:
    __version__ = "0.0.0"


__all__ = [
    # ==========================================================================
    # Core
    # ==========================================================================
    "ChatAPI",
    "ChatAPIBuilder",
    "ChatContext",
    "ContextFactory",
    "ProviderContext",
    "CacheStats",
    "SchemaRegistry",
    "create_chat_api",

    # ==========================================================================
    # Transport
    # ==========================================================================
    "Transport",
    "HttpxTransport",
    "HttpResponse",

    # ==========================================================================
    # Configuration & Logging
    # ==========================================================================
    "ContextConfig",
    "ClientSettings",
    "load_settings",
    "resolve_api_key",
    "configure_logging",

    # ==========================================================================
    # Exceptions
    # ==========================================================================
    "SchemaChatError",
    "ConfigError",
    "SchemaError",
    "ValidationError",
    "StreamingNotSupportedError",
    "NoUserMessageError",
    "ProviderError",
    "ResponseParseError",
    "ExtractionError",
    "BuilderStateError",

    "__version__",
]
