# src/schemachat/exceptions.py
"""
Custom exceptions for the schemachat library.

This module defines a hierarchy of custom exception classes so applications
can tell apart the different ways a schema-driven exchange can fail:
broken schemas, rejected inputs, transport failures and unreadable responses.
"""

from typing import Optional


class SchemaChatError(Exception):
    """Base class for all schemachat specific errors."""
    def __init__(self, message: str = "An unspecified error occurred in schemachat."):
        super().__init__(message)

class ConfigError(SchemaChatError):
    """Raised for errors related to configuration loading or validation."""
    def __init__(self, message: str = "Configuration error."):
        super().__init__(message)

class SchemaError(SchemaChatError, ValueError):
    """Raised when a provider schema is missing, unparsable or structurally incomplete."""
    def __init__(self, message: str = "Schema error.", path: Optional[str] = None):
        self.path = path
        super().__init__(message)

class ValidationError(SchemaChatError, ValueError):
    """
    Raised when a mutation violates a constraint declared by the provider schema
    (unknown model, invalid role, out-of-range parameter, empty API key...).
    """
    def __init__(self, message: str = "Validation error.", field: Optional[str] = None):
        self.field = field
        super().__init__(message)

class StreamingNotSupportedError(SchemaChatError):
    """Raised when a streaming send is attempted against a provider without streaming."""
    def __init__(self, provider_name: str = "Unknown", message: str = "Streaming is not supported."):
        self.provider_name = provider_name
        super().__init__(f"{message} Provider: '{provider_name}'")

class NoUserMessageError(SchemaChatError):
    """Raised when a context-only send finds no 'user' message in the transcript."""
    def __init__(self, message: str = "No user message found in the current context."):
        super().__init__(message)

class ProviderError(SchemaChatError, RuntimeError):
    """Raised for errors originating from the transport or the provider API (network, non-2xx)."""
    def __init__(self, provider_name: str = "Unknown", message: str = "Provider error.",
                 status_code: Optional[int] = None):
        self.provider_name = provider_name
        self.status_code = status_code
        self.detail = message
        super().__init__(f"Error with provider '{provider_name}': {message}")

class ResponseParseError(ProviderError):
    """Raised when a response body is not valid JSON."""
    def __init__(self, provider_name: str = "Unknown", message: str = "Failed to parse API response.",
                 status_code: Optional[int] = None):
        super().__init__(provider_name, message, status_code)

class ExtractionError(SchemaChatError, RuntimeError):
    """Raised when a declared response JSON path cannot be resolved against a response."""
    def __init__(self, message: str = "Failed to extract value from response.", path: Optional[list] = None):
        self.path = list(path) if path is not None else []
        super().__init__(message)

class BuilderStateError(SchemaChatError):
    """Raised when ChatAPIBuilder.build() is called before a schema was provided."""
    def __init__(self, message: str = "A schema must be set before build() can be called."):
        super().__init__(message)
