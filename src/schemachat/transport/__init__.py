# src/schemachat/transport/__init__.py
"""
HTTP transports used by the chat facade.
"""

from .base import CancelCheck, ChunkCallback, CompletionCallback, HttpResponse, Transport
from .httpx_transport import HttpxTransport

__all__ = [
    "CancelCheck",
    "ChunkCallback",
    "CompletionCallback",
    "HttpResponse",
    "HttpxTransport",
    "Transport",
]
