# src/schemachat/transport/base.py
"""
Transport contract consumed by :class:`schemachat.chat_api.ChatAPI`.

A transport performs a JSON POST (plain or streaming) with headers supplied
by the context. It reports failures in the returned :class:`HttpResponse`
rather than raising, so callers decide how to surface them.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional

logger = logging.getLogger(__name__)

# Returns True to abort the transfer
CancelCheck = Callable[[], bool]
ChunkCallback = Callable[[str], None]


@dataclass
class HttpResponse:
    """Outcome of one HTTP exchange. ``success`` means a 2xx status was received."""

    status_code: int = 0
    body: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    success: bool = False
    error_message: str = ""


CompletionCallback = Callable[[HttpResponse], None]


class Transport(ABC):
    """Abstract HTTP transport."""

    @abstractmethod
    def set_headers(self, headers: Mapping[str, str]) -> None:
        """Replace the headers sent with subsequent requests."""
        raise NotImplementedError

    @abstractmethod
    def set_timeout(self, timeout: float) -> None:
        """Set the request timeout in seconds."""
        raise NotImplementedError

    @abstractmethod
    def post(
        self, url: str, payload: Dict[str, Any], cancel_check: Optional[CancelCheck] = None
    ) -> HttpResponse:
        """POST ``payload`` as JSON and return the buffered response."""
        raise NotImplementedError

    @abstractmethod
    def post_stream(
        self,
        url: str,
        payload: Dict[str, Any],
        on_chunk: ChunkCallback,
        on_complete: Optional[CompletionCallback] = None,
        cancel_check: Optional[CancelCheck] = None,
    ) -> HttpResponse:
        """
        POST ``payload`` and deliver the body incrementally.

        ``on_chunk`` receives decoded text as it arrives (only for 2xx
        responses). ``on_complete`` is always invoked once with the final
        response, which is also returned. ``body`` on the final response
        holds the error body for non-2xx statuses and is empty otherwise.
        """
        raise NotImplementedError

    def close(self) -> None:
        """Release any held connections."""
        return None
