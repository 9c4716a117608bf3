# src/schemachat/transport/httpx_transport.py
"""
httpx-backed implementation of the transport contract.

Both ``post`` and ``post_stream`` read the body incrementally so a
``cancel_check`` predicate can be polled between received chunks; when it
returns True the transfer is abandoned and the response reports failure.
"""

import json
import logging
from typing import Any, Dict, Mapping, Optional

import httpx

from .base import CancelCheck, ChunkCallback, CompletionCallback, HttpResponse, Transport

DEFAULT_TIMEOUT = 30.0
USER_AGENT = "schemachat"

CANCELLED_MESSAGE = "Request cancelled"


class HttpxTransport(Transport):
    """
    Synchronous transport on top of ``httpx.Client``.

    Args:
        timeout: Timeout in seconds applied to every request.
        headers: Initial request headers.
        client: Pre-configured client (e.g. one built on ``httpx.MockTransport``);
                when given, the transport does not own it and ``close`` leaves it open.
        logger: Logger to use instead of the module logger.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        headers: Optional[Mapping[str, str]] = None,
        client: Optional[httpx.Client] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._logger = logger or logging.getLogger(__name__)
        self._timeout = timeout
        self._headers: Dict[str, str] = dict(headers or {})
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout, headers={"User-Agent": USER_AGENT})

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def headers(self) -> Dict[str, str]:
        return dict(self._headers)

    def set_headers(self, headers: Mapping[str, str]) -> None:
        self._headers = dict(headers)

    def set_timeout(self, timeout: float) -> None:
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self._timeout = timeout

    def _encode(self, payload: Dict[str, Any]) -> bytes:
        return json.dumps(payload).encode("utf-8")

    def _request_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        headers.update(self._headers)
        return headers

    def post(
        self, url: str, payload: Dict[str, Any], cancel_check: Optional[CancelCheck] = None
    ) -> HttpResponse:
        response = HttpResponse()
        if not url:
            response.error_message = "URL cannot be empty"
            self._logger.error(response.error_message)
            return response
        if cancel_check is not None and cancel_check():
            response.error_message = CANCELLED_MESSAGE
            return response

        self._logger.debug(f"POST {url}")
        try:
            with self._client.stream(
                "POST", url, content=self._encode(payload), headers=self._request_headers(), timeout=self._timeout
            ) as http_response:
                response.status_code = http_response.status_code
                response.headers = dict(http_response.headers)
                body = bytearray()
                for chunk in http_response.iter_bytes():
                    if cancel_check is not None and cancel_check():
                        response.error_message = CANCELLED_MESSAGE
                        self._logger.info(f"POST {url} cancelled after {len(body)} bytes")
                        return response
                    body.extend(chunk)
                response.body = body.decode(http_response.encoding or "utf-8", errors="replace")
        except httpx.HTTPError as e:
            response.error_message = f"HTTP error: {e}"
            self._logger.error(f"POST {url} failed: {e}")
            return response

        response.success = 200 <= response.status_code < 300
        if not response.success:
            response.error_message = f"HTTP {response.status_code}"
            self._logger.error(f"POST {url} returned status {response.status_code}")
        return response

    def post_stream(
        self,
        url: str,
        payload: Dict[str, Any],
        on_chunk: ChunkCallback,
        on_complete: Optional[CompletionCallback] = None,
        cancel_check: Optional[CancelCheck] = None,
    ) -> HttpResponse:
        response = HttpResponse()
        try:
            self._stream_into(response, url, payload, on_chunk, cancel_check)
        finally:
            if on_complete is not None:
                on_complete(response)
        return response

    def _stream_into(
        self,
        response: HttpResponse,
        url: str,
        payload: Dict[str, Any],
        on_chunk: ChunkCallback,
        cancel_check: Optional[CancelCheck],
    ) -> None:
        if not url:
            response.error_message = "URL cannot be empty"
            self._logger.error(response.error_message)
            return

        self._logger.debug(f"POST (stream) {url}")
        try:
            with self._client.stream(
                "POST", url, content=self._encode(payload), headers=self._request_headers(), timeout=self._timeout
            ) as http_response:
                response.status_code = http_response.status_code
                response.headers = dict(http_response.headers)

                if not 200 <= http_response.status_code < 300:
                    response.body = http_response.read().decode("utf-8", errors="replace")
                    response.error_message = f"HTTP {response.status_code}"
                    self._logger.error(f"Streaming POST {url} returned status {response.status_code}")
                    return

                for text in http_response.iter_text():
                    if cancel_check is not None and cancel_check():
                        response.error_message = CANCELLED_MESSAGE
                        self._logger.info(f"Streaming POST {url} cancelled")
                        return
                    if text:
                        on_chunk(text)
        except httpx.HTTPError as e:
            response.error_message = f"HTTP error: {e}"
            self._logger.error(f"Streaming POST {url} failed: {e}")
            return

        response.success = True

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "HttpxTransport":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
