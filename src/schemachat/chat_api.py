# src/schemachat/chat_api.py
"""
Client facade for schema-driven chat exchanges.

:class:`ChatAPI` drives one exchange at a time: the context builds the
request and extracts the reply, the transport moves the bytes. Use
:class:`ChatAPIBuilder` (or :func:`create_chat_api` for settings-driven
setup) to assemble one.

Example:
    >>> chat = (ChatAPIBuilder()
    ...         .schema("schemas/openai.json")
    ...         .api_key(os.environ["OA_API_KEY"])
    ...         .build())
    >>> chat.send_message("What is the capital of France?")
    'Paris.'
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .config.loader import resolve_api_key
from .config.models import ClientSettings, ContextConfig
from .context.engine import ChatContext
from .exceptions import (
    BuilderStateError,
    NoUserMessageError,
    ProviderError,
    ResponseParseError,
    StreamingNotSupportedError,
)
from .factory import ContextFactory
from .registry import BUNDLED_SCHEMA_DIR, SchemaRegistry
from .streaming import SSEChunkParser
from .transport.base import CancelCheck, ChunkCallback, CompletionCallback, HttpResponse, Transport
from .transport.httpx_transport import DEFAULT_TIMEOUT, HttpxTransport

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3


def _schema_timeout(context: ChatContext) -> float:
    """``api.timeout`` from the schema (milliseconds) in seconds, or the default."""
    api = context.get_schema().get("api") or {}
    timeout_ms = api.get("timeout")
    if isinstance(timeout_ms, (int, float)) and not isinstance(timeout_ms, bool) and timeout_ms > 0:
        return timeout_ms / 1000.0
    return DEFAULT_TIMEOUT


class ChatAPI:
    """
    Sends messages through a :class:`ChatContext` and a :class:`Transport`.

    ``max_retries`` is recorded for callers and transports that implement a
    retry policy; sends themselves are attempted exactly once.
    """

    def __init__(
        self,
        context: ChatContext,
        transport: Optional[Transport] = None,
        timeout: Optional[float] = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        logger: Optional[logging.Logger] = None,
    ):
        self._context = context
        self._logger = logger or logging.getLogger(__name__)
        self._timeout = timeout if timeout is not None else _schema_timeout(context)
        self._max_retries = max_retries
        if transport is None:
            transport = HttpxTransport(timeout=self._timeout, logger=self._logger)
        else:
            transport.set_timeout(self._timeout)
        self._transport = transport

    @property
    def context(self) -> ChatContext:
        return self._context

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def max_retries(self) -> int:
        return self._max_retries

    def get_context(self) -> ChatContext:
        return self._context

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    def send_message(self, message: Optional[str] = None, cancel_check: Optional[CancelCheck] = None) -> str:
        """
        Send a message and return the reply text.

        With ``message`` given, previous messages are cleared and the text
        becomes the only user message. With ``message=None`` the current
        transcript is sent as-is (multi-turn use).

        Raises:
            NoUserMessageError: ``message`` is None and the transcript has no user message.
            ProviderError: The transport failed or returned a non-2xx status.
            ResponseParseError: The response body is not JSON.
            ExtractionError: The reply does not contain the schema's text path.
        """
        self._prepare(message)
        request = self._context.build_request()

        self._logger.info(
            f"Sending request to '{self._context.get_provider_name()}' "
            f"(model: {request.get('model')}, messages: {len(request.get('messages', []))})"
        )
        self._transport.set_headers(self._context.get_headers())
        response = self._transport.post(self._context.get_endpoint(), request, cancel_check)

        if not response.success:
            raise self._provider_error(response)

        try:
            body = json.loads(response.body)
        except json.JSONDecodeError as e:
            self._logger.error(f"Unparsable response from '{self._context.get_provider_name()}': {e}")
            raise ResponseParseError(
                self._context.get_provider_name(),
                f"Failed to parse API response: {e}",
                response.status_code,
            )
        return self._context.extract_text_response(body)

    def send_message_stream(
        self,
        message: Optional[str],
        on_chunk: ChunkCallback,
        on_complete: Optional[CompletionCallback] = None,
        cancel_check: Optional[CancelCheck] = None,
    ) -> HttpResponse:
        """
        Stream a reply, calling ``on_chunk`` with each text fragment.

        ``message`` follows the same rules as in :meth:`send_message`.
        Transport failures are reported to ``on_complete`` when one is given;
        without it they raise ProviderError.

        Raises:
            StreamingNotSupportedError: Before any network call, if the
                schema does not declare streaming support.
            NoUserMessageError: ``message`` is None and the transcript has no user message.
        """
        if not self._context.supports_streaming():
            raise StreamingNotSupportedError(self._context.get_provider_name())

        self._prepare(message)
        request = self._context.build_request(streaming=True)
        request["stream"] = True

        self._logger.info(f"Streaming request to '{self._context.get_provider_name()}'")
        parser = SSEChunkParser(self._context.extract_stream_text, on_chunk, logger=self._logger)

        def complete(response: HttpResponse) -> None:
            parser.flush()
            if on_complete is not None:
                on_complete(response)

        self._transport.set_headers(self._context.get_headers())
        response = self._transport.post_stream(
            self._context.get_endpoint(), request, parser.feed, complete, cancel_check
        )
        parser.flush()

        if not response.success and on_complete is None:
            raise self._provider_error(response)
        return response

    async def send_message_async(
        self, message: Optional[str] = None, cancel_check: Optional[CancelCheck] = None
    ) -> str:
        """Run :meth:`send_message` in a worker thread."""
        return await asyncio.to_thread(self.send_message, message, cancel_check)

    async def send_message_stream_async(
        self,
        message: Optional[str],
        on_chunk: ChunkCallback,
        on_complete: Optional[CompletionCallback] = None,
        cancel_check: Optional[CancelCheck] = None,
    ) -> HttpResponse:
        """Run :meth:`send_message_stream` in a worker thread; callbacks fire on that thread."""
        return await asyncio.to_thread(self.send_message_stream, message, on_chunk, on_complete, cancel_check)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _prepare(self, message: Optional[str]) -> None:
        if message is not None:
            self._context.clear_user_messages()
            self._context.add_user_message(message)
        elif not any(m.get("role") == "user" for m in self._context.get_messages()):
            raise NoUserMessageError()

    def _provider_error(self, response: HttpResponse) -> ProviderError:
        detail = response.error_message or "API request failed"
        if response.body:
            try:
                detail = f"{detail}: {self._context.extract_error(json.loads(response.body))}"
            except json.JSONDecodeError:
                detail = f"{detail}: {response.body[:200]}"
        self._logger.error(f"API request to '{self._context.get_provider_name()}' failed: {detail}")
        return ProviderError(self._context.get_provider_name(), detail, response.status_code or None)

    def close(self) -> None:
        self._transport.close()

    def __enter__(self) -> "ChatAPI":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class ChatAPIBuilder:
    """
    Two-stage builder: ``schema()`` must be called before ``build()``.

    The other setters may be called in any order.
    """

    def __init__(self) -> None:
        self._schema: Union[str, Path, Dict[str, Any], None] = None
        self._api_key: Optional[str] = None
        self._config: Optional[ContextConfig] = None
        self._timeout: Optional[float] = None
        self._max_retries: int = DEFAULT_MAX_RETRIES
        self._transport: Optional[Transport] = None
        self._logger: Optional[logging.Logger] = None

    @property
    def has_schema(self) -> bool:
        return self._schema is not None

    def schema(self, schema: Union[str, Path, Dict[str, Any]]) -> "ChatAPIBuilder":
        """Set the schema as a file path or a parsed document."""
        self._schema = schema
        return self

    def api_key(self, key: str) -> "ChatAPIBuilder":
        self._api_key = key
        return self

    def config(self, config: ContextConfig) -> "ChatAPIBuilder":
        self._config = config
        return self

    def timeout(self, seconds: float) -> "ChatAPIBuilder":
        if seconds <= 0:
            raise ValueError("timeout must be positive")
        self._timeout = seconds
        return self

    def max_retries(self, retries: int) -> "ChatAPIBuilder":
        if retries < 0:
            raise ValueError("max_retries cannot be negative")
        self._max_retries = retries
        return self

    def transport(self, transport: Transport) -> "ChatAPIBuilder":
        self._transport = transport
        return self

    def logger(self, logger: logging.Logger) -> "ChatAPIBuilder":
        self._logger = logger
        return self

    def build(self) -> ChatAPI:
        """
        Raises:
            BuilderStateError: If no schema was set.
            SchemaError: If the schema is invalid.
            ValidationError: If the API key is empty.
        """
        if self._schema is None:
            raise BuilderStateError()

        context = ChatContext(self._schema, self._config, logger=self._logger)
        if self._api_key is not None:
            context.set_api_key(self._api_key)
        return ChatAPI(
            context,
            transport=self._transport,
            timeout=self._timeout,
            max_retries=self._max_retries,
            logger=self._logger,
        )


def create_chat_api(
    provider_name: str,
    settings: Optional[ClientSettings] = None,
    factory: Optional[ContextFactory] = None,
    transport: Optional[Transport] = None,
) -> ChatAPI:
    """
    Build a ChatAPI for a provider from settings.

    The schema comes from ``factory`` (or a registry over
    ``settings.schema_directory``, defaulting to the bundled schemas) and the
    API key from :func:`schemachat.config.resolve_api_key`; a missing key
    leaves the placeholder unset rather than failing.
    """
    settings = settings or ClientSettings()
    if factory is None:
        directory = settings.schema_directory or BUNDLED_SCHEMA_DIR
        factory = ContextFactory(SchemaRegistry.create().set_schema_directory(directory).build())

    context = factory.create_context(provider_name, settings.context)
    api_key = resolve_api_key(provider_name, settings.rc_file)
    if api_key:
        context.set_api_key(api_key)
    else:
        logger.warning(f"No API key found for provider '{provider_name}'")

    return ChatAPI(context, transport=transport, timeout=settings.timeout, max_retries=settings.max_retries)
