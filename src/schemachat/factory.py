# src/schemachat/factory.py
"""
Context Factory - schema loading with caching and context instantiation.

The factory caches parsed schema documents (keyed by resolved path) and
hands out a fresh :class:`ChatContext` on every ``create_context`` call.
Contexts are never shared through the cache; only the read-only schema
documents are. The cache is guarded by a reader/writer lock so concurrent
lookups do not serialize behind each other.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Generator, Optional

from .config.models import ContextConfig
from .context.engine import ChatContext, load_schema_file
from .exceptions import SchemaError
from .registry import SchemaRegistry

logger = logging.getLogger(__name__)


class ReadWriteLock:
    """Many concurrent readers or one writer; writers are not starved by new readers."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read_lock(self) -> Generator[None, None, None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write_lock(self) -> Generator[None, None, None]:
        with self._cond:
            self._writers_waiting += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


@dataclass(frozen=True)
class CacheStats:
    """Snapshot of the schema cache counters."""

    cache_size: int
    hit_count: int
    miss_count: int

    @property
    def hit_rate(self) -> float:
        total = self.hit_count + self.miss_count
        return self.hit_count / total if total > 0 else 0.0


class ContextFactory:
    """
    Creates contexts for registered providers, reusing parsed schemas.

    Example:
        >>> factory = ContextFactory(SchemaRegistry.create().build())
        >>> ctx = factory.create_context("claude")
        >>> factory.get_cache_stats().miss_count
        1
    """

    def __init__(self, registry: SchemaRegistry, logger: Optional[logging.Logger] = None) -> None:
        if registry is None:
            raise ValueError("Registry cannot be null")
        self._registry = registry
        self._logger = logger or logging.getLogger(__name__)

        self._schema_cache: Dict[str, Dict[str, Any]] = {}
        self._cache_lock = ReadWriteLock()
        self._counter_lock = threading.Lock()
        self._hit_count = 0
        self._miss_count = 0

        self._local = threading.local()

    @property
    def registry(self) -> SchemaRegistry:
        return self._registry

    def create_context(
        self, provider_name: str, config: Optional[ContextConfig] = None
    ) -> ChatContext:
        """
        Build a new context for ``provider_name``.

        With ``config.enable_caching`` off, the schema is read from disk and
        the cache is neither consulted nor populated.

        Raises:
            ValueError: If ``provider_name`` is empty.
            SchemaError: If the schema file is missing, unparsable or invalid.
        """
        config = config or ContextConfig()
        schema_path = self._registry.resolve_schema_path(provider_name)

        if not schema_path.exists():
            raise SchemaError(
                f"Schema file not found for provider: {provider_name} at {schema_path}",
                path=str(schema_path),
            )

        if not config.enable_caching:
            return ChatContext(schema_path, config, logger=self._logger)

        schema = self._get_cached_schema(str(schema_path))
        if schema is None:
            schema = self._load_and_cache_schema(str(schema_path))
        return ChatContext(schema, config, logger=self._logger)

    def get_thread_local_context(
        self, provider_name: str, config: Optional[ContextConfig] = None
    ) -> ChatContext:
        """
        Return this thread's context for ``provider_name``, creating it on first use.

        ``config`` only applies to that first creation.
        """
        contexts: Dict[str, ChatContext] | None = getattr(self._local, "contexts", None)
        if contexts is None:
            contexts = {}
            self._local.contexts = contexts

        context = contexts.get(provider_name)
        if context is None:
            context = self.create_context(provider_name, config)
            contexts[provider_name] = context
            self._logger.debug(
                f"Created thread-local context for '{provider_name}' "
                f"in thread {threading.current_thread().name}"
            )
        return context

    def clear_cache(self) -> None:
        """Drop every cached schema; later contexts reparse from disk."""
        with self._cache_lock.write_lock():
            self._schema_cache.clear()
        self._logger.debug("Schema cache cleared")

    def get_cache_stats(self) -> CacheStats:
        with self._cache_lock.read_lock():
            size = len(self._schema_cache)
        with self._counter_lock:
            return CacheStats(cache_size=size, hit_count=self._hit_count, miss_count=self._miss_count)

    def _get_cached_schema(self, key: str) -> Dict[str, Any] | None:
        with self._cache_lock.read_lock():
            schema = self._schema_cache.get(key)
        with self._counter_lock:
            if schema is not None:
                self._hit_count += 1
            else:
                self._miss_count += 1
        self._logger.debug(f"Schema cache {'hit' if schema is not None else 'miss'} for {key}")
        return schema

    def _load_and_cache_schema(self, key: str) -> Dict[str, Any]:
        schema = load_schema_file(key)
        with self._cache_lock.write_lock():
            # Another thread may have loaded it meanwhile; keep the first copy
            return self._schema_cache.setdefault(key, schema)


class ProviderContext:
    """
    Per-thread context for one fixed provider.

    Each thread calling :meth:`get` receives its own context, created lazily
    through the factory and reused on later calls from that thread.
    """

    def __init__(
        self,
        factory: ContextFactory,
        provider_name: str,
        config: Optional[ContextConfig] = None,
    ) -> None:
        self._factory = factory
        self._provider_name = provider_name
        self._config = config
        self._local = threading.local()

    @property
    def provider_name(self) -> str:
        return self._provider_name

    def get(self) -> ChatContext:
        context = getattr(self._local, "context", None)
        if context is None:
            context = self._factory.create_context(self._provider_name, self._config)
            self._local.context = context
        return context

    def reset(self) -> None:
        """Reset this thread's context to its post-construction state."""
        self.get().reset()
