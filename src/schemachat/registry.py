# src/schemachat/registry.py
"""
Schema Registry - maps provider names to schema file paths.

A registry is immutable once built. It resolves paths and checks for their
existence at call time, but never reads or caches schema contents; that is
the job of :class:`schemachat.factory.ContextFactory`.

Example:
    >>> registry = (SchemaRegistry.create()
    ...             .set_schema_directory("./schemas")
    ...             .register_schema("local", "/opt/schemas/local.json")
    ...             .build())
    >>> registry.resolve_schema_path("openai")
    PosixPath('/abs/path/schemas/openai.json')
"""

from __future__ import annotations

import logging
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Union

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# Schemas shipped inside the package
BUNDLED_SCHEMA_DIR = Path(__file__).parent / "schemas"


class SchemaRegistry:
    """Immutable provider-name to schema-path mapping."""

    class Builder:
        """Staged builder collecting the schema directory and explicit overrides."""

        def __init__(self) -> None:
            self._schema_directory: Path = BUNDLED_SCHEMA_DIR
            self._provider_paths: Dict[str, Path] = {}

        def set_schema_directory(self, directory: PathLike) -> SchemaRegistry.Builder:
            self._schema_directory = Path(directory)
            return self

        def register_schema(self, provider_name: str, schema_path: PathLike) -> SchemaRegistry.Builder:
            """Register an explicit path for a provider, overriding directory lookup."""
            if not provider_name:
                raise ValueError("Provider name cannot be empty")
            self._provider_paths[provider_name] = Path(schema_path)
            return self

        def register_schemas(self, schemas: Mapping[str, PathLike]) -> SchemaRegistry.Builder:
            for name, path in schemas.items():
                self.register_schema(name, path)
            return self

        def build(self) -> SchemaRegistry:
            return SchemaRegistry(self._schema_directory, self._provider_paths)

    def __init__(self, schema_directory: PathLike, provider_paths: Mapping[str, PathLike] | None = None) -> None:
        self._schema_directory = Path(schema_directory)
        self._provider_paths: Mapping[str, Path] = MappingProxyType(
            {name: Path(p) for name, p in (provider_paths or {}).items()}
        )
        logger.debug(
            f"SchemaRegistry built (directory={self._schema_directory}, "
            f"overrides={sorted(self._provider_paths)})"
        )

    @classmethod
    def create(cls) -> SchemaRegistry.Builder:
        """Start building a registry."""
        return cls.Builder()

    def resolve_schema_path(self, provider_name: str) -> Path:
        """
        Return the absolute schema path for a provider.

        Explicit registrations win over ``<schema_directory>/<provider>.json``.

        Raises:
            ValueError: If ``provider_name`` is empty.
        """
        if not provider_name:
            raise ValueError("Provider name cannot be empty")

        registered = self._provider_paths.get(provider_name)
        if registered is not None:
            return registered.absolute()
        return (self._schema_directory / f"{provider_name}.json").absolute()

    def get_available_providers(self) -> List[str]:
        """
        List providers whose schema file exists, sorted and deduplicated.

        Combines registered providers whose path exists with every ``*.json``
        stem found in the schema directory.
        """
        providers = {name for name, path in self._provider_paths.items() if path.exists()}
        if self._schema_directory.is_dir():
            providers.update(p.stem for p in self._schema_directory.glob("*.json") if p.is_file())
        return sorted(providers)

    def is_provider_available(self, provider_name: str) -> bool:
        try:
            return self.resolve_schema_path(provider_name).exists()
        except ValueError:
            return False

    def get_schema_directory(self) -> Path:
        return self._schema_directory

    def get_registered_paths(self) -> Mapping[str, Path]:
        """Read-only view of explicit registrations."""
        return self._provider_paths
