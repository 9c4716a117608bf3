# tests/test_registry.py
"""
Tests for SchemaRegistry and its builder.
"""

import pytest

from schemachat.registry import BUNDLED_SCHEMA_DIR, SchemaRegistry


class TestBuilder:
    """Tests for SchemaRegistry.Builder."""

    def test_defaults_to_bundled_directory(self):
        """A registry built without a directory points at the bundled schemas."""
        registry = SchemaRegistry.create().build()
        assert registry.get_schema_directory() == BUNDLED_SCHEMA_DIR

    def test_empty_provider_name_rejected(self):
        """Registering an empty name is an error."""
        with pytest.raises(ValueError):
            SchemaRegistry.create().register_schema("", "/tmp/x.json")

    def test_register_schemas_bulk(self, tmp_path):
        """register_schemas registers each entry."""
        registry = (
            SchemaRegistry.create()
            .register_schemas({"a": tmp_path / "a.json", "b": tmp_path / "b.json"})
            .build()
        )
        assert set(registry.get_registered_paths()) == {"a", "b"}

    def test_built_registry_is_isolated_from_builder(self, tmp_path):
        """Later builder changes do not affect an already built registry."""
        builder = SchemaRegistry.create().register_schema("a", tmp_path / "a.json")
        registry = builder.build()
        builder.register_schema("b", tmp_path / "b.json")
        assert "b" not in registry.get_registered_paths()

    def test_registered_paths_read_only(self, tmp_path):
        """The registration view cannot be mutated."""
        registry = SchemaRegistry.create().register_schema("a", tmp_path / "a.json").build()
        with pytest.raises(TypeError):
            registry.get_registered_paths()["b"] = tmp_path / "b.json"


class TestResolution:
    """Tests for path resolution and availability."""

    def test_directory_lookup(self, tmp_path):
        """Unregistered providers resolve to <dir>/<name>.json."""
        registry = SchemaRegistry.create().set_schema_directory(tmp_path).build()
        path = registry.resolve_schema_path("openai")
        assert path == (tmp_path / "openai.json").absolute()
        assert path.is_absolute()

    def test_registration_wins(self, tmp_path):
        """Explicit registrations override directory lookup."""
        custom = tmp_path / "elsewhere" / "custom.json"
        registry = (
            SchemaRegistry.create()
            .set_schema_directory(tmp_path)
            .register_schema("openai", custom)
            .build()
        )
        assert registry.resolve_schema_path("openai") == custom.absolute()

    def test_relative_paths_made_absolute(self):
        """Relative registrations resolve to absolute paths."""
        registry = SchemaRegistry.create().register_schema("rel", "schemas/rel.json").build()
        assert registry.resolve_schema_path("rel").is_absolute()

    def test_empty_name_rejected(self, tmp_path):
        """Resolving an empty name is an error."""
        registry = SchemaRegistry(tmp_path)
        with pytest.raises(ValueError):
            registry.resolve_schema_path("")

    def test_available_providers(self, tmp_path, schema_dict, write_schema):
        """Directory schemas and existing registrations are listed, sorted and unique."""
        write_schema("zeta", schema_dict)
        write_schema("alpha", schema_dict)
        extra = tmp_path / "extra.json"
        extra.write_text("{}", encoding="utf-8")
        registry = (
            SchemaRegistry.create()
            .set_schema_directory(tmp_path / "schemas")
            .register_schema("alpha", tmp_path / "schemas" / "alpha.json")
            .register_schema("extra", extra)
            .register_schema("ghost", tmp_path / "ghost.json")
            .build()
        )
        assert registry.get_available_providers() == ["alpha", "extra", "zeta"]

    def test_missing_directory_lists_nothing(self, tmp_path):
        """A non-existent directory is not an error."""
        registry = SchemaRegistry(tmp_path / "missing")
        assert registry.get_available_providers() == []

    def test_is_provider_available(self, tmp_path, schema_dict, write_schema):
        """Availability follows file existence."""
        write_schema("present", schema_dict)
        registry = SchemaRegistry(tmp_path / "schemas")
        assert registry.is_provider_available("present")
        assert not registry.is_provider_available("absent")
        assert not registry.is_provider_available("")

    def test_bundled_providers(self):
        """All four bundled schemas are discoverable."""
        registry = SchemaRegistry.create().build()
        assert {"openai", "claude", "deepseek", "mistral"} <= set(registry.get_available_providers())
