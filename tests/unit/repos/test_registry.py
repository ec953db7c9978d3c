"""Tests for repository format registry."""

import pytest

from repoship.common.errors import RepoShipError
from repoship.repos.deb import DebRepository
from repoship.repos.registry import (
    FormatRegistry,
    auto_register_formats,
    get_registry,
    get_repository_format,
    register_format,
)
from repoship.repos.rpm import RpmRepository


@pytest.fixture
def registry():
    """Global registry, restored to the built-in formats afterwards."""
    registry = get_registry()
    registry.clear()
    yield registry
    registry.clear()
    auto_register_formats()


class TestFormatRegistry:
    """Tests for FormatRegistry."""

    def test_singleton(self):
        """Test registry is a singleton."""
        assert FormatRegistry() is FormatRegistry()
        assert get_registry() is FormatRegistry()

    def test_register_and_create(self, registry, publish_config):
        """Test a registered class is instantiated with the config."""
        register_format("deb", DebRepository)

        repo = registry.create("deb", publish_config)

        assert isinstance(repo, DebRepository)
        assert repo.config is publish_config

    def test_unknown_format(self, registry, publish_config):
        """Test an unknown format is an error naming what is supported."""
        register_format("rpm", RpmRepository)

        with pytest.raises(RepoShipError, match="supported: rpm"):
            registry.create("apk", publish_config)

    def test_unregister(self, registry):
        """Test unregistering a format."""
        register_format("deb", DebRepository)
        registry.unregister("deb")

        assert registry.get_format_class("deb") is None
        assert registry.list_formats() == []


class TestGetRepositoryFormat:
    """Tests for the lookup helper."""

    def test_builtins_registered_on_first_use(self, registry, publish_config):
        """Test deb and rpm are available without explicit registration."""
        assert isinstance(get_repository_format("deb", publish_config), DebRepository)
        assert isinstance(get_repository_format("rpm", publish_config), RpmRepository)
        assert registry.list_formats() == ["deb", "rpm"]
