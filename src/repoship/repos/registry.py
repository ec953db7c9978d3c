"""Registry for repository formats.

Maps format names ('deb', 'rpm') to the RepositoryFormat classes that
handle them. Formats need a PublishConfig to be useful, so the registry
holds classes and instantiates them on lookup.
"""

from typing import Any, Dict, List, Optional, Type

from ..common.config import PublishConfig
from ..common.errors import RepoShipError
from ..common.logger import get_logger
from .base import RepositoryFormat

logger = get_logger("repo_registry")


class FormatRegistry:
    """Registry of repository format classes."""

    _instance: Optional["FormatRegistry"] = None
    _formats: Dict[str, Type[RepositoryFormat]]

    def __new__(cls) -> "FormatRegistry":
        """Singleton pattern for global registry."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._formats = {}
        return cls._instance

    def register(self, format_name: str, format_class: Type[RepositoryFormat]) -> None:
        """Register a repository format class.

        Args:
            format_name: Name the format is looked up by
            format_class: RepositoryFormat subclass
        """
        if format_name in self._formats:
            logger.warning(f"Overwriting existing format: {format_name}")
        self._formats[format_name] = format_class
        logger.debug(f"Registered repository format: {format_name}")

    def unregister(self, format_name: str) -> None:
        if format_name in self._formats:
            del self._formats[format_name]
            logger.debug(f"Unregistered repository format: {format_name}")

    def get_format_class(self, format_name: str) -> Optional[Type[RepositoryFormat]]:
        return self._formats.get(format_name)

    def create(self, format_name: str, config: PublishConfig, **kwargs: Any) -> RepositoryFormat:
        """Instantiate the format registered under format_name.

        Args:
            format_name: Format name ('deb' or 'rpm')
            config: Publication settings
            **kwargs: Passed through to the format constructor

        Returns:
            RepositoryFormat instance

        Raises:
            RepoShipError: If no format is registered under that name
        """
        format_class = self._formats.get(format_name)
        if format_class is None:
            supported = ", ".join(self.list_formats()) or "none"
            raise RepoShipError(
                f"Unsupported repository format: {format_name} (supported: {supported})"
            )
        return format_class(config, **kwargs)

    def list_formats(self) -> List[str]:
        """List all registered format names, sorted."""
        return sorted(self._formats)

    def clear(self) -> None:
        """Clear all registered formats (mainly for testing)."""
        self._formats.clear()


# Global registry instance
_registry = FormatRegistry()


def get_registry() -> FormatRegistry:
    """Get the global format registry."""
    return _registry


def register_format(format_name: str, format_class: Type[RepositoryFormat]) -> None:
    """Register a repository format with the global registry."""
    _registry.register(format_name, format_class)


def auto_register_formats() -> None:
    """Register the built-in apt and yum formats."""
    from .deb import DebRepository
    from .rpm import RpmRepository

    register_format("deb", DebRepository)
    register_format("rpm", RpmRepository)


def get_repository_format(format_name: str, config: PublishConfig, **kwargs: Any) -> RepositoryFormat:
    """Build the repository format for format_name, registering built-ins on first use.

    Raises:
        RepoShipError: If the format is unknown
    """
    if not _registry.list_formats():
        auto_register_formats()
    return _registry.create(format_name, config, **kwargs)
