"""Platform tag parsing and codename/architecture resolution."""

from .info import (
    DEBIAN_PACKAGING_ARCHES,
    EXCLUDED_FROM_INDEXING,
    PLATFORM_INFO,
    architectures_for,
    architectures_for_codename,
    codename_for_platform_version,
    codename_to_platform_version,
    codenames,
    package_format_for,
    supported_platforms,
    versions_for_platform,
)
from .tags import (
    PlatformTag,
    is_excluded_from_indexing,
    parse_platform_tag,
    tag_from_artifact_path,
)

__all__ = [
    "DEBIAN_PACKAGING_ARCHES",
    "EXCLUDED_FROM_INDEXING",
    "PLATFORM_INFO",
    "PlatformTag",
    "architectures_for",
    "architectures_for_codename",
    "codename_for_platform_version",
    "codename_to_platform_version",
    "codenames",
    "is_excluded_from_indexing",
    "package_format_for",
    "parse_platform_tag",
    "supported_platforms",
    "tag_from_artifact_path",
    "versions_for_platform",
]
