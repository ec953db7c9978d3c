"""Platform tags: "<platform>-<version>-<architecture>" target identifiers."""

from typing import List, NamedTuple, Optional
from urllib.parse import urlparse

from ..common.errors import MalformedTagError, RepoShipError
from .info import (
    EXCLUDED_FROM_INDEXING,
    PLATFORM_INFO,
    architectures_for,
    codename_to_platform_version,
    codenames,
    platform_details,
    source_architecture_for,
)


class PlatformTag(NamedTuple):
    """A parsed platform tag."""

    platform: str
    version: str
    architecture: str

    @property
    def tag(self) -> str:
        return f"{self.platform}-{self.version}-{self.architecture}"

    def __str__(self) -> str:
        return self.tag


def parse_platform_tag(tag: str) -> PlatformTag:
    """Split a platform tag into its platform, version and architecture.

    Args:
        tag: Tag such as "el-8-x86_64" or "ubuntu-22.04-amd64"

    Returns:
        PlatformTag

    Raises:
        MalformedTagError: If the tag is not three non-empty segments or
            names an architecture the target does not build
        UnknownPlatformError: If the platform or version is not known
    """
    parts = tag.strip().rsplit("-", 2) if tag else []
    if len(parts) != 3 or not all(parts):
        raise MalformedTagError(f"Could not parse platform tag: {tag!r}")

    platform, version, architecture = parts
    platform_details(platform, version)

    if architecture not in architectures_for(platform, version, include_source=True):
        raise MalformedTagError(
            f"Architecture {architecture} is not valid for {platform}-{version} in tag {tag!r}"
        )
    return PlatformTag(platform, version, architecture)


def _path_segments(path: str) -> List[str]:
    if "://" in path:
        path = urlparse(path).path
    return [segment for segment in path.split("/") if segment and segment not in (".", "..")]


def _find_architecture(platform: str, version: str, segments: List[str]) -> str:
    arches = architectures_for(platform, version, include_source=True)
    for segment in segments:
        if segment in arches:
            return segment
    # No architecture directory: the path holds source packages
    return source_architecture_for(platform, version) or arches[0]


def _tag_in_segment(segment: str) -> Optional[PlatformTag]:
    if segment.count("-") < 2:
        return None
    try:
        return parse_platform_tag(segment)
    except RepoShipError:
        return None


def tag_from_artifact_path(path: str) -> PlatformTag:
    """Derive the platform tag of an artifact directory or published URL.

    Three layouts are recognised, in order:
    an embedded tag segment ("artifacts/el-7-x86_64"), a codename segment
    ("repos/apt/focal"), and platform/version/architecture segments
    ("repos/el/7/puppet7/x86_64").

    Args:
        path: Local path or URL

    Returns:
        PlatformTag for the path

    Raises:
        MalformedTagError: If no known target can be found in the path
    """
    segments = _path_segments(path)

    for segment in segments:
        tag = _tag_in_segment(segment)
        if tag is not None:
            return tag

    known_codenames = set(codenames())
    for index, segment in enumerate(segments):
        if segment in known_codenames:
            platform, version = codename_to_platform_version(segment)
            arch = _find_architecture(platform, version, segments[index + 1:])
            return PlatformTag(platform, version, arch)

    for index, segment in enumerate(segments):
        if segment not in PLATFORM_INFO:
            continue
        remaining = segments[index + 1:]
        for offset, candidate in enumerate(remaining):
            if candidate in PLATFORM_INFO[segment]:
                arch = _find_architecture(segment, candidate, remaining[offset + 1:])
                return PlatformTag(segment, candidate, arch)

    raise MalformedTagError(f"Could not determine platform tag for path: {path}")


def is_excluded_from_indexing(path: str) -> bool:
    """Check if a path belongs to a platform that is never indexed."""
    for segment in _path_segments(path):
        for platform in EXCLUDED_FROM_INDEXING:
            if segment == platform or segment.startswith(f"{platform}-"):
                return True
    return False
