"""Supported build targets and their packaging metadata.

PLATFORM_INFO is the single table every component derives names from:
codenames, architecture sets and package formats all come from here.
"""

from typing import Any, Dict, List, Optional, Tuple

from ..common.errors import UnknownPlatformError

# Baseline architectures for every apt repository. Each codename's own
# architectures are appended to this list when its repository is created
# or signed, so the set stays complete even for unusual platforms.
DEBIAN_PACKAGING_ARCHES = [
    "i386",
    "amd64",
    "arm64",
    "armel",
    "armhf",
    "powerpc",
    "ppc64el",
    "sparc",
    "mips",
    "mipsel",
]

PLATFORM_INFO: Dict[str, Dict[str, Dict[str, Any]]] = {
    "aix": {
        "7.1": {
            "architectures": ["power"],
            "source_architecture": "SRPMS",
            "package_format": "rpm",
            "repo": False,
        },
        "7.2": {
            "architectures": ["power"],
            "source_architecture": "SRPMS",
            "package_format": "rpm",
            "repo": False,
        },
    },
    "amazon": {
        "2": {
            "architectures": ["x86_64", "aarch64"],
            "source_architecture": "SRPMS",
            "package_format": "rpm",
            "repo": True,
        },
        "2023": {
            "architectures": ["x86_64", "aarch64"],
            "source_architecture": "SRPMS",
            "package_format": "rpm",
            "repo": True,
        },
    },
    "debian": {
        "10": {
            "codename": "buster",
            "architectures": ["amd64", "i386"],
            "source_architecture": "source",
            "package_format": "deb",
            "repo": True,
        },
        "11": {
            "codename": "bullseye",
            "architectures": ["amd64", "arm64"],
            "source_architecture": "source",
            "package_format": "deb",
            "repo": True,
        },
        "12": {
            "codename": "bookworm",
            "architectures": ["amd64", "arm64"],
            "source_architecture": "source",
            "package_format": "deb",
            "repo": True,
        },
    },
    "el": {
        "7": {
            "architectures": ["x86_64", "aarch64", "ppc64le"],
            "source_architecture": "SRPMS",
            "package_format": "rpm",
            "repo": True,
        },
        "8": {
            "architectures": ["x86_64", "aarch64", "ppc64le"],
            "source_architecture": "SRPMS",
            "package_format": "rpm",
            "repo": True,
        },
        "9": {
            "architectures": ["x86_64", "aarch64"],
            "source_architecture": "SRPMS",
            "package_format": "rpm",
            "repo": True,
        },
    },
    "fedora": {
        "36": {
            "architectures": ["x86_64"],
            "source_architecture": "SRPMS",
            "package_format": "rpm",
            "repo": True,
        },
        "37": {
            "architectures": ["x86_64"],
            "source_architecture": "SRPMS",
            "package_format": "rpm",
            "repo": True,
        },
        "38": {
            "architectures": ["x86_64"],
            "source_architecture": "SRPMS",
            "package_format": "rpm",
            "repo": True,
        },
    },
    "redhatfips": {
        "8": {
            "architectures": ["x86_64"],
            "source_architecture": "SRPMS",
            "package_format": "rpm",
            "repo": True,
        },
    },
    "sles": {
        "12": {
            "architectures": ["x86_64", "ppc64le"],
            "source_architecture": "SRPMS",
            "package_format": "rpm",
            "repo": True,
        },
        "15": {
            "architectures": ["x86_64"],
            "source_architecture": "SRPMS",
            "package_format": "rpm",
            "repo": True,
        },
    },
    "ubuntu": {
        "18.04": {
            "codename": "bionic",
            "architectures": ["amd64", "ppc64el"],
            "source_architecture": "source",
            "package_format": "deb",
            "repo": True,
        },
        "20.04": {
            "codename": "focal",
            "architectures": ["amd64", "arm64"],
            "source_architecture": "source",
            "package_format": "deb",
            "repo": True,
        },
        "22.04": {
            "codename": "jammy",
            "architectures": ["amd64", "arm64"],
            "source_architecture": "source",
            "package_format": "deb",
            "repo": True,
        },
    },
}

# Platforms whose packages are built but never indexed into a repository
EXCLUDED_FROM_INDEXING = ("aix",)

_CODENAMES: Dict[str, Tuple[str, str]] = {
    details["codename"]: (platform, version)
    for platform, versions in PLATFORM_INFO.items()
    for version, details in versions.items()
    if "codename" in details
}


def supported_platforms() -> List[str]:
    """Return all known platform names."""
    return list(PLATFORM_INFO)


def versions_for_platform(platform: str) -> List[str]:
    """Return the known versions of a platform.

    Raises:
        UnknownPlatformError: If the platform is not known
    """
    try:
        return list(PLATFORM_INFO[platform])
    except KeyError:
        raise UnknownPlatformError(f"Unknown platform: {platform}") from None


def platform_details(platform: str, version: str) -> Dict[str, Any]:
    """Return the metadata entry for a platform version.

    Raises:
        UnknownPlatformError: If the platform or version is not known
    """
    versions = PLATFORM_INFO.get(platform)
    if versions is None:
        raise UnknownPlatformError(f"Unknown platform: {platform}")
    details = versions.get(version)
    if details is None:
        raise UnknownPlatformError(f"Unknown version {version} for platform {platform}")
    return details


def architectures_for(platform: str, version: str, include_source: bool = False) -> List[str]:
    """Return the declared architectures of a platform version."""
    details = platform_details(platform, version)
    arches = list(details["architectures"])
    if include_source and details.get("source_architecture"):
        arches.append(details["source_architecture"])
    return arches


def source_architecture_for(platform: str, version: str) -> Optional[str]:
    return platform_details(platform, version).get("source_architecture")


def package_format_for(platform: str, version: str) -> str:
    return platform_details(platform, version)["package_format"]


def codenames() -> List[str]:
    """Return every known codename."""
    return list(_CODENAMES)


def codename_for_platform_version(platform: str, version: str) -> str:
    """Resolve a platform version to its packaging codename.

    Raises:
        UnknownPlatformError: If there is no codename for the pair
    """
    details = platform_details(platform, version)
    codename = details.get("codename")
    if not codename:
        raise UnknownPlatformError(f"No codename for {platform} {version}")
    return codename


def codename_to_platform_version(codename: str) -> Tuple[str, str]:
    """Resolve a codename back to its (platform, version) pair.

    Raises:
        UnknownPlatformError: If the codename is not known
    """
    try:
        return _CODENAMES[codename]
    except KeyError:
        raise UnknownPlatformError(f"Unknown codename: {codename}") from None


def architectures_for_codename(codename: str) -> Tuple[str, ...]:
    """Return the full architecture set of a codename's repository.

    The baseline list comes first, followed by any declared architectures
    not already in it. The result is deterministic for a given codename.

    Raises:
        UnknownPlatformError: If the codename is not known
    """
    platform, version = codename_to_platform_version(codename)
    declared = architectures_for(platform, version)
    return tuple(dict.fromkeys(DEBIAN_PACKAGING_ARCHES + declared))
