"""Tests for platform tag parsing."""

import pytest

from repoship.common.errors import MalformedTagError, UnknownPlatformError
from repoship.platforms import (
    PLATFORM_INFO,
    PlatformTag,
    architectures_for,
    is_excluded_from_indexing,
    parse_platform_tag,
    tag_from_artifact_path,
)


class TestParsePlatformTag:
    """Tests for parse_platform_tag."""

    def test_parse_el(self):
        """Test parsing an rpm tag."""
        tag = parse_platform_tag("el-8-x86_64")

        assert tag == PlatformTag("el", "8", "x86_64")

    def test_parse_dotted_version(self):
        """Test versions containing dots."""
        assert parse_platform_tag("ubuntu-22.04-amd64").version == "22.04"

    def test_parse_source_architecture(self):
        """Test the source architecture is a valid tag architecture."""
        assert parse_platform_tag("el-7-SRPMS").architecture == "SRPMS"

    def test_round_trip_all_targets(self):
        """Test formatting then parsing returns the same triple for every target."""
        for platform, versions in PLATFORM_INFO.items():
            for version in versions:
                for arch in architectures_for(platform, version, include_source=True):
                    tag = PlatformTag(platform, version, arch)
                    assert parse_platform_tag(tag.tag) == tag

    @pytest.mark.parametrize("bad", ["", "el", "el-8", "el--x86_64", "-8-x86_64"])
    def test_malformed(self, bad):
        """Test tags without three non-empty parts are rejected."""
        with pytest.raises(MalformedTagError):
            parse_platform_tag(bad)

    def test_invalid_architecture(self):
        """Test an architecture the target does not build is rejected."""
        with pytest.raises(MalformedTagError):
            parse_platform_tag("el-9-ppc64le")

    def test_unknown_platform(self):
        """Test an unknown platform or version is rejected."""
        with pytest.raises(UnknownPlatformError):
            parse_platform_tag("solaris-11-sparc")
        with pytest.raises(UnknownPlatformError):
            parse_platform_tag("el-5-x86_64")

    def test_str(self):
        """Test the string form is the tag."""
        assert str(PlatformTag("sles", "15", "x86_64")) == "sles-15-x86_64"


class TestTagFromArtifactPath:
    """Tests for tag_from_artifact_path."""

    def test_codename_path(self):
        """Test apt paths resolve through their codename."""
        tag = tag_from_artifact_path("./deb/focal/puppet7")

        assert tag.platform == "ubuntu"
        assert tag.version == "20.04"
        assert tag.architecture == "source"

    def test_platform_version_arch_path(self):
        """Test yum paths resolve through their segments."""
        tag = tag_from_artifact_path("./el/7/puppet7/x86_64")

        assert tag == PlatformTag("el", "7", "x86_64")

    def test_path_without_architecture(self):
        """Test a missing architecture falls back to the source architecture."""
        assert tag_from_artifact_path("./sles/15/puppet7").architecture == "SRPMS"

    def test_embedded_tag(self):
        """Test a segment holding a full tag."""
        assert tag_from_artifact_path("artifacts/fedora-38-x86_64") == PlatformTag(
            "fedora", "38", "x86_64"
        )

    def test_url(self):
        """Test published URLs resolve like paths."""
        url = "http://builds.example.com/puppet-agent/7.1.0/repos/apt/jammy"

        assert tag_from_artifact_path(url).platform == "ubuntu"

    def test_project_with_dashes(self):
        """Test dashed segments that are not tags are skipped."""
        url = "http://builds.example.com/puppet-agent/7.1.0-rc1-abc/repos/el/9/puppet7/aarch64/"

        assert tag_from_artifact_path(url) == PlatformTag("el", "9", "aarch64")

    def test_unrecognised(self):
        """Test a path with no target is rejected."""
        with pytest.raises(MalformedTagError):
            tag_from_artifact_path("./misc/docs")


class TestExclusion:
    """Tests for indexing exclusions."""

    def test_aix_excluded(self):
        """Test aix paths are never indexed."""
        assert is_excluded_from_indexing("./aix/7.2/puppet7/ppc")
        assert is_excluded_from_indexing("artifacts/aix-7.1-power")

    def test_others_included(self):
        """Test other platforms are indexed."""
        assert not is_excluded_from_indexing("./el/7/puppet7/x86_64")
        assert not is_excluded_from_indexing("./deb/focal/puppet7")
