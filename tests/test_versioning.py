"""Unit tests for NuGet semantic versions."""

import random

import pytest

from nuget_explorer.error_handling import VersionParseError
from nuget_explorer.versioning import SemanticVersion, merge_versions, parse_version


def versions(*values):
    return [SemanticVersion.parse(v) for v in values]


class TestParsing:
    """Test version string parsing."""

    @pytest.mark.parametrize("value,expected", [
        ("1.2.3", "1.2.3"),
        ("1.0", "1.0.0"),
        ("2", "2.0.0"),
        ("1.2.3.4", "1.2.3.4"),
        ("1.2.3.0", "1.2.3"),
        ("1.0.0-beta.1", "1.0.0-beta.1"),
        ("1.0.0+build.5", "1.0.0"),
        (" 3.1.0 ", "3.1.0"),
    ])
    def test_normalized_string(self, value, expected):
        """Test that parsed versions render in normalized form."""
        assert str(SemanticVersion.parse(value)) == expected

    @pytest.mark.parametrize("value", ["", "abc", "1.2.3.4.5", "1.0.0-", "1..0", "1.0.0-01", "v1.0.0"])
    def test_invalid_versions_raise(self, value):
        """Test that malformed strings raise VersionParseError."""
        with pytest.raises(VersionParseError):
            SemanticVersion.parse(value)

    def test_try_parse_returns_none(self):
        """Test that try_parse swallows parse failures."""
        assert SemanticVersion.try_parse("not-a-version") is None

    def test_parse_version_attaches_package_id(self):
        """Test that parse_version reports which package had the bad version."""
        with pytest.raises(VersionParseError) as exc_info:
            parse_version("oops", "Serilog")
        assert exc_info.value.package_id == "Serilog"
        assert exc_info.value.context["version"] == "oops"

    def test_components(self):
        """Test component accessors."""
        version = SemanticVersion.parse("4.5.6-rc.2")
        assert (version.major, version.minor, version.patch, version.revision) == (4, 5, 6, 0)
        assert version.is_prerelease
        assert version.release_label == "rc.2"


class TestOrdering:
    """Test SemVer 2.0 precedence."""

    def test_release_components_compare_numerically(self):
        """Test that 1.10.0 is newer than 1.9.0."""
        assert SemanticVersion.parse("1.10.0") > SemanticVersion.parse("1.9.0")

    def test_prerelease_sorts_before_release(self):
        """Test that a prerelease precedes its release."""
        assert SemanticVersion.parse("2.0.0-rc.1") < SemanticVersion.parse("2.0.0")

    def test_prerelease_identifier_precedence(self):
        """Test the SemVer 2.0 example ordering."""
        ordered = versions(
            "1.0.0-alpha", "1.0.0-alpha.1", "1.0.0-alpha.beta", "1.0.0-beta",
            "1.0.0-beta.2", "1.0.0-beta.11", "1.0.0-rc.1", "1.0.0"
        )
        assert sorted(reversed(ordered)) == ordered

    def test_equality_ignores_trailing_zeros_case_and_metadata(self):
        """Test semantic equality across spellings."""
        assert SemanticVersion.parse("1.0") == SemanticVersion.parse("1.0.0")
        assert SemanticVersion.parse("1.0.0.0") == SemanticVersion.parse("1.0.0")
        assert SemanticVersion.parse("1.0.0-Beta") == SemanticVersion.parse("1.0.0-beta")
        assert SemanticVersion.parse("1.0.0+abc") == SemanticVersion.parse("1.0.0")
        assert len({SemanticVersion.parse("1.0"), SemanticVersion.parse("1.0.0")}) == 1


class TestMergeVersions:
    """Test multi-source version merging."""

    def test_union_deduplicates_semantically(self):
        """Test that equal versions from different feeds appear once."""
        merged = merge_versions([versions("1.0", "2.0.0"), versions("1.0.0", "1.5.0")], include_prerelease=False)
        assert [str(v) for v in merged] == ["2.0.0", "1.5.0", "1.0.0"]

    def test_prereleases_dropped_unless_requested(self):
        """Test prerelease filtering."""
        sets = [versions("1.0.0", "2.0.0-beta")]
        assert [str(v) for v in merge_versions(sets, include_prerelease=False)] == ["1.0.0"]
        assert [str(v) for v in merge_versions(sets, include_prerelease=True)] == ["2.0.0-beta", "1.0.0"]

    def test_merge_is_order_independent_and_idempotent(self):
        """Test that feed order and repeated merging do not change the result."""
        sets = [versions("1.0.0", "1.2.0"), versions("1.2", "3.0.0-rc.1", "0.9.0"), versions("2.1.0")]
        expected = merge_versions(sets, include_prerelease=True)

        rng = random.Random(7)
        for _ in range(10):
            shuffled = [list(s) for s in sets]
            rng.shuffle(shuffled)
            for s in shuffled:
                rng.shuffle(s)
            assert merge_versions(shuffled, include_prerelease=True) == expected

        assert merge_versions([expected, expected], include_prerelease=True) == expected

    def test_spelling_kept_does_not_depend_on_feed_order(self):
        """Test that case variants of a label merge to the same text."""
        upper, lower = versions("1.0.0-Beta"), versions("1.0.0-beta")
        first = [str(v) for v in merge_versions([upper, lower], include_prerelease=True)]
        second = [str(v) for v in merge_versions([lower, upper], include_prerelease=True)]
        assert first == second == ["1.0.0-Beta"]
