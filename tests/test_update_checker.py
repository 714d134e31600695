"""Unit tests for UpdateChecker."""

from unittest.mock import MagicMock

import pytest

from nuget_explorer.analyzers import UpdateChecker, build_release_notes_url, determine_version_change_type
from nuget_explorer.error_handling import AnalysisCancelledError, CancellationToken
from nuget_explorer.models import PackageAnalysisOptions, PackageReference, VersionChangeType
from nuget_explorer.versioning import SemanticVersion


def change(current, latest):
    return determine_version_change_type(SemanticVersion.parse(current), SemanticVersion.parse(latest))


class TestVersionChangeType:
    """Test change classification."""

    @pytest.mark.parametrize("current,latest,expected", [
        ("1.2.3", "2.0.0", VersionChangeType.MAJOR),
        ("1.2.3", "1.3.0", VersionChangeType.MINOR),
        ("1.2.3", "1.2.4", VersionChangeType.PATCH),
        ("1.2.3", "2.5.9", VersionChangeType.MAJOR),
        ("1.2.3", "1.2.3.1", VersionChangeType.NONE),
        ("1.2.3-beta", "1.2.3", VersionChangeType.NONE),
    ])
    def test_rule_chain(self, current, latest, expected):
        """Test that the first matching rule decides."""
        assert change(current, latest) == expected


class TestReleaseNotesUrl:
    """Test release notes URL derivation."""

    def test_github_project_gets_release_tag(self):
        """Test the GitHub release tag URL with trailing slash trimmed."""
        url = build_release_notes_url("https://github.com/JamesNK/Newtonsoft.Json/", "13.0.3")
        assert url == "https://github.com/JamesNK/Newtonsoft.Json/releases/tag/v13.0.3"

    def test_github_host_match_is_case_insensitive(self):
        """Test that the host check ignores case."""
        url = build_release_notes_url("https://GitHub.com/org/repo", "1.0.0")
        assert url == "https://GitHub.com/org/repo/releases/tag/v1.0.0"

    def test_other_project_url_returned_as_is(self):
        """Test that non-GitHub URLs pass through."""
        assert build_release_notes_url("https://serilog.net", "3.0.0") == "https://serilog.net"

    def test_no_project_url(self):
        """Test the missing URL case."""
        assert build_release_notes_url(None, "1.0.0") is None
        assert build_release_notes_url("", "1.0.0") is None


class TestCheckForUpdate:
    """Test update detection against the source manager."""

    @pytest.fixture
    def checker(self, source_manager):
        return UpdateChecker(source_manager)

    @pytest.mark.parametrize("latest,expected", [
        ("2.0.0", VersionChangeType.MAJOR),
        ("1.3.0", VersionChangeType.MINOR),
        ("1.2.4", VersionChangeType.PATCH),
    ])
    def test_update_classification(self, checker, registry, latest, expected):
        """Test the 1.2.3 upgrade scenarios."""
        registry.add_versions("alpha", "Pkg", ["1.2.3", latest])
        update = checker.check_for_update(PackageReference("Pkg", "1.2.3"), PackageAnalysisOptions())
        assert update is not None
        assert update.latest_stable_version == latest
        assert update.version_change_type == expected
        assert update.is_compatible is True

    def test_current_version_is_latest(self, checker, registry):
        """Test that no update object is produced when already current."""
        registry.add_versions("alpha", "Pkg", ["1.2.2", "1.2.3"])
        assert checker.check_for_update(PackageReference("Pkg", "1.2.3"), PackageAnalysisOptions()) is None

    def test_current_newer_than_feed(self, checker, registry):
        """Test a local version ahead of every feed."""
        registry.add_versions("alpha", "Pkg", ["1.0.0"])
        assert checker.check_for_update(PackageReference("Pkg", "2.0.0"), PackageAnalysisOptions()) is None

    def test_no_versions_found(self, checker):
        """Test that an unknown package yields None."""
        assert checker.check_for_update(PackageReference("Missing", "1.0.0"), PackageAnalysisOptions()) is None

    def test_malformed_current_version_yields_none(self, checker, registry):
        """Test that a bad current version is contained."""
        registry.add_versions("alpha", "Pkg", ["1.0.0"])
        assert checker.check_for_update(PackageReference("Pkg", "latest"), PackageAnalysisOptions()) is None

    def test_prerelease_reported_only_when_enabled(self, checker, registry):
        """Test latest prerelease reporting."""
        registry.add_versions("alpha", "Pkg", ["1.0.0", "1.1.0", "2.0.0-rc.1"])
        package = PackageReference("Pkg", "1.0.0")

        stable_only = checker.check_for_update(package, PackageAnalysisOptions())
        assert stable_only.latest_stable_version == "1.1.0"
        assert stable_only.latest_prerelease_version is None

        with_pre = checker.check_for_update(package, PackageAnalysisOptions(include_prerelease=True))
        assert with_pre.latest_stable_version == "1.1.0"
        assert with_pre.latest_prerelease_version == "2.0.0-rc.1"
        assert with_pre.version_change_type == VersionChangeType.MINOR

    def test_only_prereleases_available(self, checker, registry):
        """Test that the highest prerelease is used when there is no stable version."""
        registry.add_versions("alpha", "Pkg", ["1.0.0-alpha", "1.0.0-beta"])
        update = checker.check_for_update(
            PackageReference("Pkg", "1.0.0-alpha"), PackageAnalysisOptions(include_prerelease=True)
        )
        assert update.latest_stable_version == "1.0.0-beta"
        assert update.version_change_type == VersionChangeType.NONE

    def test_release_notes_from_project_url(self, checker, registry):
        """Test that the latest version's project URL drives release notes."""
        registry.add_versions("alpha", "Pkg", ["1.0.0", "1.1.0"])
        registry.add_metadata("alpha", "Pkg", "1.1.0", project_url="https://github.com/org/pkg")
        update = checker.check_for_update(PackageReference("Pkg", "1.0.0"), PackageAnalysisOptions())
        assert update.release_notes_url == "https://github.com/org/pkg/releases/tag/v1.1.0"

    def test_unexpected_error_yields_none(self):
        """Test that source manager errors are logged and swallowed."""
        source_manager = MagicMock()
        source_manager.get_all_versions.side_effect = RuntimeError("boom")
        checker = UpdateChecker(source_manager)
        assert checker.check_for_update(PackageReference("Pkg", "1.0.0"), PackageAnalysisOptions()) is None

    def test_cancellation_is_not_swallowed(self, checker):
        """Test that cancellation escapes the checker."""
        token = CancellationToken()
        token.cancel()
        with pytest.raises(AnalysisCancelledError):
            checker.check_for_update(PackageReference("Pkg", "1.0.0"), PackageAnalysisOptions(), token)
