"""Unit tests for OSVVulnerabilityClient."""

from unittest.mock import MagicMock

import pytest
import requests

from nuget_explorer.config import VulnerabilityConfig
from nuget_explorer.error_handling import AnalysisCancelledError, CancellationToken, VulnerabilityFeedError
from nuget_explorer.models import PackageReference, SeverityLevel
from nuget_explorer.sources import OSVVulnerabilityClient

from conftest import make_response

ADVISORY = {
    "id": "GHSA-5crp-9r3c-p9vr",
    "summary": "Improper handling of exceptional conditions in Newtonsoft.Json",
    "aliases": ["CVE-2024-21907"],
    "published": "2022-06-22T20:19:59Z",
    "database_specific": {"severity": "HIGH"},
    "references": [
        {"type": "WEB", "url": "https://example.com/writeup"},
        {"type": "ADVISORY", "url": "https://nvd.nist.gov/vuln/detail/CVE-2024-21907"},
    ],
    "affected": [{
        "package": {"ecosystem": "NuGet", "name": "Newtonsoft.Json"},
        "ranges": [
            {"type": "ECOSYSTEM", "events": [{"introduced": "0"}, {"fixed": "13.0.1"}]},
            {"type": "GIT", "events": [{"introduced": "abc"}]},
        ]
    }]
}

PACKAGE = PackageReference("Newtonsoft.Json", "12.0.1")


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def client(session):
    return OSVVulnerabilityClient(VulnerabilityConfig(api_url="https://osv.test/v1/query", timeout=7), session=session)


class TestGetVulnerabilities:
    """Test advisory lookup."""

    def test_query_payload(self, client, session):
        """Test the OSV query body and endpoint."""
        session.post.return_value = make_response(json_data={})
        assert client.get_vulnerabilities(PACKAGE) == []

        session.post.assert_called_once_with(
            "https://osv.test/v1/query",
            json={"package": {"name": "Newtonsoft.Json", "ecosystem": "NuGet"}, "version": "12.0.1"},
            timeout=7
        )

    def test_advisory_mapping(self, client, session):
        """Test conversion of an OSV record."""
        session.post.return_value = make_response(json_data={"vulns": [ADVISORY]})
        [vulnerability] = client.get_vulnerabilities(PACKAGE)

        assert vulnerability.id == "GHSA-5crp-9r3c-p9vr"
        assert vulnerability.severity == SeverityLevel.HIGH
        assert vulnerability.aliases == ("CVE-2024-21907",)
        assert vulnerability.advisory_url == "https://nvd.nist.gov/vuln/detail/CVE-2024-21907"
        assert vulnerability.affected_range == "< 13.0.1"
        assert vulnerability.published == "2022-06-22T20:19:59Z"

    def test_pagination(self, client, session):
        """Test that next_page_token is followed."""
        session.post.side_effect = [
            make_response(json_data={"vulns": [{"id": "A"}], "next_page_token": "tok"}),
            make_response(json_data={"vulns": [{"id": "B"}]}),
        ]
        ids = [v.id for v in client.get_vulnerabilities(PACKAGE)]

        assert ids == ["A", "B"]
        assert session.post.call_args_list[1].kwargs["json"]["page_token"] == "tok"

    @pytest.mark.parametrize("answer", [
        make_response(503),
        make_response(200, json_error=True),
        requests.exceptions.Timeout("slow"),
    ])
    def test_feed_failures_raise(self, client, session, answer):
        """Test that failures are not reported as 'no vulnerabilities'."""
        if isinstance(answer, Exception):
            session.post.side_effect = answer
        else:
            session.post.return_value = answer
        with pytest.raises(VulnerabilityFeedError):
            client.get_vulnerabilities(PACKAGE)

    def test_cancelled_before_request(self, client, session):
        """Test that cancellation is checked before I/O."""
        token = CancellationToken()
        token.cancel()
        with pytest.raises(AnalysisCancelledError):
            client.get_vulnerabilities(PACKAGE, token)
        session.post.assert_not_called()


class TestAdvisoryFields:
    """Test individual field extraction."""

    @pytest.mark.parametrize("severity,expected", [
        ("CRITICAL", SeverityLevel.CRITICAL),
        ("high", SeverityLevel.HIGH),
        ("MODERATE", SeverityLevel.MEDIUM),
        ("LOW", SeverityLevel.LOW),
        ("UNRATED", SeverityLevel.MEDIUM),
        (None, SeverityLevel.MEDIUM),
    ])
    def test_parse_severity(self, severity, expected):
        """Test the severity name mapping."""
        advisory = {"database_specific": {"severity": severity}}
        assert OSVVulnerabilityClient.parse_severity(advisory) == expected

    def test_advisory_url_falls_back_to_osv(self, client, session):
        """Test the osv.dev link when no ADVISORY reference exists."""
        session.post.return_value = make_response(json_data={"vulns": [{"id": "OSV-1"}]})
        [vulnerability] = client.get_vulnerabilities(PACKAGE)
        assert vulnerability.advisory_url == "https://osv.dev/vulnerability/OSV-1"
        assert vulnerability.affected_range is None

    def test_affected_range_with_introduced_bound(self, client, session):
        """Test a range with both bounds."""
        advisory = {
            "id": "X",
            "affected": [
                {"package": {"name": "newtonsoft.json"},
                 "ranges": [{"type": "ECOSYSTEM", "events": [{"introduced": "10.0.0"}, {"fixed": "13.0.1"}]}]},
                {"package": {"name": "Other.Package"},
                 "ranges": [{"type": "ECOSYSTEM", "events": [{"fixed": "1.0.0"}]}]},
            ]
        }
        session.post.return_value = make_response(json_data={"vulns": [advisory]})
        [vulnerability] = client.get_vulnerabilities(PACKAGE)
        assert vulnerability.affected_range == ">= 10.0.0, < 13.0.1"
