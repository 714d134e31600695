"""Unit tests for NuGetRegistryClient with a mocked HTTP session."""

from unittest.mock import MagicMock

import pytest
import requests

from nuget_explorer.config import RegistryConfig
from nuget_explorer.error_handling import AnalysisCancelledError, CancellationToken, SourceQueryError
from nuget_explorer.models import PackageSource
from nuget_explorer.sources import NuGetRegistryClient

from conftest import make_response, make_source

INDEX_URL = "https://feed.example.com/v3/index.json"
FLAT = "https://feed.example.com/v3-flatcontainer/"
REGISTRATION = "https://feed.example.com/v3/registration5-semver1/"

SERVICE_INDEX = {
    "version": "3.0.0",
    "resources": [
        {"@id": FLAT, "@type": "PackageBaseAddress/3.0.0"},
        {"@id": REGISTRATION, "@type": ["RegistrationsBaseUrl/3.6.0", "RegistrationsBaseUrl"]},
    ]
}


def leaf(version, listed=True, **fields):
    entry = {"id": "Serilog", "version": version, "listed": listed}
    entry.update(fields)
    return {"catalogEntry": entry}


def routed_session(routes):
    """Session whose GET answers from ``routes`` (url -> response or exception)."""
    session = MagicMock()

    def get(url, timeout=None, auth=None):
        session.requested.append((url, auth))
        answer = routes.get(url)
        if answer is None:
            return make_response(404)
        if isinstance(answer, Exception):
            raise answer
        return answer

    session.requested = []
    session.get.side_effect = get
    return session


@pytest.fixture
def source():
    return make_source("feed", url=INDEX_URL)


def client_for(routes):
    session = routed_session(routes)
    return NuGetRegistryClient(RegistryConfig(timeout=5), session=session), session


class TestServiceIndex:
    """Test service index resolution."""

    def test_index_resolved_once(self, source):
        """Test that the service index is fetched once per source URL."""
        client, session = client_for({
            INDEX_URL: make_response(json_data=SERVICE_INDEX),
            f"{FLAT}serilog/index.json": make_response(json_data={"versions": ["1.0.0"]}),
        })
        client.list_versions(source, "Serilog")
        client.list_versions(source, "Serilog")
        assert [url for url, _ in session.requested].count(INDEX_URL) == 1

    def test_non_v3_feed_rejected(self, source):
        """Test that a feed without a flat container is an error."""
        client, _ = client_for({INDEX_URL: make_response(json_data={"resources": []})})
        with pytest.raises(SourceQueryError):
            client.list_versions(source, "Serilog")

    def test_user_agent_header_set(self):
        """Test that the configured user agent is sent."""
        session = MagicMock()
        NuGetRegistryClient(RegistryConfig(user_agent="tester/1.0"), session=session)
        session.headers.update.assert_called_once()
        assert session.headers.update.call_args[0][0]["User-Agent"] == "tester/1.0"


class TestListVersions:
    """Test flat container version listing."""

    def test_lists_versions_with_lowercase_id(self, source):
        """Test the flat container URL and response parsing."""
        client, session = client_for({
            INDEX_URL: make_response(json_data=SERVICE_INDEX),
            f"{FLAT}serilog/index.json": make_response(json_data={"versions": ["2.9.0", "2.10.0"]}),
        })
        assert client.list_versions(source, "Serilog") == ["2.9.0", "2.10.0"]
        assert session.requested[-1][0] == f"{FLAT}serilog/index.json"

    def test_unknown_package_is_empty(self, source):
        """Test that a 404 means the feed does not have the package."""
        client, _ = client_for({INDEX_URL: make_response(json_data=SERVICE_INDEX)})
        assert client.list_versions(source, "Nope") == []

    @pytest.mark.parametrize("answer", [
        make_response(500),
        make_response(401),
        make_response(200, json_error=True),
        requests.exceptions.ConnectionError("refused"),
    ])
    def test_failures_raise_source_query_error(self, source, answer):
        """Test that transport and HTTP errors surface distinctly."""
        client, _ = client_for({
            INDEX_URL: make_response(json_data=SERVICE_INDEX),
            f"{FLAT}serilog/index.json": answer,
        })
        with pytest.raises(SourceQueryError) as exc_info:
            client.list_versions(source, "Serilog")
        assert exc_info.value.source_name == "feed"

    def test_credentials_sent_as_basic_auth(self):
        """Test that authenticated sources pass credentials."""
        private = PackageSource(
            name="private", url=INDEX_URL, requires_auth=True, is_authenticated=True,
            username="me", password="token"
        )
        client, session = client_for({
            INDEX_URL: make_response(json_data=SERVICE_INDEX),
            f"{FLAT}serilog/index.json": make_response(json_data={"versions": []}),
        })
        client.list_versions(private, "Serilog")
        assert all(auth == ("me", "token") for _, auth in session.requested)

    def test_cancelled_before_request(self, source):
        """Test that no request is made once cancelled."""
        client, session = client_for({})
        token = CancellationToken()
        token.cancel()
        with pytest.raises(AnalysisCancelledError):
            client.list_versions(source, "Serilog", token)
        assert session.requested == []


class TestGetMetadata:
    """Test registration metadata lookup."""

    def test_inlined_page(self, source):
        """Test metadata from an inlined registration page."""
        client, _ = client_for({
            INDEX_URL: make_response(json_data=SERVICE_INDEX),
            f"{REGISTRATION}serilog/index.json": make_response(json_data={"items": [{
                "@id": f"{REGISTRATION}serilog/index.json#page/1.0.0/3.0.0",
                "lower": "1.0.0", "upper": "3.0.0",
                "items": [
                    leaf("2.10.0", licenseExpression="Apache-2.0", projectUrl="https://serilog.net/"),
                    leaf("3.0.0", licenseUrl="https://licenses.nuget.org/Apache-2.0"),
                ]
            }]}),
        })
        metadata = client.get_metadata(source, "Serilog", "2.10")
        assert metadata.license == "Apache-2.0"
        assert metadata.project_url == "https://serilog.net/"

        newer = client.get_metadata(source, "Serilog", "3.0.0")
        assert newer.license_expression is None
        assert newer.license == "https://licenses.nuget.org/Apache-2.0"

    def test_paged_registration(self, source):
        """Test that non-inlined pages are fetched and out-of-range pages skipped."""
        page_one = f"{REGISTRATION}serilog/page/1.0.0/1.9.0.json"
        page_two = f"{REGISTRATION}serilog/page/2.0.0/3.0.0.json"
        client, session = client_for({
            INDEX_URL: make_response(json_data=SERVICE_INDEX),
            f"{REGISTRATION}serilog/index.json": make_response(json_data={"items": [
                {"@id": page_one, "lower": "1.0.0", "upper": "1.9.0"},
                {"@id": page_two, "lower": "2.0.0", "upper": "3.0.0"},
            ]}),
            page_two: make_response(json_data={"items": [leaf("2.10.0", licenseExpression="Apache-2.0")]}),
        })
        metadata = client.get_metadata(source, "Serilog", "2.10.0")
        assert metadata.license == "Apache-2.0"
        assert page_one not in [url for url, _ in session.requested]

    def test_unlisted_version_skipped(self, source):
        """Test that unlisted entries are not returned."""
        client, _ = client_for({
            INDEX_URL: make_response(json_data=SERVICE_INDEX),
            f"{REGISTRATION}serilog/index.json": make_response(json_data={"items": [{
                "lower": "1.0.0", "upper": "1.0.0", "items": [leaf("1.0.0", listed=False, licenseExpression="MIT")]
            }]}),
        })
        assert client.get_metadata(source, "Serilog", "1.0.0") is None

    def test_unknown_package_returns_none(self, source):
        """Test that a missing registration is not an error."""
        client, _ = client_for({INDEX_URL: make_response(json_data=SERVICE_INDEX)})
        assert client.get_metadata(source, "Nope", "1.0.0") is None

    def test_close_closes_session(self):
        """Test session teardown."""
        session = MagicMock()
        NuGetRegistryClient(session=session).close()
        session.close.assert_called_once()
