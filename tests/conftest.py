"""
Pytest configuration and shared fixtures for the test suite.
"""

import json
import os
import tempfile

import httpx
import pytest

from pdb_analysis.api.fetcher import ResilientFetcher
from pdb_analysis.api.pdb_client import PDBClient
from pdb_analysis.config import APIConfig, LoggingConfig, RetryConfig, SystemConfig, set_config
from pdb_analysis.errors import ErrorHandler, set_error_handler
from pdb_analysis.knowledge import KnownActiveSiteStore

TEST_DATA_API = "https://data.test/rest/v1"
TEST_GRAPHQL_API = "https://data.test/graphql"
TEST_SEARCH_API = "https://search.test/query"
TEST_UNIPROT_API = "https://uniprot.test/uniprotkb"


class RecordingSleep:
    """Async stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


class UpstreamStub:
    """
    ``httpx.MockTransport`` handler routing requests by method and URL.

    Routes map ``(method, url)`` to a response or to a callable taking the
    request. Unrouted requests get a 404. Every request is recorded.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        route = self.routes.get((request.method, str(request.url)))
        if route is None:
            return httpx.Response(404, text="Not Found")
        if callable(route):
            return route(request)
        # Fresh copy per request; clients close the responses they receive
        return httpx.Response(route.status_code, headers=route.headers, content=route.content)

    def json_bodies(self, url):
        return [json.loads(r.content) for r in self.requests if str(r.url) == url]


@pytest.fixture
def temp_config_file():
    """Create a temporary configuration file for testing."""
    config_data = {
        "api": {
            "pdb_data_api": TEST_DATA_API,
            "request_timeout_ms": 5000
        },
        "retry": {
            "max_attempts": 2,
            "initial_delay": 0.1,
            "backoff_multiplier": 1.5
        },
        "logging": {
            "level": "DEBUG",
            "format": "json"
        },
        "server": {
            "port": 9001
        }
    }

    with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as f:
        json.dump(config_data, f)
        temp_file = f.name

    yield temp_file

    os.unlink(temp_file)


@pytest.fixture
def test_api_config():
    return APIConfig(
        pdb_data_api=TEST_DATA_API,
        pdb_search_api=TEST_SEARCH_API,
        pdb_graphql_api=TEST_GRAPHQL_API,
        uniprot_api=TEST_UNIPROT_API
    )


@pytest.fixture(autouse=True)
def setup_test_config(test_api_config):
    """Automatically set up test configuration for all tests."""
    test_config = SystemConfig(
        api=test_api_config,
        retry=RetryConfig(max_attempts=3, initial_delay=1.0, backoff_multiplier=2.0),
        logging=LoggingConfig(level="DEBUG")
    )
    set_config(test_config)
    set_error_handler(ErrorHandler())

    yield test_config

    set_config(None)
    set_error_handler(None)


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def make_fetcher(test_api_config, recording_sleep):
    """Build a fetcher whose requests are answered by ``handler``."""
    def factory(handler, **kwargs):
        kwargs.setdefault("sleep", recording_sleep)
        return ResilientFetcher(
            api_config=test_api_config,
            transport=httpx.MockTransport(handler),
            **kwargs
        )
    return factory


@pytest.fixture
def make_client(make_fetcher, test_api_config):
    """Build a PDBClient whose requests are answered by ``handler``."""
    def factory(handler):
        return PDBClient(fetcher=make_fetcher(handler), api_config=test_api_config)
    return factory


@pytest.fixture
def curated_store():
    return KnownActiveSiteStore({
        "6LU7": {
            "active_site": "SARS-CoV-2 main protease active site",
            "binding_site": "Catalytic dyad: HIS41, CYS145",
            "catalytic_residues": ["HIS 41 (Chain A) - Catalytic residue"],
            "ligands": ["N3: peptidomimetic inhibitor"]
        }
    })
