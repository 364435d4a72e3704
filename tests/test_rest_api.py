"""
Tests for the REST API endpoints.
"""

import httpx
import pytest
from fastapi.testclient import TestClient

from pdb_analysis import __version__
from pdb_analysis.api.rest_api import app, get_knowledge_store, get_pdb_client

from conftest import TEST_SEARCH_API, UpstreamStub


@pytest.fixture
def api_client(make_client, curated_store):
    """TestClient whose tools talk to a simulated upstream."""
    stub = UpstreamStub()
    app.dependency_overrides[get_pdb_client] = lambda: make_client(stub)
    app.dependency_overrides[get_knowledge_store] = lambda: curated_store
    with TestClient(app) as client:
        client.stub = stub
        yield client
    app.dependency_overrides.clear()


class TestInfoEndpoints:
    """Test the informational endpoints."""

    def test_root(self, api_client):
        response = api_client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "pdb-analysis"
        assert data["version"] == __version__
        assert data["docs"] == "/docs"

    def test_health(self, api_client):
        response = api_client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["curated_entries"] == 1
        assert api_client.stub.requests == []


class TestToolEndpoints:
    """Test tool invocation over HTTP."""

    def test_analyze_unknown_entry(self, api_client):
        response = api_client.post("/tools/analyze-active-site", json={"pdbId": "xxxx"})

        assert response.status_code == 200
        data = response.json()
        assert data["tool"] == "analyze-active-site"
        assert data["text"].startswith("Failed to retrieve structure data for PDB ID: XXXX.")

    def test_analyze_accepts_field_name(self, api_client):
        response = api_client.post("/tools/analyze-active-site", json={"pdb_id": "6lu7"})
        assert response.status_code == 200
        assert "PDB ID: 6LU7" in response.json()["text"]

    @pytest.mark.parametrize("body", [{"pdbId": "toolong"}, {"pdbId": ""}, {}])
    def test_analyze_invalid_arguments(self, api_client, body):
        response = api_client.post("/tools/analyze-active-site", json=body)
        assert response.status_code == 422
        assert api_client.stub.requests == []

    def test_search(self, api_client):
        api_client.stub.routes[("POST", TEST_SEARCH_API)] = httpx.Response(200, json={"result_set": []})

        response = api_client.post("/tools/search-disease-proteins", json={"disease": "covid"})

        assert response.status_code == 200
        data = response.json()
        assert data["tool"] == "search-disease-proteins"
        assert data["text"].startswith("No proteins found related to: covid.")

    def test_search_blank_disease(self, api_client):
        response = api_client.post("/tools/search-disease-proteins", json={"disease": "  "})
        assert response.status_code == 422
