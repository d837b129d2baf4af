"""Tests for the import API endpoints."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from playlistnotes.api.routers import api_router
from playlistnotes.config import Settings
from playlistnotes.domain.entities.error_codes import ImportErrorCode
from playlistnotes.domain.exceptions import AdapterError
from playlistnotes.infrastructure.adapters import AdapterSet
from playlistnotes.main import create_app

YOUTUBE_URL = "https://www.youtube.com/playlist?list=PL123"
SPOTIFY_URL = "https://open.spotify.com/playlist/37i9dQZF1DXcBWIGoYBM5M"


class TestImportEndpoints:
    """Test /api/import."""

    @pytest.fixture
    def app(self, settings: Settings, scripted_adapters: AdapterSet) -> FastAPI:
        return create_app(settings, adapters=scripted_adapters)

    @pytest.fixture
    def client(self, app: FastAPI) -> TestClient:
        return TestClient(app)

    def test_start_import(self, client, scripted_adapters, page_factory):
        """Test a successful first page."""
        scripted_adapters.youtube.results = [
            page_factory("youtube", ["a", "b"], cursor="page:1", title="Mix", total=12)
        ]

        response = client.post("/api/import", json={"url": YOUTUBE_URL})

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert [t["id"] for t in body["data"]["tracks"]] == ["a", "b"]
        assert body["data"]["title"] == "Mix"
        assert body["data"]["total"] == 12
        assert body["data"]["meta"]["hasMore"] is True
        assert body["data"]["meta"]["cursor"] == "page:1"
        assert "importedAt" in body["data"]
        assert "errorCode" not in body
        assert "X-Correlation-ID" in response.headers

    def test_unsupported_url(self, client):
        """Test an unsupported link is a 400 with code and message."""
        response = client.post("/api/import", json={"url": "https://example.com/x"})

        assert response.status_code == 400
        body = response.json()
        assert body["ok"] is False
        assert body["code"] == "ERR_UNSUPPORTED_URL"
        assert body["retryable"] is False
        assert body["message"].startswith("That URL doesn't look like")

    def test_missing_url_is_422(self, client):
        """Test request validation."""
        assert client.post("/api/import", json={}).status_code == 422

    def test_blank_url_is_422(self, client, scripted_adapters):
        """Test a whitespace-only url is rejected before any import starts."""
        response = client.post("/api/import", json={"url": "   "})

        assert response.status_code == 422
        assert response.json() == {"detail": "Import URL must not be empty"}
        assert scripted_adapters.youtube.calls == []
        assert client.get("/api/import/status").json()["error_code"] is None

    def test_fallback_carries_error_code(self, client, scripted_adapters):
        """Test fallback demo data is a 200 with the adapter's code attached."""
        scripted_adapters.spotify.results = [AdapterError(ImportErrorCode.PRIVATE_PLAYLIST)]

        response = client.post("/api/import", json={"url": SPOTIFY_URL})

        assert response.status_code == 200
        body = response.json()
        assert body["errorCode"] == "ERR_PRIVATE_PLAYLIST"
        assert body["data"]["title"].startswith("MOCK DATA (fallback) - ")
        assert len(body["data"]["tracks"]) == 3

    def test_load_more(self, client, scripted_adapters, page_factory):
        """Test /more without a body continues the session."""
        scripted_adapters.youtube.results = [
            page_factory("youtube", ["a", "b"], cursor="page:1"),
            page_factory("youtube", ["c"]),
        ]
        client.post("/api/import", json={"url": YOUTUBE_URL})

        response = client.post("/api/import/more")

        assert response.status_code == 200
        body = response.json()
        assert [t["id"] for t in body["data"]["tracks"]] == ["c"]
        assert body["data"]["meta"]["hasMore"] is False

    def test_load_more_with_existing_ids(self, client, scripted_adapters, page_factory):
        """Test client-side ids are skipped."""
        scripted_adapters.youtube.results = [
            page_factory("youtube", ["a"], cursor="page:1"),
            page_factory("youtube", ["b", "c"]),
        ]
        client.post("/api/import", json={"url": YOUTUBE_URL})

        response = client.post(
            "/api/import/more", json={"existing_ids": ["a", "b"], "start_index": 1}
        )

        assert [t["id"] for t in response.json()["data"]["tracks"]] == ["c"]

    def test_load_more_failure_status(self, client, scripted_adapters, page_factory):
        """Test a rate limit during load-more is a retryable 429."""
        scripted_adapters.youtube.results = [
            page_factory("youtube", ["a"], cursor="page:1"),
            AdapterError(ImportErrorCode.RATE_LIMITED),
        ]
        client.post("/api/import", json={"url": YOUTUBE_URL})

        response = client.post("/api/import/more", json={})

        assert response.status_code == 429
        assert response.json()["code"] == "ERR_RATE_LIMITED"
        assert response.json()["retryable"] is True

    def test_reimport(self, client, scripted_adapters, page_factory):
        """Test reimport with persisted meta and fallback title."""
        page = page_factory("youtube", ["a"], title="")
        scripted_adapters.youtube.results = [page]

        response = client.post(
            "/api/import/reimport",
            json={
                "url": YOUTUBE_URL,
                "fallback_title": "Kept Title",
                "existing_meta": {"provider": "youtube", "playlistId": "pl-1"},
            },
        )

        assert response.status_code == 200
        assert response.json()["data"]["title"] == "Kept Title"

    def test_reimport_without_url(self, client):
        """Test an empty reimport url is an ERR_UNKNOWN failure."""
        response = client.post("/api/import/reimport", json={})

        assert response.status_code == 502
        assert response.json()["code"] == "ERR_UNKNOWN"

    def test_status_and_reset(self, client, scripted_adapters, page_factory):
        """Test status reporting and DELETE."""
        scripted_adapters.youtube.results = [
            page_factory("youtube", ["a", "b"], cursor="page:1", total=9)
        ]
        client.post("/api/import", json={"url": YOUTUBE_URL})

        status = client.get("/api/import/status").json()
        assert status == {
            "status": "idle",
            "error_code": None,
            "loading": False,
            "has_more": True,
            "total": 9,
            "tracks": 2,
            "playlist_key": "youtube:pl-1",
        }

        assert client.delete("/api/import").json() == {"status": "idle"}
        after = client.get("/api/import/status").json()
        assert after["tracks"] == 0
        assert after["playlist_key"] is None

    def test_status_reports_failure(self, client):
        """Test the last failure code shows up in the status."""
        client.post("/api/import", json={"url": "https://example.com"})

        assert client.get("/api/import/status").json()["error_code"] == "ERR_UNSUPPORTED_URL"


class TestImportDependencies:
    """Test dependency wiring."""

    def test_missing_flow_is_503(self):
        """Test a router mounted without app state answers 503."""
        app = FastAPI()
        app.include_router(api_router, prefix="/api")

        response = TestClient(app).get("/api/import/status")

        assert response.status_code == 503
        assert response.json()["detail"] == "Import flow not initialized"
