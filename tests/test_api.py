# tests/test_api.py
from unittest import mock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from tabclean.api.main import app, get_settings
from tabclean.api.schemas import PreprocessResponse
from tabclean.config import Config
from tabclean.exceptions import UpstreamFailure

SMALL_CSV = "1,2,0\n3,4,1\n5,6,0"
COLOR_CSV = "size,color,label\n1,red,0\n2,blue,1\n,red,0\n4,green,1\n1000,blue,0\n"


@pytest.fixture
def settings():
    config = Config()
    config.delegate.URL = None
    app.dependency_overrides[get_settings] = lambda: config
    yield config
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(settings):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["delegate_configured"] is False

    @pytest.mark.asyncio
    async def test_root(self, client):
        response = await client.get("/")

        assert response.status_code == 200
        assert response.json()["health"] == "/health"


class TestPreprocess:

    @pytest.mark.asyncio
    async def test_json_request(self, client):
        response = await client.post("/api/preprocess", json={"csvContent": SMALL_CSV})

        assert response.status_code == 200
        body = response.json()
        assert body["report"]["samples"] == 3
        assert body["report"]["features"] == 2
        assert body["report"]["missingFilled"] == 0
        assert body["report"]["ready"] is True
        assert body["data"]["columns"] == ["column_0", "column_1", "column_2"]
        assert len(body["data"]["rows"]) == 3
        assert body["labels"] == [0.0, 1.0, 0.0]

    @pytest.mark.asyncio
    async def test_categorical_mappings_and_outliers(self, client):
        response = await client.post("/api/preprocess", json={"csvContent": COLOR_CSV})

        report = response.json()["report"]
        assert report["categoricalMappings"] == {"color": ["red", "blue", "green"]}
        assert report["missingFilled"] == 1
        assert report["outliersRemoved"] == 1
        assert report["outlierPolicy"] == "replace"

    @pytest.mark.asyncio
    async def test_outlier_policy_override(self, client):
        response = await client.post(
            "/api/preprocess",
            json={"csvContent": COLOR_CSV, "outlierPolicy": "drop"},
        )

        report = response.json()["report"]
        assert report["outlierPolicy"] == "drop"
        assert report["samples"] == 4

    @pytest.mark.asyncio
    async def test_report_only(self, client):
        response = await client.post(
            "/api/preprocess",
            json={"csvContent": SMALL_CSV, "includeData": False},
        )

        assert response.status_code == 200
        assert set(response.json()) == {"report"}

    @pytest.mark.asyncio
    async def test_file_upload(self, client):
        response = await client.post(
            "/preprocess",
            files={"file": ("data.csv", COLOR_CSV.encode("utf-8"), "text/csv")},
            data={"outlier_policy": "drop"},
        )

        assert response.status_code == 200
        assert response.json()["report"]["samples"] == 4

    @pytest.mark.asyncio
    async def test_file_upload_without_header(self, client):
        response = await client.post(
            "/preprocess",
            files={"file": ("data.csv", b"1,2,0\n3,4,1\n5,6,0\n", "text/csv")},
            data={"has_header": "false"},
        )

        assert response.status_code == 200
        assert response.json()["report"]["samples"] == 3

    @pytest.mark.asyncio
    async def test_file_upload_text_first_row_kept(self, client):
        response = await client.post(
            "/preprocess",
            files={"file": ("data.csv", b"red,1,0\nblue,2,1\n", "text/csv")},
        )

        assert response.status_code == 200
        assert response.json()["report"]["samples"] == 2
        assert response.json()["data"]["columns"] == ["column_0", "column_1", "column_2"]

    @pytest.mark.asyncio
    async def test_empty_upload(self, client):
        response = await client.post("/preprocess", files={"file": ("data.csv", b"", "text/csv")})

        assert response.status_code == 400
        assert response.json()["error"] == "Uploaded file is empty"

    @pytest.mark.asyncio
    async def test_malformed_csv(self, client):
        response = await client.post("/api/preprocess", json={"csvContent": "a,b\n1,2,3\n"})

        assert response.status_code == 400
        assert response.json()["error"] == "Could not parse CSV content"
        assert "details" in response.json()

    @pytest.mark.asyncio
    async def test_too_large(self, client, settings):
        settings.data_validation.MAX_REQUEST_SIZE = 10

        response = await client.post("/api/preprocess", json={"csvContent": SMALL_CSV + "\n7,8,1"})

        assert response.status_code == 413

    @pytest.mark.asyncio
    async def test_invalid_request(self, client):
        response = await client.post("/api/preprocess", json={"outlierPolicy": "clip"})

        assert response.status_code == 422
        assert response.json()["error"] == "Invalid request"

    @pytest.mark.asyncio
    async def test_stage_failure(self, client):
        with mock.patch("tabclean.pipeline.normalize", side_effect=RuntimeError("boom")):
            response = await client.post("/api/preprocess", json={"csvContent": SMALL_CSV})

        assert response.status_code == 500
        assert response.json() == {
            "error": "Cleansing pipeline failed",
            "details": "Normalization error: boom",
        }


class TestDelegate:

    @pytest.mark.asyncio
    async def test_not_configured(self, client):
        response = await client.post("/api/preprocess/delegate", json={"csvContent": SMALL_CSV})

        assert response.status_code == 503

    @pytest.mark.asyncio
    async def test_forwards_response(self, client, settings):
        settings.delegate.URL = "http://cleaner:8001"
        upstream = PreprocessResponse.model_validate({
            "report": {"samples": 3, "features": 2, "missingFilled": 0, "outliersRemoved": 0, "ready": True},
        })

        with mock.patch("tabclean.api.main.RemoteCleaner") as cleaner_cls:
            cleaner_cls.return_value.clean.return_value = upstream
            response = await client.post("/api/preprocess/delegate", json={"csvContent": SMALL_CSV})

        assert response.status_code == 200
        assert response.json()["report"]["samples"] == 3
        cleaner_cls.assert_called_once_with("http://cleaner:8001", timeout=settings.delegate.TIMEOUT)

    @pytest.mark.asyncio
    async def test_upstream_failure(self, client, settings):
        settings.delegate.URL = "http://cleaner:8001"

        with mock.patch("tabclean.api.main.RemoteCleaner") as cleaner_cls:
            cleaner_cls.return_value.clean.side_effect = UpstreamFailure(
                "Cleaning service returned HTTP 500", details="Traceback: KeyError 'label'"
            )
            response = await client.post("/api/preprocess/delegate", json={"csvContent": SMALL_CSV})

        assert response.status_code == 502
        assert response.json()["details"] == "Traceback: KeyError 'label'"
