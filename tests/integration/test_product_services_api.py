"""
API tests for the product services endpoints

Runs the FastAPI app in-process with TestClient (lifespan not started, so
no preload and no real Redis/database). Service dependencies are
overridden with FakeCache and mocked data access.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock
from fastapi.testclient import TestClient

from product_services.api.main import app
from product_services.api.routes.product_services import (
    get_product_data_service,
    get_product_services_service,
    parse_search_body,
)
from product_services.cache.redis_client import get_redis
from product_services.database.config import get_db
from product_services.services.product_data_service import DataSourceError
from product_services.services.product_services_service import ProductServicesService
from product_services.services.query_builder import FilterType

RECORDS_URL = "/api/v1/product-services/records"
HIERARCHY_URL = "/api/v1/product-services/hierarchy"
SEARCH_URL = "/api/v1/product-services/search"


@pytest.fixture
def data_service(records):
    service = MagicMock()
    service.fetch_records = AsyncMock(return_value=records)
    service.search = AsyncMock(return_value=records[:1])
    return service


@pytest.fixture
def client(fake_cache, data_service):
    service = ProductServicesService(fake_cache, data_service=data_service, strategy="filtered")

    app.dependency_overrides[get_product_services_service] = lambda: service
    app.dependency_overrides[get_product_data_service] = lambda: data_service
    app.dependency_overrides[get_redis] = lambda: fake_cache

    yield TestClient(app)

    app.dependency_overrides.clear()


class TestRecordsEndpoint:

    def test_returns_envelope(self, client):
        response = client.post(RECORDS_URL, json={"client": [1], "segment": ["NA"]})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Success"
        assert body["status_code"] == 200
        assert len(body["data"]) == 4
        assert body["data"][0]["parent_id"] == "1"

    def test_repeat_request_hits_cache(self, client, data_service):
        client.post(RECORDS_URL, json={"client_name": "Acme"})
        client.post(RECORDS_URL, json={"client_name": "acme "})

        data_service.fetch_records.assert_awaited_once()

    def test_cache_down_still_serves(self, client, fake_cache, data_service):
        fake_cache.down = True

        response = client.post(RECORDS_URL, json={})

        assert response.status_code == 200
        assert len(response.json()["data"]) == 4

    def test_database_error_is_generic_500(self, client, data_service):
        data_service.fetch_records.side_effect = DataSourceError("connection refused to db-host:5432")

        response = client.post(RECORDS_URL, json={})

        assert response.status_code == 500
        body = response.json()
        assert body == {
            "success": False,
            "message": "Internal server error",
            "status_code": 500,
            "data": None,
        }
        assert "db-host" not in response.text

    def test_invalid_filter_type_rejected(self, client):
        response = client.post(RECORDS_URL, json={"client": ["not-a-number"]})

        assert response.status_code == 422


class TestHierarchyEndpoint:

    def test_returns_tree(self, client):
        response = client.post(HIERARCHY_URL, json={})

        assert response.status_code == 200
        tree = response.json()["data"]
        assert [parent["id"] for parent in tree] == [1, 2]
        assert tree[0]["type"] == "Parent"
        assert tree[0]["sub_rows"][0]["sub_rows"][0]["type"] == "Customer"

    def test_database_error_is_generic_500(self, client, data_service):
        data_service.fetch_records.side_effect = DataSourceError("boom")

        response = client.post(HIERARCHY_URL, json={})

        assert response.status_code == 500
        assert response.json()["success"] is False


class TestSearchEndpoint:

    def test_maps_body_to_conditions(self, client, data_service):
        response = client.post(SEARCH_URL, json={
            "clientIds": [1, 3],
            "nameSearch": "Company",
            "somethingElse": "ignored",
        })

        assert response.status_code == 200
        assert len(response.json()["data"]) == 1
        conditions = data_service.search.await_args.args[0]
        assert [(c.column, c.type, c.value) for c in conditions] == [
            ("mdm_gems_ult_parent_id", FilterType.IN, [1, 3]),
            ("client_name", FilterType.LIKE, "Company"),
        ]

    def test_wrong_value_type_is_400(self, client):
        response = client.post(SEARCH_URL, json={"nameSearch": ["a", "b"]})

        assert response.status_code == 400

    @pytest.mark.parametrize("body", [
        {"clientIds": ["abc"]},
        {"clientIds": [True]},
        {"segments": [{"x": 1}]},
        {"countries": [1]},
    ])
    def test_wrong_element_type_is_400(self, client, data_service, body):
        response = client.post(SEARCH_URL, json=body)

        assert response.status_code == 400
        data_service.search.assert_not_awaited()

    def test_unexpected_error_is_generic_500(self, client, data_service):
        data_service.search.side_effect = RuntimeError("pool exhausted on db-host")

        response = client.post(SEARCH_URL, json={"regions": ["US"]})

        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "message": "Internal server error",
            "status_code": 500,
            "data": None,
        }

    def test_builder_rejection_is_400(self, client, data_service):
        data_service.search.side_effect = ValueError("Column not filterable: x")

        response = client.post(SEARCH_URL, json={"regions": ["US"]})

        assert response.status_code == 400

    def test_database_error_is_generic_500(self, client, data_service):
        data_service.search.side_effect = DataSourceError("boom")

        response = client.post(SEARCH_URL, json={})

        assert response.status_code == 500
        assert response.json()["message"] == "Internal server error"

    def test_parse_search_body_wraps_scalars_and_skips_blanks(self):
        conditions = parse_search_body({"segments": "NA", "parentNameSearch": "  ", "countries": []})

        assert [(c.column, c.value) for c in conditions] == [("mdm_client_segment", ["NA"])]


class TestCacheEndpoints:

    def test_stats(self, client):
        response = client.get("/api/v1/cache/stats")

        assert response.status_code == 200
        assert response.json()["status"] == "connected"

    def test_evict_drops_namespace(self, client, fake_cache):
        client.post(RECORDS_URL, json={})
        fake_cache.store["other_service:v1:x"] = "1"

        response = client.delete("/api/v1/cache/product-services")

        assert response.status_code == 200
        assert response.json() == {"pattern": "product_services:*", "deleted": 1}
        assert list(fake_cache.store) == ["other_service:v1:x"]


class TestHealth:

    def test_root(self, client):
        assert client.get("/").json()["status"] == "running"

    def test_health_reports_cache_and_preload(self, client):
        session = MagicMock()
        session.execute = AsyncMock()

        async def fake_db():
            yield session

        app.dependency_overrides[get_db] = fake_db

        body = client.get("/health").json()

        assert body["status"] == "healthy"
        assert body["cache"] == "connected"
        assert body["preload"] == "not_started"
