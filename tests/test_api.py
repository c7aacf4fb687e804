from __future__ import annotations

import httpx
import pytest
from fastapi.testclient import TestClient

from reflex_data_explorer.api import HttpDataSource, create_api
from reflex_data_explorer.errors import NotFoundError, RemoteError, ValidationError
from reflex_data_explorer.models import FetchParams
from reflex_data_explorer.record_store import RecordStore
from reflex_data_explorer.source import RemoteDataSource


@pytest.fixture
def client(store: RecordStore) -> TestClient:
    return TestClient(create_api(store))


# -- server --


def test_get_first_page(client: TestClient) -> None:
    response = client.get("/api/records", params={"page": 1, "pageSize": 20})

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 250
    assert len(body["rows"]) == 20
    assert body["rows"][0]["id"] == 1


def test_get_with_filter_and_sort(client: TestClient) -> None:
    response = client.get(
        "/api/records",
        params={"page": 1, "pageSize": 10, "q": "invited", "sortKey": "id", "sortDir": "desc"},
    )

    body = response.json()
    assert body["total"] == 84
    assert body["rows"][0]["id"] == 250
    assert all(row["status"] == "invited" for row in body["rows"])


def test_get_defaults(client: TestClient) -> None:
    body = client.get("/api/records").json()
    assert len(body["rows"]) == 20


@pytest.mark.parametrize(
    "params",
    [
        {"pageSize": "abc"},
        {"page": 0},
        {"pageSize": 500},
        {"sortKey": "id", "sortDir": "sideways"},
        {"sortKey": "nope", "sortDir": "asc"},
    ],
)
def test_get_rejects_bad_parameters(client: TestClient, params: dict) -> None:
    response = client.get("/api/records", params=params)

    assert response.status_code == 400
    assert isinstance(response.json()["error"], str)


def test_patch_then_read_back(client: TestClient) -> None:
    response = client.patch("/api/records", json={"id": 7, "key": "status", "value": "disabled"})
    assert response.status_code == 200
    assert response.json() == {"success": True}

    rows = client.get("/api/records", params={"page": 1, "pageSize": 10}).json()["rows"]
    assert rows[6]["status"] == "disabled"


def test_patch_out_of_domain_value(client: TestClient) -> None:
    response = client.patch("/api/records", json={"id": 1, "key": "role", "value": "superadmin"})

    assert response.status_code == 400
    assert "superadmin" in response.json()["error"]


def test_patch_unknown_id(client: TestClient) -> None:
    response = client.patch("/api/records", json={"id": 99999, "key": "status", "value": "active"})

    assert response.status_code == 404
    assert response.json() == {"error": "Row not found: 99999"}


@pytest.mark.parametrize(
    "payload",
    [
        {"key": "name", "value": "x"},
        {"id": "abc", "key": "name", "value": "x"},
        {"id": 1, "value": "x"},
        {"id": 1, "key": "created_at", "value": "x"},
        {"id": 1, "key": "name", "value": 5},
    ],
)
def test_patch_malformed_payload(client: TestClient, payload: dict) -> None:
    response = client.patch("/api/records", json=payload)

    assert response.status_code == 400
    assert "error" in response.json()


def test_custom_prefix(store: RecordStore) -> None:
    client = TestClient(create_api(store, prefix="/admin/v1"))
    assert client.get("/admin/v1/records").status_code == 200
    assert client.get("/api/records").status_code == 404


def test_each_app_serves_its_own_store() -> None:
    small = TestClient(create_api(RecordStore(5)))
    large = TestClient(create_api(RecordStore(30)))

    assert small.get("/api/records").json()["total"] == 5
    assert large.get("/api/records").json()["total"] == 30


# -- client --


def _asgi_source(store: RecordStore) -> HttpDataSource:
    transport = httpx.ASGITransport(app=create_api(store))
    client = httpx.AsyncClient(transport=transport, base_url="http://testserver")
    return HttpDataSource("http://testserver/api", client=client)


def _mock_source(handler) -> HttpDataSource:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpDataSource("http://remote/api/", client=client)


@pytest.mark.asyncio
async def test_http_source_round_trip(store: RecordStore) -> None:
    source = _asgi_source(store)

    await source.write_cell({"id": 3, "name": "User 3"}, "name", "Renamed Three")
    page = await source.fetch_page(
        FetchParams(page=1, page_size=10, sort_key="name", sort_dir="desc", filters={"q": "three"})
    )

    assert page.total == 1
    assert page.rows[0]["id"] == 3
    assert page.rows[0]["name"] == "Renamed Three"


@pytest.mark.asyncio
async def test_http_source_maps_400_to_validation_error(store: RecordStore) -> None:
    source = _asgi_source(store)

    with pytest.raises(ValidationError) as exc_info:
        await source.write_cell({"id": 1}, "role", "superadmin")
    assert "superadmin" in exc_info.value.message


@pytest.mark.asyncio
async def test_http_source_maps_404_to_not_found(store: RecordStore) -> None:
    source = _asgi_source(store)

    with pytest.raises(NotFoundError):
        await source.write_cell({"id": 99999}, "status", "active")


@pytest.mark.asyncio
async def test_http_source_sends_wire_parameters() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"rows": [], "total": 0})

    source = _mock_source(handler)
    await source.fetch_page(FetchParams(page=3, page_size=50, sort_key="email", sort_dir="asc", filters={"q": "ann"}))

    request = seen[0]
    assert request.url.path == "/api/records"
    assert dict(request.url.params) == {
        "page": "3",
        "pageSize": "50",
        "sortKey": "email",
        "sortDir": "asc",
        "q": "ann",
    }


@pytest.mark.asyncio
async def test_http_source_unstructured_error_is_remote_error() -> None:
    source = _mock_source(lambda request: httpx.Response(500, text="<html>oops</html>"))

    with pytest.raises(RemoteError) as exc_info:
        await source.fetch_page(FetchParams())
    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_http_source_structured_server_error_keeps_message() -> None:
    source = _mock_source(lambda request: httpx.Response(503, json={"error": "maintenance"}))

    with pytest.raises(RemoteError, match="maintenance"):
        await source.fetch_page(FetchParams())


@pytest.mark.asyncio
async def test_http_source_transport_failure_is_remote_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    source = _mock_source(handler)

    with pytest.raises(RemoteError):
        await source.write_cell({"id": 1}, "name", "x")


@pytest.mark.asyncio
async def test_http_source_malformed_page_is_remote_error() -> None:
    source = _mock_source(lambda request: httpx.Response(200, json={"rows": "nope"}))

    with pytest.raises(RemoteError):
        await source.fetch_page(FetchParams())


@pytest.mark.asyncio
async def test_http_source_does_not_close_borrowed_client() -> None:
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, json={})))

    async with HttpDataSource("http://remote/api", client=client):
        pass

    assert not client.is_closed
    await client.aclose()


@pytest.mark.asyncio
async def test_http_source_closes_its_own_client() -> None:
    source = HttpDataSource("http://remote/api")

    await source.aclose()

    assert source._client.is_closed


def test_sources_satisfy_the_contract(store: RecordStore) -> None:
    assert isinstance(store, RemoteDataSource)
    assert issubclass(HttpDataSource, RemoteDataSource)
