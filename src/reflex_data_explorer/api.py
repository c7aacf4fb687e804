"""HTTP binding of the :class:`RemoteDataSource` contract.

Server side, :func:`create_api` exposes a :class:`RecordStore` as::

    GET   {prefix}/records?page=&pageSize=&sortKey=&sortDir=&q=   -> {"rows": [...], "total": n}
    PATCH {prefix}/records   {"id": 1, "key": "role", "value": "admin"}   -> {"success": true}

Failures answer ``{"error": message}`` with 400 (malformed payload or a
value outside the field's domain) or 404 (unknown id).

Client side, :class:`HttpDataSource` speaks the same protocol through
``httpx`` and turns error responses back into the error taxonomy.
"""

import logging
from collections.abc import Mapping
from typing import Annotated, Any, Literal

import httpx
from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from reflex_data_explorer.errors import (
    DataSourceError,
    NotFoundError,
    RemoteError,
    ValidationError,
)
from reflex_data_explorer.models import CellWrite, FetchParams, PageResult
from reflex_data_explorer.record_store import RecordStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------

def get_record_store(request: Request) -> RecordStore:
    """Dependency: the store this app was created with."""
    return request.app.state.record_store


StoreDep = Annotated[RecordStore, Depends(get_record_store)]

router = APIRouter(tags=["records"])


@router.get("/records", response_model=PageResult)
async def read_records(
    store: StoreDep,
    page: Annotated[int, Query()] = 1,
    page_size: Annotated[int, Query(alias="pageSize")] = 20,
    sort_key: Annotated[str | None, Query(alias="sortKey")] = None,
    sort_dir: Annotated[Literal["asc", "desc"] | None, Query(alias="sortDir")] = None,
    q: Annotated[str | None, Query()] = None,
) -> PageResult:
    params = FetchParams(
        page=page,
        page_size=page_size,
        sort_key=sort_key or None,
        sort_dir=sort_dir,
        filters={"q": q} if q else {},
    )
    return await store.fetch_page(params)


@router.patch("/records")
async def write_record(body: CellWrite, store: StoreDep) -> dict[str, bool]:
    await store.write_cell({"id": body.id}, body.key, body.value)
    return {"success": True}


async def _data_source_error_handler(_request: Request, exc: DataSourceError) -> JSONResponse:
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


async def _request_validation_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = "Invalid payload"
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"Invalid payload: {location} {first.get('msg', '')}".strip()
    return JSONResponse({"error": message}, status_code=400)


def create_api(store: RecordStore, *, prefix: str = "/api") -> FastAPI:
    """Build the FastAPI app serving *store*.

    The store is attached to ``app.state`` and reached through a
    dependency; nothing is looked up from module globals.
    """
    api = FastAPI(title="reflex-data-explorer")
    api.state.record_store = store
    api.include_router(router, prefix=prefix)
    api.add_exception_handler(DataSourceError, _data_source_error_handler)  # type: ignore[arg-type]
    api.add_exception_handler(RequestValidationError, _request_validation_handler)  # type: ignore[arg-type]
    return api


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

def _error_from_response(response: httpx.Response) -> DataSourceError:
    """Map a non-success response to the error taxonomy."""
    message: str | None = None
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("error"), str):
        message = body["error"]

    if message is None:
        return RemoteError(
            f"Request failed with status {response.status_code}",
            status_code=response.status_code,
        )
    if response.status_code == 400:
        return ValidationError(message)
    if response.status_code == 404:
        return NotFoundError(message)
    return RemoteError(message, status_code=response.status_code)


class HttpDataSource:
    """:class:`RemoteDataSource` backed by the HTTP binding.

    Args:
        base_url: Where the API is mounted, e.g. ``"http://localhost:8000/api"``.
        client: Optional pre-configured ``httpx.AsyncClient``.  A client
            created here is closed by :meth:`aclose`; a passed-in one is not.
        timeout: Request timeout in seconds for a client created here.
    """

    def __init__(
        self,
        base_url: str,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client if client is not None else httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> "HttpDataSource":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _send(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as err:
            logger.warning("%s %s failed: %s", method, url, err)
            raise RemoteError(f"Failed to reach {url}: {err}") from err
        if not response.is_success:
            raise _error_from_response(response)
        try:
            return response.json()
        except ValueError as err:
            raise RemoteError(f"Malformed response from {url}") from err

    async def fetch_page(self, params: FetchParams) -> PageResult:
        query: dict[str, Any] = {"page": params.page, "pageSize": params.page_size}
        if params.sort_key and params.sort_dir:
            query["sortKey"] = params.sort_key
            query["sortDir"] = params.sort_dir
        if params.filters.get("q"):
            query["q"] = params.filters["q"]
        payload = await self._send("GET", "/records", params=query)
        try:
            return PageResult.model_validate(payload)
        except PydanticValidationError as err:
            raise RemoteError("Malformed page payload") from err

    async def write_cell(self, row: Mapping[str, Any], key: str, value: Any) -> None:
        body = {"id": row.get("id"), "key": key, "value": value}
        await self._send("PATCH", "/records", json=body)
