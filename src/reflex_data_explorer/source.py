"""The contract the grid is built against."""

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from reflex_data_explorer.models import FetchParams, PageResult


@runtime_checkable
class RemoteDataSource(Protocol):
    """Paged read and single-cell write access to a record set.

    Implementations hold no per-call state: ``fetch_page`` may be called
    repeatedly and concurrently, and each call is independent.  Both methods
    raise :class:`~reflex_data_explorer.errors.DataSourceError` subclasses.
    """

    async def fetch_page(self, params: FetchParams) -> PageResult:
        """Return the rows of ``params.page`` and the filtered total."""
        ...

    async def write_cell(self, row: Mapping[str, Any], key: str, value: Any) -> None:
        """Overwrite ``key`` of the record identified by ``row["id"]``.

        Raises:
            ValidationError: The value is outside the field's domain or the
                request is malformed.
            NotFoundError: The record no longer exists.
        """
        ...
