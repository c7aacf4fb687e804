"""Records, columns, view state and wire models for the record grid."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

Record = dict[str, Any]
SortDir = Literal["asc", "desc"] | None

ROLES: tuple[str, ...] = ("admin", "editor", "viewer")
STATUSES: tuple[str, ...] = ("active", "invited", "disabled")

PAGE_SIZE_OPTIONS: tuple[int, ...] = (10, 20, 50, 100)
DEFAULT_PAGE_SIZE: int = 20
DEFAULT_COLUMN_WIDTH: int = 180
MIN_COLUMN_WIDTH: int = 80

# Fields the free-text filter looks at, in match order.
SEARCHABLE_FIELDS: tuple[str, ...] = ("id", "name", "email", "role", "status")

# Fields whose values must come from a fixed enumeration.
ENUM_DOMAINS: dict[str, tuple[str, ...]] = {
    "role": ROLES,
    "status": STATUSES,
}

DisplayTransform = Callable[[Record], Any]


@dataclass(frozen=True)
class Column:
    """One grid column.

    ``display`` is an optional pure transform from the full record to the
    value shown in the cell.  It only affects rendering: sorting, filtering
    and writes always use ``record[key]``.  ``value_options`` turns the
    inline editor into a select over exactly those values.
    """

    key: str
    header: str
    width: int | None = None
    editable: bool = False
    value_options: tuple[str, ...] | None = None
    display: DisplayTransform | None = field(default=None, compare=False, repr=False)

    def raw_value(self, record: Record) -> Any:
        """Return the stored value for this column."""
        return record.get(self.key)

    def render(self, record: Record) -> Any:
        """Return the renderable value for *record*."""
        if self.display is not None:
            return self.display(record)
        value = self.raw_value(record)
        return "" if value is None else value


def timestamp_display(key: str, fmt: str = "%Y-%m-%d %H:%M:%S") -> DisplayTransform:
    """Display transform showing the ISO timestamp in *key* in local time.

    Values that do not parse are shown unchanged.
    """

    def render(record: Record) -> Any:
        value = record.get(key)
        if not isinstance(value, str):
            return "" if value is None else value
        try:
            return datetime.fromisoformat(value).astimezone().strftime(fmt)
        except ValueError:
            return value

    return render


def user_columns() -> list[Column]:
    """Columns of the reference user table."""
    return [
        Column("id", "ID", width=90),
        Column("name", "Name", width=220, editable=True),
        Column("email", "Email", width=260, editable=True),
        Column("role", "Role", width=140, editable=True, value_options=ROLES),
        Column("status", "Status", width=140, editable=True, value_options=STATUSES),
        Column("created_at", "Created At", width=220, display=timestamp_display("created_at")),
    ]


@dataclass(frozen=True)
class ViewState:
    """Page, page size, sort and filter of a grid.

    ``sort_dir`` is ``None`` exactly when ``sort_key`` is ``None``.
    """

    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    sort_key: str | None = None
    sort_dir: SortDir = None
    filter_text: str = ""

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValueError(f"page must be >= 1, got {self.page}")
        if self.page_size not in PAGE_SIZE_OPTIONS:
            raise ValueError(
                f"page_size must be one of {PAGE_SIZE_OPTIONS}, got {self.page_size}"
            )
        if (self.sort_key is None) != (self.sort_dir is None):
            raise ValueError("sort_key and sort_dir must be set or cleared together")
        if self.sort_dir not in (None, "asc", "desc"):
            raise ValueError(f"Unknown sort direction: {self.sort_dir!r}")


@dataclass(frozen=True)
class EditSession:
    """A single in-progress cell edit.

    ``row_id`` pins the record the edit started on so the optimistic patch
    lands on the right row even when ``row_index`` has been re-used by a
    newer page.  ``error`` holds the message of the last failed commit.
    """

    row_index: int
    column_key: str
    draft_value: str
    row_id: Any = None
    error: str | None = None


class FetchParams(BaseModel):
    """Arguments of a ``fetch_page`` call."""

    model_config = ConfigDict(frozen=True)

    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    sort_key: str | None = None
    sort_dir: Literal["asc", "desc"] | None = None
    filters: dict[str, str] = Field(default_factory=dict)

    @property
    def query_text(self) -> str:
        """The free-text token, lower-cased."""
        return self.filters.get("q", "").lower()

    @classmethod
    def from_view(cls, view: ViewState) -> "FetchParams":
        filters = {"q": view.filter_text} if view.filter_text else {}
        return cls(
            page=view.page,
            page_size=view.page_size,
            sort_key=view.sort_key,
            sort_dir=view.sort_dir,
            filters=filters,
        )


class PageResult(BaseModel):
    """One page of records plus the filtered total."""

    rows: list[Record]
    total: int = Field(ge=0)


class CellWrite(BaseModel):
    """Body of a cell write request."""

    id: int
    key: str = Field(min_length=1)
    value: Any = None
