"""In-memory reference implementation of :class:`RemoteDataSource`.

The store keeps its records in a polars DataFrame.  Reads build a lazy
query in the same order every time -- filter, count, sort, slice -- and
collect only the requested page.  Writes replace a single cell with an
expression, so the frame keeps its column dtypes.

The backing frame is created on first access and then lives as long as the
store instance; it is never re-seeded.  Construct one store per service (or
per test) and hand it to whatever needs it.
"""

import logging
import time
from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from typing import Any

import polars as pl

from reflex_data_explorer.config import DataExplorerSettings
from reflex_data_explorer.errors import NotFoundError, ValidationError
from reflex_data_explorer.models import (
    ENUM_DOMAINS,
    ROLES,
    SEARCHABLE_FIELDS,
    STATUSES,
    FetchParams,
    PageResult,
    Record,
)

logger = logging.getLogger(__name__)

DEFAULT_SEED_SIZE: int = 250
DEFAULT_SEED_INTERVAL: timedelta = timedelta(milliseconds=8_640_000)

RECORD_SCHEMA: dict[str, pl.DataType] = {
    "id": pl.Int64(),
    "name": pl.String(),
    "email": pl.String(),
    "role": pl.String(),
    "status": pl.String(),
    "created_at": pl.String(),
}

# ``id`` identifies the record and ``created_at`` is set by the seed.
WRITABLE_FIELDS: frozenset[str] = frozenset({"name", "email", "role", "status"})


# ---------------------------------------------------------------------------
# Seed
# ---------------------------------------------------------------------------

def generate_seed(
    count: int = DEFAULT_SEED_SIZE,
    *,
    now: datetime | None = None,
    interval: timedelta = DEFAULT_SEED_INTERVAL,
) -> pl.DataFrame:
    """Build a deterministic synthetic population of *count* records.

    Record ``i`` (1-based) gets ``name="User i"``, ``email="useri@example.com"``,
    ``role=ROLES[i % 3]``, ``status=STATUSES[i % 3]`` and
    ``created_at = now - i * interval``.  Lower ids are therefore the
    newest records.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    ids = list(range(1, count + 1))
    return pl.DataFrame(
        {
            "id": ids,
            "name": [f"User {i}" for i in ids],
            "email": [f"user{i}@example.com" for i in ids],
            "role": [ROLES[i % len(ROLES)] for i in ids],
            "status": [STATUSES[i % len(STATUSES)] for i in ids],
            "created_at": [(now - i * interval).isoformat() for i in ids],
        },
        schema=RECORD_SCHEMA,
    )


# ---------------------------------------------------------------------------
# Query pieces
# ---------------------------------------------------------------------------

def filter_records(lf: pl.LazyFrame, token: str) -> pl.LazyFrame:
    """Keep records where any searchable field contains *token*.

    Matching is a case-insensitive substring test; an empty token keeps
    everything.  ``id`` is compared through its string form.
    """
    token = token.lower()
    if not token:
        return lf
    schema = lf.collect_schema()
    exprs = [
        pl.col(name).cast(pl.String).str.to_lowercase().str.contains(token, literal=True)
        for name in SEARCHABLE_FIELDS
        if name in schema
    ]
    if not exprs:
        return lf
    return lf.filter(pl.any_horizontal(exprs))


def sort_records(lf: pl.LazyFrame, key: str, direction: str) -> pl.LazyFrame:
    """Sort by the natural ordering of *key*; ``"desc"`` inverts it.

    Ties keep their current order and nulls go last in both directions.

    Raises:
        ValidationError: *key* is not a column or *direction* is unknown.
    """
    if key not in lf.collect_schema():
        raise ValidationError(f"Unknown sort key: {key!r}")
    if direction not in ("asc", "desc"):
        raise ValidationError(f"Unknown sort direction: {direction!r}")
    return lf.sort(key, descending=direction == "desc", nulls_last=True, maintain_order=True)


def paginate(lf: pl.LazyFrame, page: int, page_size: int) -> pl.LazyFrame:
    """Slice ``[(page-1)*page_size, page*page_size)``; past the end is empty."""
    return lf.slice((page - 1) * page_size, page_size)


# ---------------------------------------------------------------------------
# RecordStore
# ---------------------------------------------------------------------------

class RecordStore:
    """Single-process, non-durable record store.

    Args:
        seed_size: Number of synthetic records created on first access.
        now: Reference time for the seed timestamps (defaults to the time
            of first access).
        interval: Spacing between consecutive seed timestamps.
        max_page_size: Largest page a single read may request.
    """

    def __init__(
        self,
        seed_size: int = DEFAULT_SEED_SIZE,
        *,
        now: datetime | None = None,
        interval: timedelta = DEFAULT_SEED_INTERVAL,
        max_page_size: int = 100,
    ) -> None:
        self.seed_size = seed_size
        self.max_page_size = max_page_size
        self._now = now
        self._interval = interval
        self._frame: pl.DataFrame | None = None

    @classmethod
    def from_settings(
        cls, settings: DataExplorerSettings, *, seed_size: int | None = None
    ) -> "RecordStore":
        """Build a store from *settings*; *seed_size* overrides the configured size."""
        return cls(
            settings.seed_size if seed_size is None else seed_size,
            interval=settings.seed_interval,
            max_page_size=settings.max_page_size,
        )

    @property
    def frame(self) -> pl.DataFrame:
        """The backing frame, seeded on first access."""
        if self._frame is None:
            t0 = time.perf_counter()
            self._frame = generate_seed(self.seed_size, now=self._now, interval=self._interval)
            logger.info(
                "seeded %d records (%.1fms)",
                self._frame.height,
                (time.perf_counter() - t0) * 1000,
            )
        return self._frame

    @property
    def is_seeded(self) -> bool:
        return self._frame is not None

    def __len__(self) -> int:
        return self.frame.height

    def get_record(self, record_id: int) -> Record | None:
        """Return a copy of the record with *record_id*, or ``None``."""
        matches = self.frame.filter(pl.col("id") == record_id)
        if matches.height == 0:
            return None
        return matches.row(0, named=True)

    # -- reads --

    def query(self, params: FetchParams) -> PageResult:
        """Run *params* against the store synchronously."""
        if params.page < 1:
            raise ValidationError(f"page must be >= 1, got {params.page}")
        if not 1 <= params.page_size <= self.max_page_size:
            raise ValidationError(
                f"pageSize must be between 1 and {self.max_page_size}, got {params.page_size}"
            )

        t0 = time.perf_counter()
        lf = filter_records(self.frame.lazy(), params.query_text)
        total: int = lf.select(pl.len()).collect().item()

        if params.sort_key and params.sort_dir:
            lf = sort_records(lf, params.sort_key, params.sort_dir)

        rows = paginate(lf, params.page, params.page_size).collect().to_dicts()
        logger.info(
            "page=%d size=%d sort=%s/%s q=%r -> %d of %d rows (%.1fms)",
            params.page,
            params.page_size,
            params.sort_key,
            params.sort_dir,
            params.query_text,
            len(rows),
            total,
            (time.perf_counter() - t0) * 1000,
        )
        return PageResult(rows=rows, total=total)

    async def fetch_page(self, params: FetchParams) -> PageResult:
        return self.query(params)

    # -- writes --

    def update(self, row: Mapping[str, Any], key: str, value: Any) -> None:
        """Overwrite one field of the record identified by ``row["id"]``.

        Checks run in order: the row carries an integer id, the field is
        writable, the record exists, the value fits the field.

        Raises:
            ValidationError: Malformed request or out-of-domain value.
            NotFoundError: No record has this id.
        """
        record_id = row.get("id") if isinstance(row, Mapping) else None
        if not isinstance(record_id, int) or isinstance(record_id, bool):
            raise ValidationError("Invalid payload: row id must be an integer")
        if key not in WRITABLE_FIELDS:
            if key in RECORD_SCHEMA:
                raise ValidationError(f"Field {key!r} is read-only")
            raise ValidationError(f"Unknown field: {key!r}")

        frame = self.frame
        if frame.filter(pl.col("id") == record_id).height == 0:
            logger.warning("write rejected: record %d not found", record_id)
            raise NotFoundError(f"Row not found: {record_id}")

        domain = ENUM_DOMAINS.get(key)
        if domain is not None and value not in domain:
            logger.warning("write rejected: %r is not a valid %s", value, key)
            raise ValidationError(f"Invalid {key}: {value!r} (expected one of {', '.join(domain)})")
        if value is not None and not isinstance(value, str):
            raise ValidationError(f"Invalid {key}: expected a string")

        self._frame = frame.with_columns(
            pl.when(pl.col("id") == record_id)
            .then(pl.lit(value, dtype=pl.String))
            .otherwise(pl.col(key))
            .alias(key)
        )
        logger.info("record %d: %s <- %r", record_id, key, value)

    async def write_cell(self, row: Mapping[str, Any], key: str, value: Any) -> None:
        self.update(row, key, value)
