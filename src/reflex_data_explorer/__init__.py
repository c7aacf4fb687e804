"""reflex-data-explorer – server-paged record grid for Reflex admin consoles.

The grid pages, sorts, filters and edits a record set that lives behind a
:class:`RemoteDataSource`.  An in-memory :class:`RecordStore` and an HTTP
binding (:func:`create_api` / :class:`HttpDataSource`) are included::

    pip install reflex-data-explorer
"""

from reflex_data_explorer.api import HttpDataSource, create_api
from reflex_data_explorer.components import (
    ColumnResizeHandle,
    column_resize_handle,
    record_grid,
    record_grid_stats_bar,
)
from reflex_data_explorer.config import DataExplorerSettings, get_settings
from reflex_data_explorer.controller import DataGridController, FetchTicket, LoadState
from reflex_data_explorer.errors import (
    DataSourceError,
    NotFoundError,
    RemoteError,
    ValidationError,
)
from reflex_data_explorer.grid_state import RecordGridMixin, register_data_source
from reflex_data_explorer.logging_config import setup_logging
from reflex_data_explorer.models import (
    PAGE_SIZE_OPTIONS,
    ROLES,
    STATUSES,
    CellWrite,
    Column,
    EditSession,
    FetchParams,
    PageResult,
    ViewState,
    timestamp_display,
    user_columns,
)
from reflex_data_explorer.record_store import RecordStore, generate_seed
from reflex_data_explorer.resizer import ColumnResizer, PointerSurface
from reflex_data_explorer.source import RemoteDataSource
