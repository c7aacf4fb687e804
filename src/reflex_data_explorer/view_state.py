"""Pure transitions of the grid's :class:`ViewState`.

Every function returns a new ``ViewState``; callers compare it with the old
one to decide whether a fetch is needed.
"""

import math
from dataclasses import replace
from typing import Literal

from reflex_data_explorer.models import PAGE_SIZE_OPTIONS, ViewState


def total_pages(total: int, page_size: int) -> int:
    """Number of pages needed for *total* rows; never less than one."""
    return max(1, math.ceil(total / page_size))


def toggle_sort(view: ViewState, key: str) -> ViewState:
    """Advance the sort of column *key*.

    A column that is not the current sort key becomes the key, ascending.
    The current key cycles ``asc -> desc -> none``; reaching ``none``
    clears the key.  The page always resets to 1.
    """
    if view.sort_key != key:
        return replace(view, sort_key=key, sort_dir="asc", page=1)
    if view.sort_dir == "asc":
        return replace(view, sort_dir="desc", page=1)
    return replace(view, sort_key=None, sort_dir=None, page=1)


def set_filter_text(view: ViewState, text: str) -> ViewState:
    """Replace the free-text filter and go back to page 1."""
    return replace(view, filter_text=text, page=1)


def set_page_size(view: ViewState, page_size: int) -> ViewState:
    """Change the page size and go back to page 1.

    Raises:
        ValueError: *page_size* is not one of ``PAGE_SIZE_OPTIONS``.
    """
    if page_size not in PAGE_SIZE_OPTIONS:
        raise ValueError(f"page_size must be one of {PAGE_SIZE_OPTIONS}, got {page_size}")
    return replace(view, page_size=page_size, page=1)


def go_to_page(view: ViewState, page: int, total: int) -> ViewState:
    """Move to *page*, clamped to ``[1, total_pages(total, page_size)]``."""
    last = total_pages(total, view.page_size)
    return replace(view, page=min(max(1, page), last))


def sort_indicator(view: ViewState, key: str) -> Literal["ascending", "descending", "none"]:
    """``aria-sort`` value for the header of column *key*."""
    if view.sort_key != key or view.sort_dir is None:
        return "none"
    return "ascending" if view.sort_dir == "asc" else "descending"
