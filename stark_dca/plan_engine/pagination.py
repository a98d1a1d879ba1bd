"""
Cursor-based pagination over plans and execution logs.

A cursor is the URL-safe base64 form of the id of the last item on the
previous page. Pages keep the order of the underlying list.
"""

import base64
import binascii
from typing import Generic, List, Optional, Sequence, TypeVar

from pydantic import BaseModel

from ..exceptions import InvalidPlanParameters


DEFAULT_PAGE_LIMIT = 20
MAX_PAGE_LIMIT = 100

ItemT = TypeVar("ItemT")


class Page(BaseModel, Generic[ItemT]):
    """One page of results plus the cursor for the next one."""

    items: List[ItemT]
    next_cursor: Optional[str] = None
    has_more: bool = False

    @property
    def count(self) -> int:
        return len(self.items)


def encode_cursor(item_id: str) -> str:
    return base64.urlsafe_b64encode(item_id.encode("utf-8")).decode("ascii").rstrip("=")


def decode_cursor(cursor: str) -> str:
    padded = cursor + "=" * (-len(cursor) % 4)
    try:
        return base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
    except (binascii.Error, UnicodeError, ValueError) as e:
        raise InvalidPlanParameters(f"Malformed cursor: {cursor!r}") from e


def paginate(items: Sequence, cursor: Optional[str] = None, limit: int = DEFAULT_PAGE_LIMIT) -> Page:
    """
    Slice ``items`` into the page following ``cursor``.

    Args:
        items: Records with an ``id`` attribute, in display order
        cursor: Cursor from a previous page, or None for the first page
        limit: Page size, 1..MAX_PAGE_LIMIT

    Raises:
        InvalidPlanParameters: If the limit is out of range or the cursor
            does not name an item in ``items``
    """
    if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= MAX_PAGE_LIMIT:
        raise InvalidPlanParameters(f"limit must be an integer between 1 and {MAX_PAGE_LIMIT}, got {limit!r}")

    start = 0
    if cursor:
        after_id = decode_cursor(cursor)
        ids = [item.id for item in items]
        if after_id not in ids:
            raise InvalidPlanParameters(f"Unknown cursor: {cursor!r}")
        start = ids.index(after_id) + 1

    window = list(items[start:start + limit + 1])
    has_more = len(window) > limit
    page_items = window[:limit]

    return Page(
        items=page_items,
        next_cursor=encode_cursor(page_items[-1].id) if has_more else None,
        has_more=has_more,
    )
