"""
Bookmark Service

Thin wrapper over the session store for bookmark annotations. Bookmarks
live inside their session record; this service owns no state.

A bookmark's `timestamp` is a position within the activity (a video seek
position, a reading offset). It is unrelated to `created_at`.

Usage:
    from continuity.services.learning.bookmarks import BookmarkService

    service = BookmarkService(session_store)
    await service.add_bookmark("session_x", 754.0, "Chain rule example", now=now)
    marks = await service.list_bookmarks("session_x", order=BookmarkOrder.POSITION)
"""

from datetime import datetime
from typing import Optional

from continuity.enums.learning import BookmarkOrder
from continuity.models.learning import Bookmark
from continuity.services.learning.session_store import SessionStore


class BookmarkService:
    """Bookmark add/list operations on learning sessions."""

    def __init__(self, session_store: SessionStore):
        self.session_store = session_store

    async def add_bookmark(
        self,
        session_id: str,
        timestamp: float,
        title: str,
        note: Optional[str] = None,
        *,
        now: datetime,
    ) -> Bookmark:
        """Append a bookmark to a session (see SessionStore.add_bookmark)."""
        return await self.session_store.add_bookmark(
            session_id, timestamp, title, note, now=now
        )

    async def list_bookmarks(
        self, session_id: str, order: BookmarkOrder = BookmarkOrder.CREATED
    ) -> list[Bookmark]:
        """
        List a session's bookmarks.

        Args:
            session_id: Session owning the bookmarks.
            order: CREATED keeps append order; POSITION sorts by position in
                the activity (creation order breaks ties).

        Raises:
            NotFoundError: If the session does not exist.
        """
        session = await self.session_store.get(session_id)
        bookmarks = list(session.bookmarks)
        if order == BookmarkOrder.POSITION:
            bookmarks.sort(key=lambda b: b.timestamp)
        return bookmarks
