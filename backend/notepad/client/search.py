"""
Search/Filter Adapter.

    mode="server": /api/search (or /api/search/partial) over every note
    mode="local":  case-insensitive substring filter over the store's view

A blank query shows the whole store view without a request. A failed
search keeps the previous results and sets `error_message`.
"""

import logging
from typing import List, Optional

from notepad.client.exceptions import ClientError, UnauthorizedError
from notepad.client.store import NoteStore
from notepad.schemas.note import NoteResponse

logger = logging.getLogger(__name__)

SEARCH_MODES = ("server", "local")


class SearchAdapter:
    def __init__(self, store: NoteStore, mode: str = "server"):
        if mode not in SEARCH_MODES:
            raise ValueError(f"Invalid search mode '{mode}'. Must be one of: {SEARCH_MODES}")
        self.store = store
        self.mode = mode
        self.results: List[NoteResponse] = []
        self.error_message: Optional[str] = None

    def dismiss_error(self) -> None:
        self.error_message = None

    async def search(self, query: str, partial: bool = False) -> List[NoteResponse]:
        if not query or not query.strip():
            self.results = self.store.view()
            return self.results

        if self.mode == "local":
            needle = query.strip().lower()
            self.results = [note for note in self.store.view() if needle in note.content.lower()]
            return self.results

        try:
            self.results = await self.store.api.search(query.strip(), partial=partial)
        except UnauthorizedError:
            self.results = []
        except ClientError as e:
            logger.warning("Search for %r failed: %s", query, e)
            self.error_message = f"Search failed: {e.message}"
        return self.results
