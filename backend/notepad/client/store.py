"""
Client Note Store.

The local copy of the user's notes plus the autosave machinery.

    edit() ──debounce──▶ update(rev=n) ──▶ PUT /api/notes/{id}
                                              │
              response for rev < applied ◀────┤ dropped
              response for rev > applied ◀────┘ replaces the note, re-sorts

Every update gets the next revision for its note. Two updates for the same
note can be in flight at once (overlapping debounce windows, save_all); the
newer revision decides the final local state whichever response lands last.

Failures never roll local state back or forward: the note stays as it was
and `error_message` is set until `dismiss_error()`.
"""

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Union

from notepad.client.api import NotesApi
from notepad.client.debounce import Debouncer
from notepad.client.exceptions import ClientError, UnauthorizedError
from notepad.client.session import AuthSession, SessionState
from notepad.schemas.note import NoteResponse

logger = logging.getLogger(__name__)

Confirm = Callable[[], Union[bool, Awaitable[bool]]]

DEFAULT_DEBOUNCE_SECONDS = 1.0


class NoteStore:
    """
    Args:
        api: Notes API client
        session: When given, the store clears itself on sign-out or any 401
        debounce_delay: Quiet period before an edit is sent
    """

    def __init__(
        self,
        api: NotesApi,
        session: Optional[AuthSession] = None,
        debounce_delay: float = DEFAULT_DEBOUNCE_SECONDS,
    ):
        self.api = api
        self.notes: Dict[str, NoteResponse] = {}
        self.is_loading = False
        self.error_message: Optional[str] = None
        self._order: List[str] = []
        self._pending: Dict[str, str] = {}
        self._last_revision: Dict[str, int] = {}
        self._applied_revision: Dict[str, int] = {}
        self._debouncer = Debouncer(debounce_delay)
        if session is not None:
            session.add_listener(self._on_session_change)

    # ── Accessors ─────────────────────────────────────────────────────────

    def view(self) -> List[NoteResponse]:
        """Notes in display order."""
        return [self.notes[note_id] for note_id in self._order]

    def get(self, note_id: str) -> Optional[NoteResponse]:
        return self.notes.get(note_id)

    def content_for(self, note_id: str) -> str:
        """What the editor should show: the unsent edit if there is one."""
        if note_id in self._pending:
            return self._pending[note_id]
        note = self.notes.get(note_id)
        return note.content if note else ""

    def has_pending_edits(self) -> bool:
        return bool(self._pending)

    def dismiss_error(self) -> None:
        self.error_message = None

    def clear(self) -> None:
        self._debouncer.cancel_all()
        self.notes = {}
        self._order = []
        self._pending = {}
        self._last_revision = {}
        self._applied_revision = {}
        self.error_message = None

    def _on_session_change(self, session: AuthSession) -> None:
        if session.state == SessionState.ANONYMOUS:
            self.clear()

    def _resort(self) -> None:
        self._order = sorted(self.notes, key=lambda note_id: self.notes[note_id].updated_at, reverse=True)

    # ── Operations ────────────────────────────────────────────────────────

    async def load(self) -> bool:
        """Replace the local collection with the server's."""
        self.is_loading = True
        try:
            notes = await self.api.list_notes()
        except UnauthorizedError:
            return False
        except ClientError as e:
            self.error_message = f"Failed to load notes: {e.message}"
            return False
        finally:
            self.is_loading = False

        self.notes = {note.id: note for note in notes}
        self._resort()
        return True

    async def create(self) -> Optional[NoteResponse]:
        """Create an empty note and put it first in the view."""
        try:
            note = await self.api.create_note("")
        except UnauthorizedError:
            return None
        except ClientError as e:
            self.error_message = f"Failed to create note: {e.message}"
            return None

        self.notes[note.id] = note
        self._order.insert(0, note.id)
        return note

    def edit(self, note_id: str, content: str) -> None:
        """Record an edit and (re)start the note's debounce timer."""
        self._pending[note_id] = content
        self._debouncer.schedule(note_id, lambda: self._send_pending(note_id))

    async def _send_pending(self, note_id: str) -> bool:
        content = self._pending.pop(note_id, None)
        if content is None:
            return True
        return await self.update(note_id, content, keep_unsent=True)

    async def update(self, note_id: str, content: str, keep_unsent: bool = False) -> bool:
        """
        Send the full content now.

        Args:
            keep_unsent: On failure, put the content back as the note's
                pending edit (unless a newer edit arrived meanwhile), so the
                editor keeps it and save_all / flush_on_exit resend it.

        Returns:
            True when the response was applied locally.
        """
        revision = self._last_revision.get(note_id, 0) + 1
        self._last_revision[note_id] = revision

        try:
            note = await self.api.update_note(note_id, content)
        except UnauthorizedError:
            return False
        except ClientError as e:
            self.error_message = f"Failed to save note: {e.message}"
            if keep_unsent and note_id in self.notes:
                self._pending.setdefault(note_id, content)
            return False

        if revision <= self._applied_revision.get(note_id, 0):
            logger.debug("Dropping stale response for note %s (revision %d)", note_id, revision)
            return False
        if note_id not in self.notes:
            # Deleted (or signed out) while the request was in flight
            return False

        self._applied_revision[note_id] = revision
        self.notes[note_id] = note
        self._resort()
        return True

    async def delete(self, note_id: str, confirm: Confirm) -> bool:
        """
        Delete after the user confirms.

        Pessimistic: the note leaves the local collection only once the
        server has deleted it.
        """
        answer = confirm()
        if inspect.isawaitable(answer):
            answer = await answer
        if not answer:
            return False

        try:
            await self.api.delete_note(note_id)
        except UnauthorizedError:
            return False
        except ClientError as e:
            self.error_message = f"Failed to delete note: {e.message}"
            return False

        self._debouncer.cancel(note_id)
        self._pending.pop(note_id, None)
        self.notes.pop(note_id, None)
        if note_id in self._order:
            self._order.remove(note_id)
        return True

    async def save_all(self) -> bool:
        """Send every pending edit now instead of waiting for its timer."""
        note_ids = list(self._pending)
        for note_id in note_ids:
            self._debouncer.cancel(note_id)
        results = await asyncio.gather(*(self._send_pending(note_id) for note_id in note_ids))
        return all(results)

    async def flush_on_exit(self, timeout: float = 2.0) -> int:
        """
        Last-chance save before the process exits.

        Fires every pending edit, waits at most `timeout` seconds, and only
        logs failures. Responses are not merged into the store.

        Returns:
            Number of edits confirmed saved within the timeout.
        """
        self._debouncer.cancel_all()
        edits, self._pending = self._pending, {}
        if not edits:
            return 0

        tasks = {
            asyncio.create_task(self.api.update_note(note_id, content)): note_id
            for note_id, content in edits.items()
        }
        done, still_running = await asyncio.wait(tasks, timeout=timeout)

        saved = 0
        for task in done:
            error = task.exception()
            if error is None:
                saved += 1
            else:
                logger.warning("Exit save failed for note %s: %s", tasks[task], error)
        for task in still_running:
            logger.warning("Exit save for note %s still in flight after %.1fs", tasks[task], timeout)
        return saved
