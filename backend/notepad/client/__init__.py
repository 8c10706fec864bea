# Client package init
"""
Infinite Notepad — Python Client
==================================

An async client for the notes API with the behaviour of the web editor:

    AuthSession   bearer token + user, persisted to a JSON file
    NotesApi      typed calls over httpx; any 401 tears the session down
    NoteStore     local note collection with debounced autosave and
                  per-note revisions (stale responses are dropped)
    SearchAdapter server full-text/prefix search, or a local filter

    async with httpx.AsyncClient(base_url="http://localhost:3000") as http:
        session = AuthSession(http, token_path=Path("~/.notepad.json").expanduser())
        await session.restore() or await session.sign_in(email, password)
        store = NoteStore(NotesApi(http, session), session=session)
        await store.load()
"""

from notepad.client.api import NotesApi
from notepad.client.debounce import Debouncer
from notepad.client.exceptions import ApiError, ClientError, NetworkError, UnauthorizedError
from notepad.client.search import SearchAdapter
from notepad.client.session import AuthSession, SessionState
from notepad.client.store import NoteStore

__all__ = [
    "ApiError",
    "AuthSession",
    "ClientError",
    "Debouncer",
    "NetworkError",
    "NoteStore",
    "NotesApi",
    "SearchAdapter",
    "SessionState",
    "UnauthorizedError",
]
