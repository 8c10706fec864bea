"""
Infinite Notepad — Client Session and Search Tests
====================================================

Runs the client against the real application over ASGITransport (the
`client` fixture), so tokens, 401s and search results are the server's own.
"""

import json

import pytest

from notepad.client.api import NotesApi
from notepad.client.exceptions import ApiError, UnauthorizedError
from notepad.client.search import SearchAdapter
from notepad.client.session import AuthSession, SessionState
from notepad.client.store import NoteStore
from notepad.config import settings

from conftest import TEST_PASSWORD


@pytest.fixture
def token_path(tmp_path):
    return tmp_path / "client" / "session.json"


@pytest.fixture
def session(client, token_path):
    return AuthSession(client, token_path=token_path)


class TestAuthSession:
    @pytest.mark.asyncio
    async def test_sign_up_persists_session(self, session, token_path):
        changes = []
        session.add_listener(lambda s: changes.append(s.state))

        result = await session.sign_up("alice@example.com", TEST_PASSWORD)

        assert result.token
        assert session.state == SessionState.AUTHENTICATED
        assert session.user.email == "alice@example.com"
        assert changes == [SessionState.AUTHENTICATED]
        stored = json.loads(token_path.read_text())
        assert stored["token"] == session.token

    @pytest.mark.asyncio
    async def test_sign_up_requiring_confirmation_stays_anonymous(self, session, token_path, monkeypatch):
        monkeypatch.setattr(settings, "require_email_confirmation", True)

        result = await session.sign_up("carol@example.com", TEST_PASSWORD)

        assert result.requires_confirmation is True
        assert session.state == SessionState.ANONYMOUS
        assert session.token is None
        assert not token_path.exists()

    @pytest.mark.asyncio
    async def test_failed_sign_in(self, session, make_user):
        await make_user("alice@example.com")

        with pytest.raises(UnauthorizedError):
            await session.sign_in("alice@example.com", "wrong-password")
        assert session.state == SessionState.ANONYMOUS

    @pytest.mark.asyncio
    async def test_duplicate_sign_up_surfaces_server_message(self, session, make_user):
        await make_user("alice@example.com")

        with pytest.raises(ApiError) as exc_info:
            await session.sign_up("alice@example.com", TEST_PASSWORD)
        assert exc_info.value.status == 400
        assert "already exists" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_sign_out_clears_file_then_requests_are_rejected(self, client, session, token_path):
        await session.sign_up("alice@example.com", TEST_PASSWORD)
        api = NotesApi(client, session)
        await api.create_note("before sign out")

        await session.sign_out()

        assert not token_path.exists()
        assert session.state == SessionState.ANONYMOUS
        with pytest.raises(UnauthorizedError):
            await api.list_notes()
        assert (await client.get("/api/notes")).status_code == 401

    @pytest.mark.asyncio
    async def test_restore(self, client, session, token_path):
        await session.sign_up("alice@example.com", TEST_PASSWORD)

        restored = AuthSession(client, token_path=token_path)
        assert await restored.restore() is True
        assert restored.state == SessionState.AUTHENTICATED
        assert restored.user.email == "alice@example.com"

    @pytest.mark.asyncio
    async def test_restore_with_rejected_token(self, client, token_path):
        token_path.parent.mkdir(parents=True)
        token_path.write_text(json.dumps({"token": "expired-or-forged", "user": None}))

        session = AuthSession(client, token_path=token_path)
        assert await session.restore() is False
        assert session.state == SessionState.ANONYMOUS
        assert not token_path.exists()

    @pytest.mark.asyncio
    async def test_restore_without_file(self, session):
        assert await session.restore() is False

    @pytest.mark.asyncio
    async def test_unauthorized_response_signs_out(self, client, session, token_path):
        await session.sign_up("alice@example.com", TEST_PASSWORD)
        store = NoteStore(NotesApi(client, session), session=session)
        await store.create()
        session.token = "tampered"

        assert await store.load() is False

        assert session.state == SessionState.ANONYMOUS
        assert store.view() == []
        assert not token_path.exists()


class TestStoreAgainstServer:
    @pytest.mark.asyncio
    async def test_edit_save_and_reload(self, client, session):
        await session.sign_up("alice@example.com", TEST_PASSWORD)
        store = NoteStore(NotesApi(client, session), session=session, debounce_delay=10)
        note = await store.create()
        store.edit(note.id, "typed text")

        assert await store.save_all() is True

        fresh = NoteStore(NotesApi(client, session))
        await fresh.load()
        assert fresh.get(note.id).content == "typed text"
        assert fresh.get(note.id).updated_at >= note.updated_at

    @pytest.mark.asyncio
    async def test_media_round_trip(self, client, session, sample_png_bytes):
        await session.sign_up("alice@example.com", TEST_PASSWORD)
        api = NotesApi(client, session)
        note = await api.create_note()

        media = await api.upload_media(note.id, "pic.png", sample_png_bytes, "image/png")
        assert [m.id for m in await api.list_media(note.id)] == [media.id]

        signed = await api.media_url(media.id)
        assert (await client.get(signed.url)).content == sample_png_bytes

        await api.delete_media(media.id)
        assert await api.list_media(note.id) == []

    @pytest.mark.asyncio
    async def test_rejected_upload(self, client, session):
        await session.sign_up("alice@example.com", TEST_PASSWORD)
        api = NotesApi(client, session)
        note = await api.create_note()

        with pytest.raises(ApiError) as exc_info:
            await api.upload_media(note.id, "a.zip", b"PK", "application/zip")
        assert exc_info.value.status == 400
        assert exc_info.value.error == "validation_error"


class TestSearchAdapter:
    async def _store_with_notes(self, client, session):
        await session.sign_up("alice@example.com", TEST_PASSWORD)
        api = NotesApi(client, session)
        await api.create_note("alpha beta")
        await api.create_note("gamma")
        store = NoteStore(api, session=session)
        await store.load()
        return store

    @pytest.mark.asyncio
    async def test_server_search(self, client, session):
        store = await self._store_with_notes(client, session)
        adapter = SearchAdapter(store, mode="server")

        results = await adapter.search("alpha")

        assert [n.content for n in results] == ["alpha beta"]

    @pytest.mark.asyncio
    async def test_server_partial_search(self, client, session):
        store = await self._store_with_notes(client, session)
        results = await SearchAdapter(store).search("gam", partial=True)
        assert [n.content for n in results] == ["gamma"]

    @pytest.mark.asyncio
    async def test_local_filter(self, client, session):
        store = await self._store_with_notes(client, session)
        results = await SearchAdapter(store, mode="local").search("ETA")
        assert [n.content for n in results] == ["alpha beta"]

    @pytest.mark.asyncio
    async def test_blank_query_shows_everything(self, client, session):
        store = await self._store_with_notes(client, session)
        results = await SearchAdapter(store).search("   ")
        assert [n.content for n in results] == ["gamma", "alpha beta"]

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_results(self, client, session, monkeypatch):
        store = await self._store_with_notes(client, session)
        adapter = SearchAdapter(store)
        await adapter.search("alpha")

        async def broken(query, partial=False):
            raise ApiError(500, "An internal error occurred.")

        monkeypatch.setattr(store.api, "search", broken)
        results = await adapter.search("gamma")

        assert [n.content for n in results] == ["alpha beta"]
        assert adapter.error_message.startswith("Search failed")

    def test_invalid_mode(self):
        with pytest.raises(ValueError):
            SearchAdapter(store=None, mode="fuzzy")
