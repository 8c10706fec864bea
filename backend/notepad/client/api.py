"""
Typed calls to the notes API.

Every call sends the session's bearer token. A 401 clears the session
before UnauthorizedError is raised, so callers only need to stop what they
were doing.
"""

import logging
from typing import List, Optional

import httpx

from notepad.client.exceptions import NetworkError, error_from_response
from notepad.client.session import AuthSession
from notepad.schemas.media import MediaResponse, MediaUrlResponse
from notepad.schemas.note import NoteResponse
from notepad.schemas.payment import CreatePaymentResponse

logger = logging.getLogger(__name__)


class NotesApi:
    def __init__(self, http: httpx.AsyncClient, session: AuthSession):
        self.http = http
        self.session = session

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self.http.request(
                method, url, headers=self.session.auth_headers(), **kwargs
            )
        except httpx.TransportError as e:
            raise NetworkError(f"Could not reach the server: {e}") from e

        if response.status_code == 401:
            await self.session.handle_unauthorized()
            raise error_from_response(response)
        if response.status_code >= 400:
            error = error_from_response(response)
            logger.warning("%s %s failed: %s", method, url, error)
            raise error
        return response

    # ── Notes ─────────────────────────────────────────────────────────────

    async def list_notes(self) -> List[NoteResponse]:
        """The server returns an object keyed by id; values come back in server order."""
        data = (await self._request("GET", "/api/notes")).json()
        return [NoteResponse.model_validate(item) for item in data.values()]

    async def create_note(self, content: str = "") -> NoteResponse:
        response = await self._request("POST", "/api/notes", json={"content": content})
        return NoteResponse.model_validate(response.json())

    async def update_note(self, note_id: str, content: str) -> NoteResponse:
        response = await self._request("PUT", f"/api/notes/{note_id}", json={"content": content})
        return NoteResponse.model_validate(response.json())

    async def delete_note(self, note_id: str) -> None:
        await self._request("DELETE", f"/api/notes/{note_id}")

    async def search(self, query: str, partial: bool = False) -> List[NoteResponse]:
        url = "/api/search/partial" if partial else "/api/search"
        response = await self._request("GET", url, params={"q": query})
        return [NoteResponse.model_validate(item) for item in response.json()]

    # ── Media ─────────────────────────────────────────────────────────────

    async def upload_media(self, note_id: str, file_name: str, content: bytes, mime_type: str) -> MediaResponse:
        response = await self._request(
            "POST",
            f"/api/media/upload/{note_id}",
            files={"file": (file_name, content, mime_type)},
        )
        return MediaResponse.model_validate(response.json())

    async def list_media(self, note_id: str) -> List[MediaResponse]:
        response = await self._request("GET", f"/api/media/{note_id}")
        return [MediaResponse.model_validate(item) for item in response.json()]

    async def media_url(self, media_id: str) -> MediaUrlResponse:
        response = await self._request("GET", f"/api/media/{media_id}/url")
        return MediaUrlResponse.model_validate(response.json())

    async def delete_media(self, media_id: str) -> None:
        await self._request("DELETE", f"/api/media/{media_id}")

    # ── Payments ──────────────────────────────────────────────────────────

    async def create_payment(self, product_id: Optional[str] = None, quantity: int = 1) -> CreatePaymentResponse:
        body = {"quantity": quantity}
        if product_id:
            body["productId"] = product_id
        response = await self._request("POST", "/api/payments/create", json=body)
        return CreatePaymentResponse.model_validate(response.json())
