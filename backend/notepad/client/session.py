"""
Auth Session Holder.

Holds the bearer token and user for one client, persists them to a local
JSON file, and tells listeners whenever the session changes.

States:
    ANONYMOUS ──sign_in/sign_up──▶ AUTHENTICATING ──ok──▶ AUTHENTICATED
        ▲                                │ fail                  │
        └────────────────────────────────┘                       │
        └──────────── sign_out / handle_unauthorized ────────────┘
"""

import inspect
import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import aiofiles
import httpx

from notepad.client.exceptions import ClientError, NetworkError, UnauthorizedError, error_from_response
from notepad.schemas.auth import AuthResponse, SignupResponse, UserResponse, VerifyResponse

logger = logging.getLogger(__name__)

Listener = Callable[["AuthSession"], Any]


class SessionState(str, Enum):
    ANONYMOUS = "anonymous"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


class AuthSession:
    """
    Args:
        http: Client whose base_url points at the API
        token_path: Where the session is persisted; None keeps it in memory
    """

    def __init__(self, http: httpx.AsyncClient, token_path: Optional[Path] = None):
        self.http = http
        self.token_path = token_path
        self.state = SessionState.ANONYMOUS
        self.token: Optional[str] = None
        self.user: Optional[UserResponse] = None
        self._listeners: List[Listener] = []

    @property
    def is_authenticated(self) -> bool:
        return self.state == SessionState.AUTHENTICATED

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        self._listeners.remove(listener)

    def auth_headers(self) -> Dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    # ── Transitions ───────────────────────────────────────────────────────

    async def restore(self) -> bool:
        """
        Re-establish a persisted session.

        The stored token is checked against /api/auth/verify; a rejected
        token is cleared. A network failure keeps the file so the next
        start can try again.
        """
        stored = await self._read_persisted()
        if not stored or not stored.get("token"):
            return False

        self.state = SessionState.AUTHENTICATING
        self.token = stored["token"]
        try:
            response = await self._post_or_get("GET", "/api/auth/verify")
        except UnauthorizedError:
            logger.info("Stored session rejected; signing out")
            await self.sign_out()
            return False
        except ClientError:
            self.token = None
            self.state = SessionState.ANONYMOUS
            raise

        verified = VerifyResponse.model_validate(response.json())
        await self._establish(stored["token"], verified.user)
        return True

    async def sign_in(self, email: str, password: str) -> UserResponse:
        self.state = SessionState.AUTHENTICATING
        try:
            response = await self._post_or_get(
                "POST", "/api/auth/login", json={"email": email, "password": password}
            )
        except ClientError:
            self.state = SessionState.ANONYMOUS
            raise
        result = AuthResponse.model_validate(response.json())
        await self._establish(result.token, result.user)
        return result.user

    async def sign_up(self, email: str, password: str) -> SignupResponse:
        """
        Create an account.

        When the server requires email confirmation the session stays
        anonymous and the returned message tells the user to check their mail.
        """
        self.state = SessionState.AUTHENTICATING
        try:
            response = await self._post_or_get(
                "POST", "/api/auth/signup", json={"email": email, "password": password}
            )
        except ClientError:
            self.state = SessionState.ANONYMOUS
            raise
        result = SignupResponse.model_validate(response.json())
        if result.requires_confirmation or not result.token:
            self.state = SessionState.ANONYMOUS
            return result
        await self._establish(result.token, result.user)
        return result

    async def sign_out(self) -> None:
        self.token = None
        self.user = None
        self.state = SessionState.ANONYMOUS
        await self._clear_persisted()
        await self._notify()

    async def handle_unauthorized(self) -> None:
        """Any 401 from the API ends the session."""
        if self.token is not None or self.state != SessionState.ANONYMOUS:
            logger.info("Request rejected with 401; clearing session")
        await self.sign_out()

    # ── Internals ─────────────────────────────────────────────────────────

    async def _establish(self, token: str, user: UserResponse) -> None:
        self.token = token
        self.user = user
        self.state = SessionState.AUTHENTICATED
        await self._persist()
        await self._notify()

    async def _post_or_get(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self.http.request(method, url, headers=self.auth_headers(), **kwargs)
        except httpx.TransportError as e:
            raise NetworkError(f"Could not reach the server: {e}") from e
        if response.status_code >= 400:
            raise error_from_response(response)
        return response

    async def _notify(self) -> None:
        for listener in list(self._listeners):
            result = listener(self)
            if inspect.isawaitable(result):
                await result

    async def _persist(self) -> None:
        if self.token_path is None:
            return
        payload = {"token": self.token, "user": self.user.model_dump(mode="json") if self.user else None}
        self.token_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(self.token_path, "w") as f:
            await f.write(json.dumps(payload))

    async def _read_persisted(self) -> Optional[Dict[str, Any]]:
        if self.token_path is None or not self.token_path.exists():
            return None
        async with aiofiles.open(self.token_path, "r") as f:
            raw = await f.read()
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring unreadable session file %s", self.token_path)
            return None
        return data if isinstance(data, dict) else None

    async def _clear_persisted(self) -> None:
        if self.token_path is None:
            return
        self.token_path.unlink(missing_ok=True)
