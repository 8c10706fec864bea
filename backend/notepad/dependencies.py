"""
Infinite Notepad Backend — Request Dependencies
=================================================

What:  The FastAPI dependency graph shared by every protected route.
How:   One authentication dependency (`get_current_user`) turns the bearer
       token into a User; the repository dependencies build handles scoped
       to that user on the request's session. Long-lived services (storage
       bucket, payment client) are created by `create_app` and held on
       `app.state`, so tests swap them by passing overrides to the factory.

    Authorization: Bearer <jwt>
        └─▶ get_current_user ─▶ NoteRepository(session, user.id)
                              └▶ MediaRepository(session, user.id)

FastAPI caches dependencies per request, so the user lookup and both
repositories share one session and one transaction.
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from notepad.database import get_db_session
from notepad.exceptions import AuthenticationError
from notepad.models.user import User
from notepad.repositories.media import MediaRepository
from notepad.repositories.note import NoteRepository
from notepad.services.auth_service import auth_service
from notepad.services.payment_service import PaymentService
from notepad.services.storage_service import ObjectStorage

# auto_error=False: a missing header must produce our 401 body, not FastAPI's 403
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    """
    Resolve the caller.

    Raises:
        AuthenticationError: header missing, not a bearer token, or the token
            is malformed, expired or names an unknown user (→ 401)
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Missing bearer token")
    return await auth_service.authenticate(db, credentials.credentials)


async def get_note_repository(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> NoteRepository:
    return NoteRepository(db, user.id)


async def get_media_repository(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MediaRepository:
    return MediaRepository(db, user.id)


def get_storage(request: Request) -> ObjectStorage:
    return request.app.state.storage


def get_payment_service(request: Request) -> PaymentService:
    return request.app.state.payments
