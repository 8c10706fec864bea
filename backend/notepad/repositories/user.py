"""
User Repository.

Not scoped: this is the lookup the auth layer uses to turn credentials or a
token subject into a user.
"""

import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from notepad.models.user import User
from notepad.repositories.base import parse_uuid


class UserRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, user_id) -> Optional[User]:
        uid = parse_uuid(user_id)
        if uid is None:
            return None
        result = await self.session.execute(select(User).where(User.id == uid))
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    async def create(self, email: str, password_hash: str, **fields) -> User:
        user = User(id=uuid.uuid4(), email=email.lower(), password_hash=password_hash, **fields)
        self.session.add(user)
        await self.session.flush()
        return user
