"""
User-scoped base repository.

Subclasses set `model` (which must have `id` and `user_id` columns) and
`resource` (used in 404 messages):

    class NoteRepository(ScopedRepository[Note]):
        model = Note
        resource = "note"
"""

import uuid
from typing import Generic, List, Optional, TypeVar

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from notepad.database import Base
from notepad.exceptions import NotFoundError

ModelType = TypeVar("ModelType", bound=Base)


def parse_uuid(value) -> Optional[uuid.UUID]:
    """Parse a path parameter into a UUID; None when it is not one."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


class ScopedRepository(Generic[ModelType]):
    """
    Base repository whose every query is restricted to one owner.

    A row owned by another user behaves exactly like a missing row:
    `get()` raises NotFoundError for both.
    """

    model: type[ModelType]
    resource: str = "resource"

    def __init__(self, session: AsyncSession, user_id: uuid.UUID) -> None:
        self.session = session
        self.user_id = user_id

    def scoped(self) -> Select:
        """SELECT over this user's rows only."""
        return select(self.model).where(self.model.user_id == self.user_id)

    async def get_or_none(self, id) -> Optional[ModelType]:
        row_id = parse_uuid(id)
        if row_id is None:
            return None
        result = await self.session.execute(self.scoped().where(self.model.id == row_id))
        return result.scalar_one_or_none()

    async def get(self, id) -> ModelType:
        """
        Get one of this user's rows by ID.

        Raises:
            NotFoundError: missing, malformed ID, or owned by another user
        """
        instance = await self.get_or_none(id)
        if instance is None:
            raise NotFoundError(resource=self.resource, resource_id=str(id))
        return instance

    async def add(self, instance: ModelType) -> ModelType:
        self.session.add(instance)
        await self.session.flush()
        return instance

    async def remove(self, instance: ModelType) -> None:
        await self.session.delete(instance)
        await self.session.flush()

    async def all(self) -> List[ModelType]:
        result = await self.session.execute(self.scoped())
        return list(result.scalars().all())
