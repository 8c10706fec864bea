"""
Media Repository.

User-scoped data access for note attachments.
"""

from typing import List

from notepad.models.media import MediaAttachment
from notepad.repositories.base import ScopedRepository


class MediaRepository(ScopedRepository[MediaAttachment]):
    """Attachment rows belonging to one user."""

    model = MediaAttachment
    resource = "media"

    async def list_for_note(self, note_id) -> List[MediaAttachment]:
        result = await self.session.execute(
            self.scoped()
            .where(MediaAttachment.note_id == note_id)
            .order_by(MediaAttachment.created_at.desc())
        )
        return list(result.scalars().all())

    async def create(self, **fields) -> MediaAttachment:
        return await self.add(MediaAttachment(user_id=self.user_id, **fields))
