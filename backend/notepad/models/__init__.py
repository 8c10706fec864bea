# Models package init
"""
Infinite Notepad Backend — ORM Models
=======================================

Importing this package registers every table with `Base.metadata`
(Alembic autogenerate and `create_tables()` rely on it).
"""

from notepad.models.user import User
from notepad.models.note import Note
from notepad.models.media import MediaAttachment
from notepad.models.payment import Payment

__all__ = ["User", "Note", "MediaAttachment", "Payment"]
