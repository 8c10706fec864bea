"""
Infinite Notepad — Package Initializer
========================================

Server and client for an autosaving, searchable notepad.

    ┌─────────────────────────────────────┐
    │  client/   Python client: session,  │  ← debounced autosave, revisions
    │            note store, search       │
    ├─────────────────────────────────────┤
    │  routes/   HTTP API                 │  ← thin handlers
    ├─────────────────────────────────────┤
    │  services/ business rules           │  ← notes, media, auth, payments
    ├─────────────────────────────────────┤
    │  repositories/ user-scoped queries  │  ← every query filtered by owner
    ├─────────────────────────────────────┤
    │  models/ + schemas/                 │  ← SQLAlchemy ORM + Pydantic
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
