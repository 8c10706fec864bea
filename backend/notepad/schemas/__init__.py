# Schemas package init
"""
Infinite Notepad Backend — Pydantic Request/Response Schemas
==============================================================

The API contract shared by the gateway (serialization) and the Python client
(parsing responses back into the same models).
"""
