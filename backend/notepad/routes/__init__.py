# Routes package init
"""
Infinite Notepad Backend — API Routes Package
===============================================

Route Inventory:
    - auth.py:      POST /api/auth/signup, POST /api/auth/login,
                    GET  /api/auth/verify, GET  /api/auth/confirm
    - notes.py:     GET/POST /api/notes, PUT/DELETE /api/notes/{id}
    - search.py:    GET  /api/search, GET /api/search/partial
    - media.py:     POST /api/media/upload/{noteId}, GET /api/media/{noteId},
                    GET  /api/media/{mediaId}/url, DELETE /api/media/{mediaId}
    - storage.py:   GET  /api/storage/{key} (signed downloads)
    - payments.py:  POST /api/payments/create, POST /api/payments/webhook
    - health.py:    GET  /health

Routes stay thin: they pull scoped repositories and services from
`notepad.dependencies`, call one service method, and return its schema.
"""
