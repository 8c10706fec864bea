# Middleware package init
"""
Infinite Notepad Backend — Middleware Package
===============================================

Cross-cutting concerns applied to every request.

Middleware Chain (order matters!):
    Request → [Rate Limit] → [Request ID] → [Access Log] → [GZip] → [CORS] → Route

    1. Rate limit first: abusive clients are rejected before any other work
    2. Request ID: correlation id for every log line and error body
    3. Access log: method, path, status and duration, tagged with the id

Responses unwind in reverse, so the X-Request-ID header is present on every
response, including 429s from the limiter.
"""
