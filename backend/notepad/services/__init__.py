# Services package init
"""
Infinite Notepad Backend — Services Layer
===========================================

What:  Business logic between routes (HTTP) and repositories (persistence).
How:   Services receive user-scoped repositories and the long-lived storage
       and payment objects from the dependency layer, apply the business
       rules, and return response schemas.

Service Inventory:
    - AuthService: sign-up, sign-in, token verification, email confirmation
    - NoteService: list / create / replace / delete / search notes
    - MediaService: attachment validation, two-phase upload, signed URLs
    - ObjectStorage: bucket directory plus HMAC-signed download URLs
    - PaymentService: Dodo Payments links and webhooks (retry + circuit breaker)
"""
