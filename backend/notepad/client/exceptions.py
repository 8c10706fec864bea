"""
Client-side error types.

    ClientError
    ├── UnauthorizedError   any 401; the session has already been cleared
    ├── ApiError            any other non-2xx (status + server message)
    └── NetworkError        the request never got a response
"""

from typing import Optional

import httpx


class ClientError(Exception):
    def __init__(self, message: str = "Request failed"):
        self.message = message
        super().__init__(message)


class UnauthorizedError(ClientError):
    def __init__(self, message: str = "Not signed in"):
        super().__init__(message)


class ApiError(ClientError):
    def __init__(self, status: int, message: str, error: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.error = error

    def __str__(self) -> str:
        return f"{self.status}: {self.message}"


class NetworkError(ClientError):
    pass


def error_from_response(response: httpx.Response) -> ClientError:
    """Build the ClientError for a non-2xx response from its error body."""
    message = response.reason_phrase or "Request failed"
    code = None
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = body.get("message") or message
        code = body.get("error")
    if response.status_code == 401:
        return UnauthorizedError(message)
    return ApiError(response.status_code, message, code)
