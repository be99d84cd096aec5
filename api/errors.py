"""
Error types raised by the API client and the session guard.
"""

from typing import Any, Optional

LOGIN_REDIRECT = "/login?expired=true"


class ApiClientError(Exception):
    """Base class for every failure surfaced by the client."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NetworkError(ApiClientError):
    """No response was obtained (connection refused, DNS failure, timeout)."""


class ApiError(ApiClientError):
    """
    The server answered with a non-2xx status.
    """

    def __init__(self, status: int, status_text: str, message: str, raw_body: Optional[str] = None, data: Any = None):
        super().__init__(message)
        self.status = status
        self.status_text = status_text
        self.raw_body = raw_body
        self.data = data if data is not None else {}

    def __repr__(self):
        return f"{type(self).__name__}(status={self.status}, message={self.message!r})"


class Unauthorized(ApiError):
    """401 from any endpoint. The session has already been cleared when this is raised."""

    def __init__(self, status_text: str = "Unauthorized", raw_body: Optional[str] = None, data: Any = None):
        super().__init__(401, status_text, "Session expired. Please login again.", raw_body=raw_body, data=data)
        self.redirect_to = LOGIN_REDIRECT


AuthExpired = Unauthorized


class NotAuthenticated(Exception):
    """Raised by the route guard when a protected operation runs without a session."""

    def __init__(self, message: str = "Not logged in. Run 'login' first."):
        super().__init__(message)
        self.message = message


__all__ = ["ApiClientError", "NetworkError", "ApiError", "Unauthorized", "AuthExpired", "NotAuthenticated", "LOGIN_REDIRECT"]
