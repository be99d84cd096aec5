"""
API package: HTTP client, error taxonomy and tracker endpoint wrappers.
"""

from .client import ApiClient
from .errors import ApiClientError, ApiError, AuthExpired, NetworkError, NotAuthenticated, Unauthorized
from .tracker import TrackerClient

__all__ = [
    "ApiClient",
    "TrackerClient",
    "ApiClientError",
    "ApiError",
    "AuthExpired",
    "NetworkError",
    "NotAuthenticated",
    "Unauthorized",
]
