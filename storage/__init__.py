"""
Storage package: durable client-side key/value storage and the session store built on it.
"""

from .kv import KeyValueStore
from .session import SessionStore, require_auth

__all__ = ["KeyValueStore", "SessionStore", "require_auth"]
