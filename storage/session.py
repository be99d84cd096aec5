"""
Session store: the single record of who is logged in.
In-memory state is the source of truth for the running process; the key/value store
keeps a copy under the keys ``user`` and ``token`` so a later run can restore it.
"""

import json
import logging
import sqlite3
import threading
from typing import Optional

from api.errors import NotAuthenticated
from normalize.models import Identity

logger = logging.getLogger(__name__)

USER_KEY = 'user'
TOKEN_KEY = 'token'


class SessionStore:
    """
    Holds the current identity and credential.

    ``storage`` is any object with ``get``/``set``/``delete`` string methods
    (storage.kv.KeyValueStore in practice).
    """

    def __init__(self, storage):
        self.storage = storage
        self._lock = threading.Lock()
        self._identity: Optional[Identity] = None
        self._token: Optional[str] = None

    @property
    def identity(self) -> Optional[Identity]:
        return self._identity

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def is_authenticated(self) -> bool:
        return self._identity is not None and bool(self._token)

    def login(self, identity: Identity, token: str):
        """Set the session and persist it. Persistence failures are logged, never raised."""
        with self._lock:
            self._identity = identity
            self._token = token
        logger.info("Logged in as %s", identity.email)
        try:
            self.storage.set(USER_KEY, json.dumps(identity.to_dict()))
            self.storage.set(TOKEN_KEY, token)
        except sqlite3.Error as ex:
            logger.error("Failed to persist session: %s", ex)

    def logout(self):
        """Clear memory and persisted entries. Safe to call repeatedly."""
        with self._lock:
            self._identity = None
            self._token = None
        self._clear_persisted()

    def _clear_persisted(self):
        try:
            self.storage.delete(USER_KEY)
            self.storage.delete(TOKEN_KEY)
        except sqlite3.Error as ex:
            logger.error("Failed to clear persisted session: %s", ex)

    def restore(self) -> bool:
        """Load a persisted session, discarding it unless both entries exist and the identity is complete."""
        try:
            raw_user = self.storage.get(USER_KEY)
            raw_token = self.storage.get(TOKEN_KEY)
        except sqlite3.Error as ex:
            logger.error("Failed to read persisted session: %s", ex)
            return False

        if not raw_user or not raw_token:
            if raw_user or raw_token:
                logger.warning("Partial session found in storage, clearing")
                self._clear_persisted()
            return False

        try:
            identity = Identity.from_dict(json.loads(raw_user))
        except ValueError as ex:
            logger.error("Failed to parse stored user data: %s", ex)
            identity = None

        if identity is None:
            logger.warning("Stored user data is invalid, clearing")
            self._clear_persisted()
            with self._lock:
                self._identity = None
                self._token = None
            return False

        with self._lock:
            self._identity = identity
            self._token = raw_token
        logger.debug("Restored session for %s", identity.email)
        return True


def require_auth(session: SessionStore) -> Identity:
    """Guard for protected operations: return the identity or raise NotAuthenticated."""
    identity = session.identity
    if identity is None or not session.is_authenticated:
        raise NotAuthenticated()
    return identity


__all__ = ["SessionStore", "require_auth", "USER_KEY", "TOKEN_KEY"]
