import json
import sqlite3
import unittest

import pytest

from api.errors import NotAuthenticated
from storage.kv import KeyValueStore
from storage.session import SessionStore, require_auth

from helpers import make_identity


class BrokenStorage:
    """Storage whose every operation fails like a locked/readonly SQLite file."""

    def get(self, key):
        raise sqlite3.OperationalError('database is locked')

    def set(self, key, value):
        raise sqlite3.OperationalError('attempt to write a readonly database')

    def delete(self, key):
        raise sqlite3.OperationalError('attempt to write a readonly database')


class TestSessionStore(unittest.TestCase):
    def setUp(self):
        self.store = KeyValueStore()
        self.session = SessionStore(self.store)

    def tearDown(self):
        self.store.close()

    def test_starts_unauthenticated(self):
        self.assertFalse(self.session.is_authenticated)
        self.assertIsNone(self.session.identity)
        self.assertIsNone(self.session.token)

    def test_login_persists_user_and_token(self):
        identity = make_identity()
        self.session.login(identity, 'tok')
        self.assertTrue(self.session.is_authenticated)
        self.assertEqual(self.store.get('token'), 'tok')
        self.assertEqual(json.loads(self.store.get('user'))['_id'], 'u1')

    def test_login_then_restore_round_trips(self):
        identity = make_identity('ADMIN')
        self.session.login(identity, 'tok')
        reloaded = SessionStore(self.store)
        self.assertTrue(reloaded.restore())
        self.assertEqual(reloaded.identity, identity)
        self.assertEqual(reloaded.token, 'tok')
        self.assertTrue(reloaded.is_authenticated)

    def test_logout_is_idempotent(self):
        self.session.login(make_identity(), 'tok')
        self.session.logout()
        self.session.logout()
        self.assertFalse(self.session.is_authenticated)
        self.assertIsNone(self.store.get('user'))
        self.assertIsNone(self.store.get('token'))

    def test_restore_with_nothing_stored(self):
        self.assertFalse(self.session.restore())

    def test_restore_discards_partial_entries(self):
        self.store.set('token', 'orphan')
        self.assertFalse(self.session.restore())
        self.assertIsNone(self.store.get('token'))

    def test_restore_discards_malformed_json(self):
        self.store.set('user', '{not json')
        self.store.set('token', 'tok')
        self.assertFalse(self.session.restore())
        self.assertFalse(self.session.is_authenticated)
        self.assertIsNone(self.store.get('user'))
        self.assertIsNone(self.store.get('token'))

    def test_restore_discards_identity_missing_role(self):
        self.store.set('user', json.dumps({'_id': 'u1', 'email': 'a@bugtrack.io', 'name': 'A'}))
        self.store.set('token', 'tok')
        self.assertFalse(self.session.restore())
        self.assertIsNone(self.store.get('token'))

    def test_restore_accepts_plain_id_key(self):
        self.store.set('user', json.dumps({'id': 'u7', 'email': 'a@bugtrack.io', 'role': 'TESTER'}))
        self.store.set('token', 'tok')
        self.assertTrue(self.session.restore())
        self.assertEqual(self.session.identity.user_id, 'u7')


def test_storage_failures_do_not_break_the_session():
    session = SessionStore(BrokenStorage())
    session.login(make_identity(), 'tok')
    assert session.is_authenticated
    assert session.restore() is False
    # restore failing to read keeps the in-memory session
    assert session.is_authenticated
    session.logout()
    assert not session.is_authenticated


def test_session_survives_a_new_process(tmp_path):
    path = str(tmp_path / 'nested' / 'session.db')
    with KeyValueStore(path) as store:
        SessionStore(store).login(make_identity(), 'tok')
    with KeyValueStore(path) as store:
        session = SessionStore(store)
        assert session.restore()
        assert session.identity.email == 'alice@bugtrack.io'


def test_require_auth_guard():
    store = KeyValueStore()
    session = SessionStore(store)
    with pytest.raises(NotAuthenticated):
        require_auth(session)
    session.login(make_identity(), 'tok')
    assert require_auth(session).user_id == 'u1'
    session.logout()
    with pytest.raises(NotAuthenticated):
        require_auth(session)
    store.close()
