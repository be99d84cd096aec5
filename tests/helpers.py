"""Shared fakes for HTTP responses and tracker clients."""
import threading
from unittest.mock import Mock

from normalize.models import Identity


def make_response(status=200, json_body=None, text=None, reason='OK', no_json=False):
    """Build a Mock shaped like requests.Response."""
    resp = Mock()
    resp.status_code = status
    resp.reason = reason
    if no_json:
        resp.json.side_effect = ValueError('No JSON object could be decoded')
        resp.text = text if text is not None else ''
    else:
        resp.json.return_value = json_body
        resp.text = text if text is not None else ''
    return resp


def make_identity(role='DEVELOPER'):
    return Identity(user_id='u1', name='Alice', email='alice@bugtrack.io', role=role)


class FakeTracker:
    """list_bugs/list_projects backed by callables, with an optional gate to hold list_bugs in flight."""

    def __init__(self, bugs=None, projects=None, bugs_error=None, projects_error=None, gate=None):
        self.bugs = bugs if bugs is not None else []
        self.projects = projects if projects is not None else []
        self.bugs_error = bugs_error
        self.projects_error = projects_error
        self.gate = gate
        self.entered = threading.Event()
        self.bug_calls = 0
        self.project_calls = 0
        self._lock = threading.Lock()

    def list_bugs(self):
        with self._lock:
            self.bug_calls += 1
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(5)
        if self.bugs_error is not None:
            raise self.bugs_error
        return list(self.bugs)

    def list_projects(self):
        with self._lock:
            self.project_calls += 1
        if self.projects_error is not None:
            raise self.projects_error
        return list(self.projects)
