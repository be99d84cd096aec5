"""
Tracker API endpoints on top of ApiClient.
Every reply goes through the envelope normalizer, so callers get lists and dicts
regardless of which shape the backend sent.
"""

import logging
from typing import Any, Dict, List, Optional

from normalize.envelope import Unwrapped, normalize_collection, normalize_resource, unwrap_collection
from normalize.util import normalize_auth_response

from .client import ApiClient
from .errors import ApiClientError

logger = logging.getLogger(__name__)


class TrackerClient:
    """
    Endpoint wrappers for auth, projects, users and bugs.
    """

    def __init__(self, api: ApiClient, scan_fallback: bool = True):
        self.api = api
        self.scan_fallback = scan_fallback

    # --- auth ---

    def _complete_auth(self, response: Any, email: str):
        identity, token = normalize_auth_response(response, fallback_email=email)
        if identity is None or not token:
            logger.error("Auth reply is missing user or token (keys=%s)", sorted(response) if isinstance(response, dict) else type(response).__name__)
            raise ApiClientError("Invalid response from server: missing user or token")
        if self.api.session is not None:
            self.api.session.login(identity, token)
        return identity, token

    def login(self, email: str, password: str):
        """POST /auth/login and start a session. Returns (identity, token)."""
        response = self.api.post('/auth/login', {'email': email, 'password': password})
        return self._complete_auth(response, email)

    def register(self, name: str, email: str, password: str, role: str):
        """POST /auth/register and start a session. Returns (identity, token)."""
        response = self.api.post('/auth/register', {'name': name, 'email': email, 'password': password, 'role': role})
        return self._complete_auth(response, email)

    # --- projects ---

    def fetch_projects(self) -> Unwrapped:
        """GET /project, keeping the unwrap rule or failure for callers that report it."""
        return unwrap_collection(self.api.get('/project'), 'projects', self.scan_fallback)

    def list_projects(self) -> List[Dict[str, Any]]:
        return self.fetch_projects().value

    def get_project(self, project_id: str) -> Optional[Dict[str, Any]]:
        return normalize_resource(self.api.get(f'/project/{project_id}'), 'project')

    def create_project(self, name: str, description: str = '') -> Optional[Dict[str, Any]]:
        if not name or not name.strip():
            raise ValueError('Project name is required')
        payload = {'name': name.strip(), 'description': (description or '').strip()}
        return normalize_resource(self.api.post('/project', payload), 'project')

    def update_project(self, project_id: str, **fields) -> Optional[Dict[str, Any]]:
        return normalize_resource(self.api.patch(f'/project/{project_id}', fields), 'project')

    def update_project_status(self, project_id: str, status: str) -> Optional[Dict[str, Any]]:
        return normalize_resource(self.api.patch(f'/project/{project_id}/status', {'status': status}), 'project')

    def add_member(self, project_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        return normalize_resource(self.api.post(f'/project/{project_id}/members', {'userId': user_id}), 'project')

    def remove_member(self, project_id: str, member_id: str) -> Optional[Dict[str, Any]]:
        return normalize_resource(self.api.delete(f'/project/{project_id}/members/{member_id}'), 'project')

    def delete_project(self, project_id: str) -> None:
        self.api.delete(f'/project/{project_id}')

    # --- users ---

    def list_users(self) -> List[Dict[str, Any]]:
        return normalize_collection(self.api.get('/users'), 'users', self.scan_fallback)

    # --- bugs ---

    def fetch_bugs(self, status: Optional[str] = None, priority: Optional[str] = None, project_id: Optional[str] = None) -> Unwrapped:
        """GET /bugs with optional server-side filters."""
        params = {}
        if status:
            params['status'] = status
        if priority:
            params['priority'] = priority
        if project_id:
            params['projectId'] = project_id
        return unwrap_collection(self.api.get('/bugs', params=params or None), 'bugs', self.scan_fallback)

    def list_bugs(self, status: Optional[str] = None, priority: Optional[str] = None, project_id: Optional[str] = None) -> List[Dict[str, Any]]:
        return self.fetch_bugs(status=status, priority=priority, project_id=project_id).value

    def get_bug(self, bug_id: str) -> Optional[Dict[str, Any]]:
        return normalize_resource(self.api.get(f'/bugs/{bug_id}'), 'bug')

    def create_bug(
        self,
        title: str,
        description: str,
        project_id: str,
        priority: str = 'MEDIUM',
        assigned_to: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        payload = {'title': title, 'description': description, 'projectId': project_id, 'priority': priority}
        if assigned_to:
            payload['assignedTo'] = assigned_to
        return normalize_resource(self.api.post('/bugs', payload), 'bug')

    def update_bug_status(self, bug_id: str, status: str) -> Optional[Dict[str, Any]]:
        return normalize_resource(self.api.patch(f'/bugs/{bug_id}/status', {'status': status}), 'bug')

    def delete_bug(self, bug_id: str) -> None:
        self.api.delete(f'/bugs/{bug_id}')


__all__ = ["TrackerClient"]
