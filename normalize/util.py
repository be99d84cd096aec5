"""
Normalization utility helpers.
Turn raw tracker dicts into normalize.models entities, reading union-shaped fields defensively.
"""
from typing import Any, Dict, Optional, Tuple

from normalize.models import Bug, Identity, Project, ProjectStatus


def ref_id(value: Any) -> Optional[str]:
    """Return the id of a relation field that may be a plain id or an expanded object."""
    if isinstance(value, dict):
        ident = value.get('_id') or value.get('id')
        return str(ident) if ident else None
    if value in (None, ''):
        return None
    return str(value)


def ref_label(value: Any) -> Optional[str]:
    """Return a display label for a relation field: the object's name/email, else its id."""
    if isinstance(value, dict):
        return value.get('name') or value.get('email') or ref_id(value)
    return ref_id(value)


def normalize_bug(raw: Dict[str, Any]) -> Bug:
    """Create a normalized Bug from a raw API dict.
    Missing fields are filled with None/defaults.
    """
    project = raw.get('projectId') if raw.get('projectId') is not None else raw.get('project')
    return Bug(
        bug_id=ref_id(raw) or '',
        title=raw.get('title') or '',
        status=raw.get('status') or '',
        priority=raw.get('priority'),
        description=raw.get('description') or '',
        project_id=ref_id(project),
        project_name=project.get('name') if isinstance(project, dict) else None,
        created_by=ref_label(raw.get('createdBy')),
        assigned_to=ref_label(raw.get('assignedTo')),
        created_at=raw.get('createdAt'),
        updated_at=raw.get('updatedAt'),
    )


def normalize_project(raw: Dict[str, Any]) -> Project:
    """Create a normalized Project from a raw API dict."""
    members = raw.get('members') or []
    return Project(
        project_id=ref_id(raw) or '',
        name=raw.get('name') or '',
        description=raw.get('description') or '',
        status=raw.get('status') or ProjectStatus.ACTIVE.value,
        created_by=ref_label(raw.get('createdBy')),
        members=[m for m in (ref_label(x) for x in members) if m],
        created_at=raw.get('createdAt'),
    )


def _identity_from(raw: Any, fallback_email: Optional[str]) -> Optional[Identity]:
    if not isinstance(raw, dict):
        return None
    merged = dict(raw)
    if not merged.get('email') and fallback_email:
        merged['email'] = fallback_email
    return Identity.from_dict(merged)


def normalize_auth_response(response: Any, fallback_email: Optional[str] = None) -> Tuple[Optional[Identity], Optional[str]]:
    """Extract (identity, token) from a login/register reply.

    Observed shapes: ``{user, token}``, ``{id, name, role, token}``, and the same two wrapped
    in ``data``. The submitted email is used when the reply leaves it out.
    """
    if not isinstance(response, dict):
        return None, None
    token = response.get('token')
    if isinstance(response.get('user'), dict):
        return _identity_from(response['user'], fallback_email), token
    if response.get('id') or response.get('_id'):
        return _identity_from(response, fallback_email), token
    data = response.get('data')
    if isinstance(data, dict):
        token = data.get('token') or token
        if isinstance(data.get('user'), dict):
            return _identity_from(data['user'], fallback_email), token
        if data.get('id') or data.get('_id'):
            return _identity_from(data, fallback_email), token
    return None, token
