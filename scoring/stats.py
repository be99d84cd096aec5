"""
Aggregate counts over normalized bug and project lists.
"""
from typing import Any, Callable, Dict, Iterable, List, Optional

from normalize.models import BugHealth, BugStatus, ProjectStatus, StatsSnapshot
from normalize.util import ref_id

# status token -> StatsSnapshot attribute
_STATUS_FIELDS = {
    BugStatus.OPEN.value: 'open',
    BugStatus.IN_PROGRESS.value: 'in_progress',
    BugStatus.CLOSED.value: 'closed',
    BugStatus.RESOLVED.value: 'resolved',
}

_DONE = (BugStatus.CLOSED.value, BugStatus.RESOLVED.value)


def _status_of(item: Any):
    return item.get('status') if isinstance(item, dict) else None


def compute_snapshot(bugs: List[Any], projects: List[Any]) -> StatsSnapshot:
    """Build a StatsSnapshot in one pass over ``bugs``.

    Status matching is case-sensitive; unknown statuses count toward ``total`` only.
    """
    counts = {field: 0 for field in _STATUS_FIELDS.values()}
    for bug in bugs:
        field = _STATUS_FIELDS.get(_status_of(bug))
        if field:
            counts[field] += 1
    return StatsSnapshot(total=len(bugs), project_count=len(projects), **counts)


def bug_status_key(status: Optional[str]) -> str:
    """Loose bug status for overviews: upper-cased, dashes as underscores, missing means OPEN."""
    return str(status or '').upper().replace('-', '_') or BugStatus.OPEN.value


def project_status_key(status: Optional[str]) -> str:
    """A project without a status is ACTIVE."""
    return status or ProjectStatus.ACTIVE.value


def count_by_status(items: Iterable[Any], key: Optional[Callable[[Optional[str]], str]] = None) -> Dict[str, int]:
    """Count items per ``status`` value.

    Without ``key`` the raw value is used and missing statuses are grouped under ''.
    """
    counts: Dict[str, int] = {}
    for item in items:
        raw = _status_of(item)
        key_value = key(raw) if key is not None else (raw or '')
        counts[key_value] = counts.get(key_value, 0) + 1
    return counts


def group_bugs_by_project(bugs: Iterable[Dict[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
    """Group bugs by project id. ``projectId`` may be an id string or an expanded project object."""
    grouped: Dict[str, List[Dict[str, Any]]] = {}
    for bug in bugs:
        if not isinstance(bug, dict):
            continue
        project_id = ref_id(bug.get('projectId'))
        if project_id:
            grouped.setdefault(project_id, []).append(bug)
    return grouped


def project_bug_health(bugs: List[Dict[str, Any]]) -> BugHealth:
    """Summarize one project's bugs: all done wins, then any in progress, then any open."""
    if not bugs:
        return BugHealth.EMPTY
    statuses = [_status_of(b) for b in bugs]
    if all(s in _DONE for s in statuses):
        return BugHealth.COMPLETED
    if BugStatus.IN_PROGRESS.value in statuses:
        return BugHealth.IN_PROGRESS
    if BugStatus.OPEN.value in statuses:
        return BugHealth.OPEN
    return BugHealth.EMPTY
