"""
Report renderer: text/Markdown/CSV/JSON/HTML views of stats snapshots, bug lists and project lists.
HTML goes through the Jinja2 template in report/templates/dashboard.html.j2.
"""

import csv
import io
import json
import os
from typing import Any, Dict, List, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from normalize.models import Bug, BugStatus, Project, ProjectStatus, StatsSnapshot

TEMPLATE_DIR = os.path.join(os.path.dirname(__file__), 'templates')

STATS_LABELS = [
    ('total', 'Total Bugs'),
    ('open', 'Open'),
    ('in_progress', 'In Progress'),
    ('closed', 'Closed'),
    ('resolved', 'Resolved'),
    ('project_count', 'Projects'),
]

BUG_COLUMNS = ['bug_id', 'title', 'status', 'priority', 'project_id', 'assigned_to']
PROJECT_COLUMNS = ['project_id', 'name', 'status', 'bug_count', 'health']
STATUS_COLUMNS = ['kind', 'status', 'count']


def _env() -> Environment:
    return Environment(loader=FileSystemLoader(TEMPLATE_DIR), autoescape=select_autoescape(['html', 'xml', 'j2']))


def _cell(value: Any) -> str:
    return '' if value is None else str(value)


def _project_rows(projects: List[Project], health: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Flatten projects with their optional (bug_count, health) entry keyed by project id."""
    rows = []
    for p in projects:
        count, state = (health or {}).get(p.project_id, (0, None))
        rows.append(
            {
                'project_id': p.project_id,
                'name': p.name,
                'status': p.status,
                'bug_count': count,
                'health': getattr(state, 'value', state) or '',
            }
        )
    return rows


def _status_rows(bug_counts: Optional[Dict[str, int]], project_counts: Optional[Dict[str, int]]) -> List[Dict[str, Any]]:
    """One row per (kind, status). Known statuses always appear, in workflow order, even at zero."""
    rows = []
    for kind, counts, known in (
        ('bug', bug_counts or {}, [s.value for s in BugStatus]),
        ('project', project_counts or {}, [s.value for s in ProjectStatus]),
    ):
        extra = sorted(k for k in counts if k not in known)
        for status in known + extra:
            rows.append({'kind': kind, 'status': status, 'count': counts.get(status, 0)})
    return rows


# --- stats ---


def render_stats_text(snapshot: StatsSnapshot, error: Optional[str] = None) -> str:
    data = snapshot.to_dict()
    width = max(len(label) for _, label in STATS_LABELS)
    lines = [f"{label.ljust(width)}  {data[key]}" for key, label in STATS_LABELS]
    if error:
        lines.append(f"Error: {error}")
    return "\n".join(lines)


def render_stats_markdown(snapshot: StatsSnapshot, error: Optional[str] = None) -> str:
    data = snapshot.to_dict()
    md = ["# Dashboard\n"]
    md.extend(f"- {label}: **{data[key]}**" for key, label in STATS_LABELS)
    if error:
        md.append(f"\n> Error: {error}")
    return "\n".join(md)


def render_stats_csv(snapshot: StatsSnapshot) -> str:
    data = snapshot.to_dict()
    header = ",".join(key for key, _ in STATS_LABELS)
    row = ",".join(str(data[key]) for key, _ in STATS_LABELS)
    return header + "\n" + row


# --- tables ---


def _render_table_text(rows: List[Dict[str, Any]], columns: List[str]) -> str:
    if not rows:
        return "No results."
    widths = {c: max(len(c), *(len(_cell(r.get(c))) for r in rows)) for c in columns}
    lines = ["  ".join(c.ljust(widths[c]) for c in columns)]
    lines.append("  ".join("-" * widths[c] for c in columns))
    for r in rows:
        lines.append("  ".join(_cell(r.get(c)).ljust(widths[c]) for c in columns))
    return "\n".join(lines)


def _render_table_markdown(title: str, rows: List[Dict[str, Any]], columns: List[str]) -> str:
    md = [f"# {title}\n"]
    if not rows:
        md.append("_No results._")
        return "\n".join(md)
    md.append("| " + " | ".join(columns) + " |")
    md.append("|" + "---|" * len(columns))
    for r in rows:
        md.append("| " + " | ".join(_cell(r.get(c)).replace("|", "\\|") for c in columns) + " |")
    return "\n".join(md)


def _render_table_csv(rows: List[Dict[str, Any]], columns: List[str]) -> str:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(columns)
    for r in rows:
        writer.writerow([_cell(r.get(c)) for c in columns])
    return output.getvalue()


def _render_html(view: str, **context) -> str:
    tmpl = _env().get_template('dashboard.html.j2')
    return tmpl.render(view=view, **context)


def render(
    view: str,
    fmt: str = 'text',
    snapshot: Optional[StatsSnapshot] = None,
    error: Optional[str] = None,
    bugs: Optional[List[Bug]] = None,
    projects: Optional[List[Project]] = None,
    health: Optional[Dict[str, Any]] = None,
    bug_counts: Optional[Dict[str, int]] = None,
    project_counts: Optional[Dict[str, int]] = None,
    generated_at: Optional[str] = None,
) -> str:
    """Main render function.

    :param view: 'stats', 'bugs', 'projects' or 'status'.
    :param fmt: text, md, csv, json or html.
    :param health: for the projects view, {project_id: (bug_count, BugHealth)}.
    :param bug_counts: for the status view, {status: count} over bugs (project_counts likewise).
    """
    fmt_l = (fmt or 'text').lower()
    if view == 'stats':
        snapshot = snapshot or StatsSnapshot()
        if fmt_l in ('md', 'markdown'):
            return render_stats_markdown(snapshot, error)
        if fmt_l == 'csv':
            return render_stats_csv(snapshot)
        if fmt_l == 'json':
            return json.dumps({'stats': snapshot.to_dict(), 'error': error}, indent=2)
        if fmt_l in ('html', 'htm'):
            return _render_html('stats', labels=STATS_LABELS, stats=snapshot.to_dict(), error=error, generated_at=generated_at)
        return render_stats_text(snapshot, error)

    if view == 'bugs':
        rows, columns, title = [b.to_dict() for b in (bugs or [])], BUG_COLUMNS, 'Bugs'
    elif view == 'projects':
        rows, columns, title = _project_rows(projects or [], health), PROJECT_COLUMNS, 'Projects'
    elif view == 'status':
        rows, columns, title = _status_rows(bug_counts, project_counts), STATUS_COLUMNS, 'Status Overview'
    else:
        raise ValueError(f"Unknown view: {view}")

    if fmt_l in ('md', 'markdown'):
        return _render_table_markdown(title, rows, columns)
    if fmt_l == 'csv':
        return _render_table_csv(rows, columns)
    if fmt_l == 'json':
        return json.dumps(rows, indent=2, default=str)
    if fmt_l in ('html', 'htm'):
        return _render_html(view, title=title, columns=columns, rows=rows, generated_at=generated_at)
    return _render_table_text(rows, columns)


__all__ = ["render", "render_stats_text", "render_stats_markdown", "render_stats_csv"]
