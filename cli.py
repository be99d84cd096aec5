"""
CLI entry point for the bug tracker client. Wires settings -> session -> API client -> views.
"""

import argparse
import getpass
import json
import logging
import os
import sqlite3
import sys
import time
from datetime import datetime, timezone
from typing import List, Optional

from api.client import ApiClient
from api.errors import ApiClientError, NotAuthenticated, Unauthorized
from api.tracker import TrackerClient
from config import Settings, load_settings
from normalize.models import BugStatus, Priority, ProjectStatus, Role
from normalize.util import normalize_bug, normalize_project
from report.renderer import render
from scoring.poller import StatsAggregator
from scoring.stats import bug_status_key, compute_snapshot, count_by_status, group_bugs_by_project, project_bug_health, project_status_key
from storage.kv import KeyValueStore
from storage.session import SessionStore, require_auth
from validation.auth import validate_login, validate_register

logger = logging.getLogger(__name__)


class Context:
    """Objects shared by every command for one CLI run."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.store = _open_store(settings.session_path)
        self.session = SessionStore(self.store)
        self.session.restore()
        self.api = ApiClient(settings.api_url, session=self.session, timeout=settings.timeout, on_unauthorized=_notify_expired)
        self.tracker = TrackerClient(self.api, scan_fallback=settings.scan_fallback)

    def close(self):
        self.store.close()


def _open_store(path):
    """Open durable storage, falling back to an in-memory store for this run if the file is unusable."""
    try:
        return KeyValueStore(path)
    except (OSError, sqlite3.Error) as ex:
        logger.error("Cannot open session storage at %s (%s); session will not persist", path, ex)
        return KeyValueStore(None)


def _notify_expired(redirect_to: str):
    print(f"Session expired. Please login again (bugtrack login). [{redirect_to}]")


def _print_errors(errors):
    for field, message in errors:
        print(f"  {field}: {message}")


def _confirm(prompt: str, force: bool) -> bool:
    if force:
        return True
    answer = input(f"{prompt} [y/N]: ")
    if answer.strip().lower() not in ("y", "yes"):
        print("Aborted.")
        return False
    return True


def write_output(rendered: str, args):
    """Write output to --out-file when given, otherwise print it."""
    out_path = (getattr(args, 'out_file', '') or '').strip()
    if not out_path:
        print(rendered)
        return
    out_dir = os.path.dirname(out_path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    with open(out_path, 'w', encoding='utf-8', newline='') as fh:
        fh.write(rendered)
    print(f"Wrote report to {out_path}")


def _require_admin(ctx: Context, action: str) -> bool:
    if require_auth(ctx.session).is_admin:
        return True
    print(f"Only admins can {action}.")
    return False


def _report_failure(label: str, unwrapped) -> None:
    """Surface an unrecognized envelope inline; the empty result is still shown."""
    if not unwrapped.ok:
        print(f"Warning: unrecognized {label} response ({unwrapped.failure.reason})", file=sys.stderr)


def _now() -> str:
    return datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')


# --- auth commands ---


def cmd_login(ctx: Context, args) -> int:
    password = args.password or getpass.getpass('Password: ')
    errors = validate_login({'email': args.email, 'password': password})
    if errors:
        print("Invalid login details:")
        _print_errors(errors)
        return 2
    identity, _ = ctx.tracker.login(args.email, password)
    print(f"Logged in as {identity.name or identity.email} ({identity.role})")
    return 0


def cmd_register(ctx: Context, args) -> int:
    password = args.password or getpass.getpass('Password: ')
    confirm = args.confirm_password or getpass.getpass('Confirm password: ')
    form = {'name': args.name, 'email': args.email, 'password': password, 'confirm_password': confirm, 'role': args.role}
    errors = validate_register(form)
    if errors:
        print("Invalid registration details:")
        _print_errors(errors)
        return 2
    role = Role.parse(args.role)
    identity, _ = ctx.tracker.register(args.name, args.email, password, role.value)
    print(f"Registered and logged in as {identity.name or identity.email} ({identity.role})")
    return 0


def cmd_logout(ctx: Context, args) -> int:
    ctx.session.logout()
    print("Logged out.")
    return 0


def cmd_whoami(ctx: Context, args) -> int:
    identity = require_auth(ctx.session)
    print(f"{identity.name} <{identity.email}> role={identity.role} id={identity.user_id}")
    return 0


# --- stats ---


def cmd_stats(ctx: Context, args) -> int:
    require_auth(ctx.session)
    if not args.watch:
        agg = StatsAggregator(ctx.tracker, interval_ms=0)
        agg.refresh()
        write_output(render('stats', args.output, snapshot=agg.snapshot, error=agg.error, generated_at=_now()), args)
        return 1 if agg.error else 0

    interval = args.interval if args.interval is not None else ctx.settings.poll_interval_ms
    holder = {}

    def _on_update(snapshot):
        print(render('stats', args.output, snapshot=snapshot, error=holder['agg'].error, generated_at=_now()))
        print()

    agg = StatsAggregator(ctx.tracker, interval_ms=interval, on_update=_on_update)
    holder['agg'] = agg
    try:
        agg.start()
        while ctx.session.is_authenticated:
            time.sleep(0.2)
    except KeyboardInterrupt:
        pass
    finally:
        agg.stop()
    return 0


# --- bugs ---


def cmd_bugs_list(ctx: Context, args) -> int:
    require_auth(ctx.session)
    fetched = ctx.tracker.fetch_bugs(status=args.status, priority=args.priority, project_id=args.project)
    _report_failure("bugs", fetched)
    bugs = [normalize_bug(b) for b in fetched.value if isinstance(b, dict)]
    write_output(render('bugs', args.output, bugs=bugs, generated_at=_now()), args)
    return 0


def cmd_bugs_show(ctx: Context, args) -> int:
    require_auth(ctx.session)
    raw = ctx.tracker.get_bug(args.bug_id)
    if raw is None:
        print(f"Bug not found or unrecognized reply: {args.bug_id}")
        return 1
    bug = normalize_bug(raw)
    for key, value in bug.to_dict().items():
        print(f"{key}: {'' if value is None else value}")
    return 0


def cmd_bugs_create(ctx: Context, args) -> int:
    require_auth(ctx.session)
    created = ctx.tracker.create_bug(args.title, args.description, args.project, priority=args.priority, assigned_to=args.assign)
    print(f"Created bug {normalize_bug(created).bug_id}" if created else "Created bug.")
    return 0


def cmd_bugs_status(ctx: Context, args) -> int:
    if not require_auth(ctx.session).can_update_bug_status:
        print("Only developers and admins can update bug status.")
        return 1
    ctx.tracker.update_bug_status(args.bug_id, args.status)
    print(f"Bug {args.bug_id} -> {args.status}")
    return 0


def cmd_bugs_delete(ctx: Context, args) -> int:
    if not _require_admin(ctx, "delete bugs"):
        return 1
    if not _confirm(f"Delete bug {args.bug_id}? This action cannot be undone.", args.force):
        return 1
    ctx.tracker.delete_bug(args.bug_id)
    print(f"Deleted bug {args.bug_id}")
    return 0


# --- projects ---


def cmd_projects_list(ctx: Context, args) -> int:
    require_auth(ctx.session)
    fetched = ctx.tracker.fetch_projects()
    _report_failure("projects", fetched)
    projects = [normalize_project(p) for p in fetched.value if isinstance(p, dict)]
    health = None
    if projects:
        grouped = group_bugs_by_project(ctx.tracker.list_bugs())
        health = {p.project_id: (len(grouped.get(p.project_id, [])), project_bug_health(grouped.get(p.project_id, []))) for p in projects}
    write_output(render('projects', args.output, projects=projects, health=health, generated_at=_now()), args)
    return 0


def cmd_projects_show(ctx: Context, args) -> int:
    require_auth(ctx.session)
    raw = ctx.tracker.get_project(args.project_id)
    if raw is None:
        print(f"Project not found or unrecognized reply: {args.project_id}")
        return 1
    project = normalize_project(raw)
    raw_bugs = [b for b in ctx.tracker.list_bugs(project_id=project.project_id or args.project_id) if isinstance(b, dict)]
    counts = compute_snapshot(raw_bugs, []).to_dict()
    counts.pop('project_count')
    bugs = [normalize_bug(b) for b in raw_bugs]
    if (args.output or '').lower() == 'json':
        payload = {'project': project.to_dict(), 'counts': counts, 'bugs': [b.to_dict() for b in bugs]}
        write_output(json.dumps(payload, indent=2, default=str), args)
        return 0
    lines = [f"{key}: {'' if value is None else value}" for key, value in project.to_dict().items()]
    lines.append(
        f"bugs: total {counts['total']}, open {counts['open']}, in progress {counts['in_progress']}, "
        f"closed {counts['closed']}, resolved {counts['resolved']}"
    )
    write_output("\n".join(lines) + "\n\n" + render('bugs', args.output, bugs=bugs, generated_at=_now()), args)
    return 0


def cmd_projects_create(ctx: Context, args) -> int:
    if not _require_admin(ctx, "create projects"):
        return 1
    created = ctx.tracker.create_project(args.name, args.description)
    print(f"Created project {normalize_project(created).project_id}" if created else "Created project.")
    return 0


def cmd_projects_update(ctx: Context, args) -> int:
    require_auth(ctx.session)
    fields = {k: v for k, v in (('name', args.name), ('description', args.description)) if v is not None}
    if not fields:
        print("Nothing to update.")
        return 2
    ctx.tracker.update_project(args.project_id, **fields)
    print(f"Updated project {args.project_id}")
    return 0


def cmd_projects_status(ctx: Context, args) -> int:
    if not _require_admin(ctx, "manage projects"):
        return 1
    ctx.tracker.update_project_status(args.project_id, args.status)
    print(f"Project {args.project_id} -> {args.status}")
    return 0


def cmd_projects_delete(ctx: Context, args) -> int:
    if not _require_admin(ctx, "manage projects"):
        return 1
    if not _confirm(f"Delete project {args.project_id}? This action cannot be undone.", args.force):
        return 1
    ctx.tracker.delete_project(args.project_id)
    print(f"Deleted project {args.project_id}")
    return 0


def cmd_projects_add_member(ctx: Context, args) -> int:
    if not _require_admin(ctx, "manage projects"):
        return 1
    ctx.tracker.add_member(args.project_id, args.user_id)
    print(f"Added {args.user_id} to project {args.project_id}")
    return 0


def cmd_projects_remove_member(ctx: Context, args) -> int:
    if not _require_admin(ctx, "manage projects"):
        return 1
    ctx.tracker.remove_member(args.project_id, args.member_id)
    print(f"Removed {args.member_id} from project {args.project_id}")
    return 0


# --- status overview ---


def cmd_status(ctx: Context, args) -> int:
    require_auth(ctx.session)
    fetched_bugs = ctx.tracker.fetch_bugs()
    fetched_projects = ctx.tracker.fetch_projects()
    _report_failure("bugs", fetched_bugs)
    _report_failure("projects", fetched_projects)
    bugs = [b for b in fetched_bugs.value if isinstance(b, dict)]
    projects = [p for p in fetched_projects.value if isinstance(p, dict)]

    if args.bugs:
        selected = [normalize_bug(b) for b in bugs if bug_status_key(b.get('status')) == args.bugs]
        print(f"Showing {len(selected)} of {len(bugs)} bugs", file=sys.stderr)
        rendered = render('bugs', args.output, bugs=selected, generated_at=_now())
    elif args.projects:
        selected = [normalize_project(p) for p in projects if project_status_key(p.get('status')) == args.projects]
        print(f"Showing {len(selected)} of {len(projects)} projects", file=sys.stderr)
        rendered = render('projects', args.output, projects=selected, generated_at=_now())
    else:
        rendered = render(
            'status',
            args.output,
            bug_counts=count_by_status(bugs, key=bug_status_key),
            project_counts=count_by_status(projects, key=project_status_key),
            generated_at=_now(),
        )
    write_output(rendered, args)
    return 0


def cmd_users(ctx: Context, args) -> int:
    require_auth(ctx.session)
    for u in ctx.tracker.list_users():
        if isinstance(u, dict):
            print(f"{u.get('_id') or u.get('id')}  {u.get('name', '')}  {u.get('email', '')}  {u.get('role', '')}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='bugtrack', description="Bug tracker command-line client")
    parser.add_argument("--api-url", type=str, default=None, help="API base URL (overrides BUGTRACK_API_URL env)")
    parser.add_argument("--session", type=str, default=None, help="Path to the session SQLite file (overrides BUGTRACK_SESSION_PATH env)")
    parser.add_argument("--timeout", type=float, default=None, help="Request timeout in seconds (overrides BUGTRACK_TIMEOUT env; default none)")
    parser.add_argument("--no-scan-fallback", action="store_true", help="Do not guess collections from the first list-valued property")
    parser.add_argument("--output", type=str, default="text", help="Output format (text, md, csv, json, html)")
    parser.add_argument("--out-file", type=str, default="", help="Write output to this file instead of stdout")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("login", help="Log in and store the session")
    p.add_argument("--email", required=True)
    p.add_argument("--password", default=None, help="Prompted for when omitted")
    p.set_defaults(func=cmd_login)

    p = sub.add_parser("register", help="Create an account and log in")
    p.add_argument("--name", required=True)
    p.add_argument("--email", required=True)
    p.add_argument("--password", default=None)
    p.add_argument("--confirm-password", default=None)
    p.add_argument("--role", default=Role.DEVELOPER.value, help="ADMIN, TESTER or DEVELOPER")
    p.set_defaults(func=cmd_register)

    sub.add_parser("logout", help="Clear the stored session").set_defaults(func=cmd_logout)
    sub.add_parser("whoami", help="Show the logged-in user").set_defaults(func=cmd_whoami)

    p = sub.add_parser("stats", help="Show dashboard statistics")
    p.add_argument("--watch", action="store_true", help="Keep refreshing until interrupted")
    p.add_argument("--interval", type=int, default=None, help="Refresh interval in ms (overrides BUGTRACK_POLL_INTERVAL_MS env)")
    p.set_defaults(func=cmd_stats)

    bugs = sub.add_parser("bugs", help="Bug commands").add_subparsers(dest="bugs_command", required=True)
    p = bugs.add_parser("list")
    p.add_argument("--status", choices=[s.value for s in BugStatus])
    p.add_argument("--priority", choices=[s.value for s in Priority])
    p.add_argument("--project", default=None, help="Project id")
    p.set_defaults(func=cmd_bugs_list)
    p = bugs.add_parser("show")
    p.add_argument("bug_id")
    p.set_defaults(func=cmd_bugs_show)
    p = bugs.add_parser("create")
    p.add_argument("--title", required=True)
    p.add_argument("--description", required=True)
    p.add_argument("--project", required=True, help="Project id")
    p.add_argument("--priority", choices=[s.value for s in Priority], default=Priority.MEDIUM.value)
    p.add_argument("--assign", default=None, help="User id of the assignee")
    p.set_defaults(func=cmd_bugs_create)
    p = bugs.add_parser("status")
    p.add_argument("bug_id")
    p.add_argument("status", choices=[s.value for s in BugStatus])
    p.set_defaults(func=cmd_bugs_status)
    p = bugs.add_parser("delete")
    p.add_argument("bug_id")
    p.add_argument("--force", action="store_true")
    p.set_defaults(func=cmd_bugs_delete)

    projects = sub.add_parser("projects", help="Project commands").add_subparsers(dest="projects_command", required=True)
    projects.add_parser("list").set_defaults(func=cmd_projects_list)
    p = projects.add_parser("show", help="Project details with its bug counts")
    p.add_argument("project_id")
    p.set_defaults(func=cmd_projects_show)
    p = projects.add_parser("create")
    p.add_argument("--name", required=True)
    p.add_argument("--description", default="")
    p.set_defaults(func=cmd_projects_create)
    p = projects.add_parser("update")
    p.add_argument("project_id")
    p.add_argument("--name", default=None)
    p.add_argument("--description", default=None)
    p.set_defaults(func=cmd_projects_update)
    p = projects.add_parser("status")
    p.add_argument("project_id")
    p.add_argument("status", choices=[s.value for s in ProjectStatus])
    p.set_defaults(func=cmd_projects_status)
    p = projects.add_parser("delete")
    p.add_argument("project_id")
    p.add_argument("--force", action="store_true")
    p.set_defaults(func=cmd_projects_delete)
    p = projects.add_parser("add-member")
    p.add_argument("project_id")
    p.add_argument("user_id")
    p.set_defaults(func=cmd_projects_add_member)
    p = projects.add_parser("remove-member")
    p.add_argument("project_id")
    p.add_argument("member_id")
    p.set_defaults(func=cmd_projects_remove_member)

    p = sub.add_parser("status", help="Counts per status for bugs and projects")
    group = p.add_mutually_exclusive_group()
    group.add_argument("--bugs", choices=[s.value for s in BugStatus], help="List bugs in this status")
    group.add_argument("--projects", choices=[s.value for s in ProjectStatus], help="List projects in this status")
    p.set_defaults(func=cmd_status)

    sub.add_parser("users", help="List users").set_defaults(func=cmd_users)
    return parser


def _resolve_settings(args) -> Settings:
    """Environment settings with CLI flags taking precedence."""
    settings = load_settings()
    if args.api_url:
        settings.api_url = args.api_url.rstrip('/')
    if args.session:
        settings.session_path = args.session
    if args.timeout is not None:
        settings.timeout = args.timeout
    if args.no_scan_fallback:
        settings.scan_fallback = False
    return settings


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = _resolve_settings(args)
    level = logging.DEBUG if args.verbose else getattr(logging, settings.log_level, logging.WARNING)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    logger.debug("Using %r", settings)

    ctx = None
    try:
        ctx = Context(settings)
        return args.func(ctx, args)
    except NotAuthenticated as ex:
        print(ex.message)
        return 1
    except Unauthorized:
        # already reported by the on_unauthorized hook
        return 1
    except ApiClientError as ex:
        print(f"Error: {ex.message}")
        return 1
    except ValueError as ex:
        print(f"Error: {ex}")
        return 2
    finally:
        if ctx is not None:
            ctx.close()


if __name__ == "__main__":
    sys.exit(main())
