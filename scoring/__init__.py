"""
Scoring package: stats derivation over bug/project lists and the polling aggregator.
"""

from .poller import StatsAggregator
from .stats import (
    bug_status_key,
    compute_snapshot,
    count_by_status,
    group_bugs_by_project,
    project_bug_health,
    project_status_key,
)

__all__ = [
    "StatsAggregator",
    "bug_status_key",
    "compute_snapshot",
    "count_by_status",
    "group_bugs_by_project",
    "project_bug_health",
    "project_status_key",
]
