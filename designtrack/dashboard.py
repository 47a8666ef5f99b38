"""
Aggregates behind the manager and designer dashboards.

Everything here works on already role-filtered records; chart rendering is
left to the client.
"""

import csv
import io
from collections import OrderedDict
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional

from .innovations import InnovationStatus, InnovationType
from .sessions import ProjectSession
from .utils.datetime_utils import to_iso, to_local

CSV_HEADERS = ['ID', 'NS', 'Code', 'Type', 'Implement', 'Start', 'End', 'Total (s)', 'Status', 'Notes']


def in_window(instant: datetime, start_date: Optional[date] = None, end_date: Optional[date] = None) -> bool:
    """Inclusive date window; end_date covers the whole day in the display timezone."""
    day = to_local(instant).date()
    if start_date and day < start_date:
        return False
    if end_date and day > end_date:
        return False
    return True


def completed_in_window(sessions: Iterable[ProjectSession], start_date=None, end_date=None) -> List[ProjectSession]:
    return [
        s for s in sessions
        if s.is_completed and in_window(s.end_time or s.start_time, start_date, end_date)
    ]


def average_times(sessions: Iterable[ProjectSession]) -> List[dict]:
    sums: Dict[str, dict] = OrderedDict()
    for session in sessions:
        stats = sums.setdefault(session.type.value, {"total": 0, "count": 0})
        stats["total"] += session.total_active_seconds
        stats["count"] += 1
    return [
        {"type": type_, "avg_seconds": round(stats["total"] / stats["count"])}
        for type_, stats in sums.items()
    ]


def completions_by_month(sessions: Iterable[ProjectSession]) -> List[dict]:
    counts: Dict[str, int] = {}
    for session in sessions:
        key = to_local(session.end_time).strftime("%Y-%m")
        counts[key] = counts.get(key, 0) + 1
    return [{"month": key, "completed": counts[key]} for key in sorted(counts)]


def implement_distribution(sessions: Iterable[ProjectSession]) -> List[dict]:
    counts: Dict[str, int] = OrderedDict()
    for session in sessions:
        key = session.implement_type.value if session.implement_type else "not_set"
        counts[key] = counts.get(key, 0) + 1
    return [{"name": key, "value": value} for key, value in counts.items()]


def issues_by_type(issues: Iterable) -> List[dict]:
    counts: Dict[str, int] = OrderedDict()
    for issue in issues:
        counts[issue.type] = counts.get(issue.type, 0) + 1
    return [{"name": key, "value": value} for key, value in counts.items()]


def innovation_breakdown(innovations: Iterable) -> List[dict]:
    innovations = list(innovations)
    result = []
    for status in [InnovationStatus.PENDING, InnovationStatus.APPROVED,
                   InnovationStatus.IMPLEMENTED, InnovationStatus.REJECTED]:
        items = [i for i in innovations if i.status == status.value]
        row = {"status": status.value}
        for type_ in InnovationType:
            row[type_.value] = len([i for i in items if i.type == type_.value])
        result.append(row)
    return result


def designer_completions(sessions: Iterable[ProjectSession], users_map: Dict[int, str]) -> List[dict]:
    counts: Dict[str, int] = OrderedDict()
    for session in sessions:
        name = users_map.get(session.user_id, "Unknown")
        counts[name] = counts.get(name, 0) + 1
    return [{"name": key, "completed": value} for key, value in counts.items()]


def build_dashboard(
    sessions: List[ProjectSession],
    issues: List,
    innovations: List,
    users_map: Optional[Dict[int, str]] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None
) -> dict:
    """users_map is only passed for managers; designers get no per-designer chart."""
    completed = completed_in_window(sessions, start_date, end_date)
    window_issues = [i for i in issues if in_window(i.date, start_date, end_date)]
    window_innovations = [i for i in innovations if in_window(i.created_at, start_date, end_date)]

    savings = 0.0
    for innovation in window_innovations:
        if innovation.status in (InnovationStatus.APPROVED.value, InnovationStatus.IMPLEMENTED.value):
            savings += innovation.total_annual_savings or 0

    return {
        "completed_count": len(completed),
        "issue_count": len(window_issues),
        "total_savings": savings,
        "average_times": average_times(completed),
        "completions_by_month": completions_by_month(completed),
        "implement_distribution": implement_distribution(completed),
        "issues_by_type": issues_by_type(window_issues),
        "innovations_by_status": innovation_breakdown(window_innovations),
        "designer_completions": designer_completions(completed, users_map) if users_map is not None else [],
    }


def export_csv(sessions: Iterable[ProjectSession]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_HEADERS)
    for s in sessions:
        writer.writerow([
            s.id,
            s.ns,
            s.project_code or '',
            s.type.value,
            s.implement_type.value if s.implement_type else '',
            to_iso(s.start_time),
            to_iso(s.end_time) if s.end_time else '',
            s.total_active_seconds,
            s.status.value,
            s.notes or '',
        ])
    return buffer.getvalue()
