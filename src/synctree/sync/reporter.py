"""Sync report formatting functions.

Provides human-readable and machine-readable output for synchronize runs:

- ``format_sync_report`` -- grouped listing of out-of-sync paths.
- ``report_to_json`` -- structured dict for JSON output.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import SyncReport, SyncResult

_MARKERS = {
    "addition": "A",
    "change": "M",
    "deletion": "D",
}

# ------------------------------------------------------------------
# Human-readable report
# ------------------------------------------------------------------


def _line(result: SyncResult) -> str:
    change = result.status.change
    marker = _MARKERS[change.value] if change is not None else " "
    return f"  {marker} {result.path}"


def format_sync_report(report: SyncReport) -> str:
    """Format a sync report as human-readable text.

    Sections are only included when they contain at least one result.
    In-sync paths are summarised by count only.

    Args:
        report: The completed sync report.

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []

    lines.append(f"Sync status for '{report.profile_name}'")
    lines.append(f"Base:   {report.base}")
    lines.append(f"Remote: {report.remote}")
    lines.append(f"Local:  {report.local}")
    lines.append("")

    lines.append(
        f"{len(report.outgoing)} outgoing, "
        f"{len(report.incoming)} incoming, "
        f"{len(report.conflicting)} conflicting"
    )
    lines.append("")

    sections = [
        ("Outgoing:", report.outgoing),
        ("Incoming:", report.incoming),
        ("Conflicting:", report.conflicting),
    ]
    for title, results in sections:
        if not results:
            continue
        lines.append(title)
        lines.extend(_line(r) for r in results)
        lines.append("")

    if report.in_sync:
        lines.append(f"In sync: {len(report.in_sync)} files")
        lines.append("")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def report_to_json(report: SyncReport, include_in_sync: bool = False) -> dict:
    """Convert a sync report to a structured dict for JSON serialisation.

    Args:
        report: The sync report.
        include_in_sync: Also list results with no difference.

    Returns:
        Dict with snapshot ids, counts, and per-result details.
    """
    results_list = []
    for r in report.results:
        if r.status.in_sync and not include_in_sync:
            continue
        entry: dict = {
            "path": r.path,
            "direction": r.status.direction.value,
            "change": r.status.change.value if r.status.change else None,
        }
        for key in ("local_id", "base_id", "remote_id"):
            value = getattr(r, key)
            if value:
                entry[key] = value
        results_list.append(entry)

    return {
        "profile_name": report.profile_name,
        "base": report.base,
        "remote": report.remote,
        "local": report.local,
        "started_at": report.started_at,
        "completed_at": report.completed_at,
        "counts": {
            "total": len(report.results),
            "outgoing": len(report.outgoing),
            "incoming": len(report.incoming),
            "conflicting": len(report.conflicting),
            "in_sync": len(report.in_sync),
        },
        "results": results_list,
    }
