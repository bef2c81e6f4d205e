"""Rendering of diff reports into explanation text."""

from __future__ import annotations

from typing import Iterable

from .models import DiffEntry, DiffKind, DiffReport


def format_entry(entry: DiffEntry) -> str:
    return entry.describe()


def format_report(report: DiffReport | Iterable[DiffEntry], separator: str = "\n") -> str:
    """
    Render report entries in traversal order.

    Lines look like:
        modified: val: 0.9 -> 1
        added: name: "foo"
        removed: more[1]: { num: 20 }
    """
    return separator.join(format_entry(entry) for entry in report)


def render_summary(report: DiffReport) -> str:
    """One-line count of entries per kind."""
    counts = {kind: 0 for kind in DiffKind}
    for entry in report:
        counts[entry.kind] += 1
    status = "match" if report.is_match else "mismatch"
    return (
        f"{status}: modified={counts[DiffKind.MODIFIED]} "
        f"added={counts[DiffKind.ADDED]} removed={counts[DiffKind.REMOVED]}"
    )
