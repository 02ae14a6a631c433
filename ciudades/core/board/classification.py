from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta

from ciudades.common.enums import DueCategory
from ciudades.core.board.normalizers import as_utc, matches_any_hint, parse_timestamp
from ciudades.core.board.schemas import RawLabel


def classify_due(
    due: str | None,
    due_complete: bool,
    upcoming_days: int,
    now: datetime,
) -> DueCategory:
    """Bucket a due date against a single ``now`` captured per pipeline run.

    Completed cards are never overdue or upcoming, whatever their date.
    """
    if not due:
        return DueCategory.NO_DUE

    due_at = parse_timestamp(due)
    if due_at is None:
        return DueCategory.NONE

    if due_complete:
        return DueCategory.NONE
    now = as_utc(now)
    if due_at < now:
        return DueCategory.OVERDUE
    if due_at <= now + timedelta(days=upcoming_days):
        return DueCategory.UPCOMING
    return DueCategory.NONE


def is_undefined_label(label: RawLabel, hints: Iterable[str]) -> bool:
    return matches_any_hint(label.name, hints)


def is_undefined(labels: Iterable[RawLabel], hints: Iterable[str]) -> bool:
    hints = tuple(hints)
    return any(is_undefined_label(label, hints) for label in labels)
