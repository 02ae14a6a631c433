from __future__ import annotations

import unicodedata
from collections.abc import Iterable, Sequence

from ciudades.common.enums import CityResolutionMode, DueCategory
from ciudades.core.board.normalizers import normalize_token
from ciudades.core.board.schemas import (
    UNNAMED_LABEL,
    CityStats,
    CitySummary,
    Design,
    LabelCounter,
)


def collation_key(text: str) -> tuple[str, str]:
    """Approximate locale-aware ordering: accents and case only break ties."""
    decomposed = unicodedata.normalize("NFD", text)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return base.casefold(), text


def _design_sort_key(design: Design) -> tuple[bool, float, tuple[str, str]]:
    # (has_no_due, due, name): designs without a due date go last
    if design.due is None:
        return True, 0.0, collation_key(design.name)
    return False, design.due.timestamp(), collation_key(design.name)


def sort_designs(designs: Iterable[Design]) -> list[Design]:
    return sorted(designs, key=_design_sort_key)


def compute_stats(designs: Iterable[Design]) -> CityStats:
    total = overdue = upcoming = no_due = undefined = 0
    for design in designs:
        total += 1
        if design.due_category == DueCategory.OVERDUE:
            overdue += 1
        elif design.due_category == DueCategory.UPCOMING:
            upcoming += 1
        elif design.due_category == DueCategory.NO_DUE:
            no_due += 1
        if design.is_undefined:
            undefined += 1
    return CityStats(
        total=total,
        overdue=overdue,
        upcoming=upcoming,
        no_due=no_due,
        undefined_count=undefined,
    )


def sum_stats(stats: Iterable[CityStats]) -> CityStats:
    total = overdue = upcoming = no_due = undefined = 0
    for item in stats:
        total += item.total
        overdue += item.overdue
        upcoming += item.upcoming
        no_due += item.no_due
        undefined += item.undefined_count
    return CityStats(
        total=total,
        overdue=overdue,
        upcoming=upcoming,
        no_due=no_due,
        undefined_count=undefined,
    )


def label_key(label_id: str, name: str, color: str | None) -> str:
    if label_id:
        return label_id
    return f"{normalize_token(name)}|{color or 'none'}"


def compute_label_counters(designs: Iterable[Design]) -> list[LabelCounter]:
    counts: dict[str, int] = {}
    first_seen: dict[str, tuple[str, str | None]] = {}

    for design in designs:
        for label in design.labels:
            key = label_key(label.id, label.name, label.color)
            counts[key] = counts.get(key, 0) + 1
            if key not in first_seen:
                first_seen[key] = (label.name.strip() or UNNAMED_LABEL, label.color)

    counters = [
        LabelCounter(key=key, name=first_seen[key][0], color=first_seen[key][1], count=count)
        for key, count in counts.items()
    ]
    counters.sort(key=lambda counter: (-counter.count, collation_key(counter.name)))
    return counters


def group_by_city(designs: Sequence[Design], source: CityResolutionMode) -> list[CitySummary]:
    grouped: dict[str, list[Design]] = {}
    for design in designs:
        grouped.setdefault(design.city, []).append(design)

    summaries = []
    for city, members in grouped.items():
        ordered = sort_designs(members)
        summaries.append(
            CitySummary(
                city=city,
                source=source,
                designs=ordered,
                label_counters=compute_label_counters(ordered),
                stats=compute_stats(ordered),
            )
        )
    summaries.sort(key=lambda summary: collation_key(summary.city))
    return summaries
