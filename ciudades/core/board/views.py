"""Read-side views over a cached snapshot: filtered dashboard and gallery."""

from __future__ import annotations

from pydantic import BaseModel

from ciudades.common.enums import CityResolutionMode, DueCategory, QuickFilter
from ciudades.core.board.aggregation import collation_key, compute_label_counters, compute_stats
from ciudades.core.board.schemas import (
    CityStats,
    CitySummary,
    DashboardSnapshot,
    Design,
    LabelCounter,
)


class FilteredCity(BaseModel):
    city: str
    source: CityResolutionMode
    designs: list[Design]
    stats: CityStats
    label_counters: list[LabelCounter]


class FilteredDashboard(BaseModel):
    board_id: str
    upcoming_days: int
    quick_filter: QuickFilter
    query: str
    designer_query: str
    visible_stats: CityStats
    visible_label_counters: list[LabelCounter]
    board_label_counters: list[LabelCounter]
    cities: list[FilteredCity]


class GalleryView(BaseModel):
    board_id: str
    city_options: list[str]
    selected: CitySummary | None
    totals: CityStats


def _format_value(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def search_text(city: str, design: Design) -> str:
    parts = [
        city,
        design.name,
        design.description,
        design.list_name,
        " ".join(label.name for label in design.labels),
        " ".join(f"{field.field_name} {_format_value(field.value)}" for field in design.custom_fields),
        " ".join(f"{member.full_name} {member.username}" for member in design.members),
        " ".join(design.designers),
    ]
    return " ".join(parts).lower()


def designer_search_text(design: Design) -> str:
    parts = [
        " ".join(design.designers),
        " ".join(f"{member.full_name} {member.username}" for member in design.members),
    ]
    return " ".join(parts).lower()


def matches_quick_filter(design: Design, quick_filter: QuickFilter) -> bool:
    if quick_filter == QuickFilter.ALL:
        return True
    if quick_filter == QuickFilter.UNDEFINED:
        return design.is_undefined
    return design.due_category == DueCategory(quick_filter.value)


def filter_dashboard(
    snapshot: DashboardSnapshot,
    query: str = "",
    designer_query: str = "",
    quick_filter: QuickFilter = QuickFilter.ALL,
) -> FilteredDashboard:
    needle = query.strip().lower()
    designer_needle = designer_query.strip().lower()

    cities = []
    for summary in snapshot.cities:
        designs = [
            design
            for design in summary.designs
            if matches_quick_filter(design, quick_filter)
            and (not needle or needle in search_text(summary.city, design))
            and (not designer_needle or designer_needle in designer_search_text(design))
        ]
        if not designs:
            continue
        cities.append(
            FilteredCity(
                city=summary.city,
                source=summary.source,
                designs=designs,
                stats=compute_stats(designs),
                label_counters=compute_label_counters(designs),
            )
        )

    visible = [design for city in cities for design in city.designs]
    return FilteredDashboard(
        board_id=snapshot.board_id,
        upcoming_days=snapshot.upcoming_days,
        quick_filter=quick_filter,
        query=query,
        designer_query=designer_query,
        visible_stats=compute_stats(visible),
        visible_label_counters=compute_label_counters(visible),
        board_label_counters=snapshot.label_counters,
        cities=cities,
    )


def gallery_view(snapshot: DashboardSnapshot, city: str | None = None) -> GalleryView:
    options = sorted((summary.city for summary in snapshot.cities), key=collation_key)
    wanted = city if city is not None else (snapshot.cities[0].city if snapshot.cities else None)
    selected = next((summary for summary in snapshot.cities if summary.city == wanted), None)
    return GalleryView(
        board_id=snapshot.board_id,
        city_options=options,
        selected=selected,
        totals=snapshot.totals,
    )
