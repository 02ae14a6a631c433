from datetime import datetime, timedelta, timezone

from ciudades.common.enums import CityResolutionMode, CreatedAtSource, DueCategory
from ciudades.core.board.aggregation import (
    compute_label_counters,
    compute_stats,
    group_by_city,
    sort_designs,
    sum_stats,
)
from ciudades.core.board.schemas import Design, Label

BASE = datetime(2024, 6, 1, tzinfo=timezone.utc)


def _design(name, *, city="Madrid", due_days=None, category=DueCategory.NONE, undefined=False, labels=()):
    due = BASE + timedelta(days=due_days) if due_days is not None else None
    if due is None and category == DueCategory.NONE:
        category = DueCategory.NO_DUE
    return Design(
        id=name,
        name=name,
        description="",
        url="",
        short_url="",
        cover_image_url=None,
        list_id="l1",
        list_name="Doing",
        city=city,
        city_source=CityResolutionMode.LIST,
        due=due,
        due_complete=False,
        due_category=category,
        is_undefined=undefined,
        labels=list(labels),
        designers=[],
        member_ids=[],
        members=[],
        attachments=[],
        checklists=[],
        custom_fields=[],
        date_last_activity=None,
        created_at=None,
        created_at_source=CreatedAtSource.UNKNOWN,
    )


def test_sort_designs_due_then_name_nulls_last():
    designs = [
        _design("zeta"),
        _design("beta", due_days=3),
        _design("alpha", due_days=3),
        _design("Ábaco"),
        _design("gamma", due_days=-2),
    ]
    ordered = [d.name for d in sort_designs(designs)]
    assert ordered == ["gamma", "alpha", "beta", "Ábaco", "zeta"]
    assert [d.name for d in sort_designs(sort_designs(designs))] == ordered


def test_compute_stats_single_pass():
    stats = compute_stats(
        [
            _design("a", due_days=-1, category=DueCategory.OVERDUE, undefined=True),
            _design("b", due_days=2, category=DueCategory.UPCOMING),
            _design("c"),
            _design("d", due_days=40),
        ]
    )
    assert (stats.total, stats.overdue, stats.upcoming, stats.no_due, stats.undefined_count) == (4, 1, 1, 1, 1)


def test_label_counters_merge_by_id_and_sort():
    red = Label(id="lb1", name="Urgente", color="red")
    red_renamed = Label(id="lb1", name="Urgente!", color="red")
    anon_a = Label(id="", name="Revisión", color="blue")
    anon_b = Label(id="", name=" revision ", color="blue")
    blank = Label(id="lb3", name="  ", color=None)

    counters = compute_label_counters(
        [
            _design("a", labels=[red, anon_a]),
            _design("b", labels=[red_renamed, anon_b, blank]),
            _design("c", labels=[red]),
        ]
    )

    assert [(c.key, c.name, c.count) for c in counters] == [
        ("lb1", "Urgente", 3),
        ("revision|blue", "Revisión", 2),
        ("lb3", "Sin nombre", 1),
    ]


def test_group_by_city_sorted_and_totals_consistent():
    designs = [
        _design("a", city="Valencia", due_days=-1, category=DueCategory.OVERDUE),
        _design("b", city="Ávila"),
        _design("c", city="Bilbao", due_days=1, category=DueCategory.UPCOMING, undefined=True),
        _design("d", city="Valencia"),
    ]
    cities = group_by_city(designs, CityResolutionMode.LIST)

    assert [c.city for c in cities] == ["Ávila", "Bilbao", "Valencia"]
    assert all(c.designs for c in cities)
    assert sum(len(c.designs) for c in cities) == len(designs)
    assert sum_stats(c.stats for c in cities) == compute_stats(designs)
