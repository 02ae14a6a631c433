"""Board snapshot pipeline.

fetch (lists, custom fields, cards in parallel) -> normalize -> resolve city
-> classify -> aggregate.  The pipeline is stateless: it never touches the
cache, and every card in one run is classified against the same ``now``.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence
from datetime import datetime, timezone

from ciudades.common.enums import CityResolutionMode
from ciudades.common.logging import get_logger
from ciudades.core.board.aggregation import (
    compute_label_counters,
    group_by_city,
    sum_stats,
)
from ciudades.core.board.city import pick_city_field, resolve_city, resolve_city_mode
from ciudades.core.board.classification import classify_due, is_undefined
from ciudades.core.board.normalizers import (
    as_utc,
    extract_designers,
    infer_created_at,
    normalize_attachment,
    normalize_checklist,
    normalize_custom_fields,
    normalize_label,
    normalize_member,
    parse_timestamp,
    pick_cover_image_url,
)
from ciudades.core.board.schemas import (
    NO_LIST,
    DashboardSnapshot,
    Design,
    PipelineConfig,
    RawCard,
    RawCustomField,
    RawList,
)
from ciudades.integrations.trello import TrelloClient

logger = get_logger("board.pipeline")


def normalize_card(
    card: RawCard,
    *,
    mode: CityResolutionMode,
    list_by_id: dict[str, RawList],
    field_by_id: dict[str, RawCustomField],
    city_field: RawCustomField | None,
    config: PipelineConfig,
    now: datetime,
) -> Design:
    custom_fields = normalize_custom_fields(card.custom_field_items, field_by_id)
    created_at, created_at_source = infer_created_at(card.id)
    lst = list_by_id.get(card.id_list)

    return Design(
        id=card.id,
        name=card.name,
        description=card.desc,
        url=card.url,
        short_url=card.short_url,
        cover_image_url=pick_cover_image_url(card),
        list_id=card.id_list,
        list_name=lst.name if lst is not None else NO_LIST,
        city=resolve_city(card, mode, list_by_id, custom_fields, city_field.id if city_field else None),
        city_source=mode,
        due=parse_timestamp(card.due),
        due_complete=card.due_complete,
        due_category=classify_due(card.due, card.due_complete, config.upcoming_days, now),
        is_undefined=is_undefined(card.labels, config.undefined_label_hints),
        labels=[normalize_label(label) for label in card.labels],
        designers=extract_designers(card.members, custom_fields, config.designer_field_hints),
        member_ids=list(card.id_members),
        members=[normalize_member(member) for member in card.members],
        attachments=[normalize_attachment(attachment) for attachment in card.attachments],
        checklists=[normalize_checklist(checklist) for checklist in card.checklists],
        custom_fields=custom_fields,
        date_last_activity=parse_timestamp(card.date_last_activity),
        created_at=created_at,
        created_at_source=created_at_source,
    )


def build_snapshot(
    lists: Sequence[RawList],
    custom_fields: Sequence[RawCustomField],
    cards: Sequence[RawCard],
    config: PipelineConfig,
    now: datetime,
) -> DashboardSnapshot:
    now = as_utc(now)
    city_field = pick_city_field(custom_fields, config.city_field_name, config.city_field_tokens)
    mode = resolve_city_mode(lists, cards, city_field, config)

    list_by_id = {lst.id: lst for lst in lists}
    field_by_id = {field.id: field for field in custom_fields}

    designs = [
        normalize_card(
            card,
            mode=mode,
            list_by_id=list_by_id,
            field_by_id=field_by_id,
            city_field=city_field,
            config=config,
            now=now,
        )
        for card in cards
    ]

    cities = group_by_city(designs, mode)
    return DashboardSnapshot(
        board_id=config.board_id,
        fetched_at=now,
        city_mode_resolved=mode,
        city_field_name=city_field.name if city_field else config.city_field_name,
        upcoming_days=config.upcoming_days,
        totals=sum_stats(city.stats for city in cities),
        label_counters=compute_label_counters(designs),
        cities=cities,
    )


async def produce_pipeline_snapshot(
    client: TrelloClient,
    config: PipelineConfig,
    now: datetime | None = None,
) -> DashboardSnapshot:
    started = time.perf_counter()
    lists, custom_fields, cards = await asyncio.gather(
        client.get_lists(config.board_id),
        client.get_custom_fields(config.board_id),
        client.get_cards(config.board_id),
    )

    snapshot = build_snapshot(
        lists,
        custom_fields,
        cards,
        config,
        now or datetime.now(timezone.utc),
    )
    logger.info(
        "Built snapshot for board %s: %d designs in %d cities (mode=%s) in %.0fms",
        config.board_id,
        snapshot.totals.total,
        len(snapshot.cities),
        snapshot.city_mode_resolved.value,
        (time.perf_counter() - started) * 1000,
    )
    return snapshot
