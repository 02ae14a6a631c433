"""City resolution: decide how a board encodes "city" and apply it per card.

A board can carry the city in three places: the list a card sits in, a
custom field, or the card's first named label.  The mode is decided once per
board per run, either from configuration (validated up front) or by
auto-detection.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Sequence

from ciudades.common.enums import CityMode, CityResolutionMode
from ciudades.common.logging import get_logger
from ciudades.core.board.normalizers import (
    decode_custom_field_value,
    matches_any_hint,
    normalize_name,
)
from ciudades.core.board.schemas import (
    NO_CITY,
    CustomFieldScalar,
    CustomFieldValue,
    PipelineConfig,
    RawCard,
    RawCustomField,
    RawList,
)

logger = get_logger("board.city")


class CityResolutionError(ValueError):
    """The board's structure cannot support the requested city resolution."""


class CityModeConfigError(CityResolutionError):
    pass


class CityModeAmbiguousError(CityResolutionError):
    pass


def pick_city_field(
    fields: Iterable[RawCustomField],
    configured_name: str,
    tokens: Iterable[str],
) -> RawCustomField | None:
    fields = list(fields)
    wanted = normalize_name(configured_name)
    for field in fields:
        if normalize_name(field.name) == wanted:
            return field

    tokens = tuple(tokens)
    for field in fields:
        normalized = normalize_name(field.name)
        if any(token in normalized for token in tokens):
            return field
    return None


def looks_like_workflow_list(name: str, hints: Iterable[str]) -> bool:
    return matches_any_hint(name, hints)


def city_from_value(value: CustomFieldScalar) -> str | None:
    if isinstance(value, str):
        cleaned = value.strip()
        return cleaned or None
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return str(value)
    return None


def _has_named_labels(cards: Iterable[RawCard]) -> bool:
    return any(normalize_name(label.name) for card in cards for label in card.labels)


def _has_city_field_values(cards: Iterable[RawCard], city_field: RawCustomField | None) -> bool:
    if city_field is None:
        return False
    for card in cards:
        for item in card.custom_field_items:
            if item.id_custom_field != city_field.id:
                continue
            if city_from_value(decode_custom_field_value(city_field, item)) is not None:
                return True
    return False


def resolve_city_mode(
    lists: Sequence[RawList],
    cards: Sequence[RawCard],
    city_field: RawCustomField | None,
    config: PipelineConfig,
) -> CityResolutionMode:
    mode = config.city_mode

    if mode == CityMode.LIST:
        if not lists:
            raise CityModeConfigError("city mode 'list' is configured but the board has no open lists")
        return CityResolutionMode.LIST

    if mode == CityMode.CUSTOM_FIELD:
        if city_field is None:
            raise CityModeConfigError(
                f"city mode 'customField' is configured but the board has no "
                f"custom field named '{config.city_field_name}'"
            )
        return CityResolutionMode.CUSTOM_FIELD

    if mode == CityMode.LABEL:
        if not _has_named_labels(cards):
            raise CityModeConfigError("city mode 'label' is configured but no card carries a named label")
        return CityResolutionMode.LABEL

    workflow_like = sum(
        1 for lst in lists if looks_like_workflow_list(lst.name, config.workflow_list_hints)
    )
    mostly_workflow = bool(lists) and workflow_like >= math.ceil(len(lists) / 2)
    logger.debug(
        "Auto city mode: %d/%d workflow-like lists, city field=%s",
        workflow_like,
        len(lists),
        city_field.name if city_field else None,
    )

    if lists and not mostly_workflow:
        return CityResolutionMode.LIST
    if _has_city_field_values(cards, city_field):
        return CityResolutionMode.CUSTOM_FIELD
    if _has_named_labels(cards):
        return CityResolutionMode.LABEL
    if lists:
        return CityResolutionMode.LIST
    if city_field is not None:
        return CityResolutionMode.CUSTOM_FIELD

    raise CityModeAmbiguousError(
        "Could not detect how this board encodes the city; "
        "set CITY_MODE to 'list', 'customField' or 'label'"
    )


def resolve_city(
    card: RawCard,
    mode: CityResolutionMode,
    list_by_id: Mapping[str, RawList],
    custom_fields: Iterable[CustomFieldValue],
    city_field_id: str | None,
) -> str:
    if mode == CityResolutionMode.LIST:
        lst = list_by_id.get(card.id_list)
        return lst.name if lst is not None and lst.name.strip() else NO_CITY

    if mode == CityResolutionMode.CUSTOM_FIELD:
        for field in custom_fields:
            if field.field_id == city_field_id:
                return city_from_value(field.value) or NO_CITY
        return NO_CITY

    for label in card.labels:
        if normalize_name(label.name):
            return label.name.strip()
    return NO_CITY
