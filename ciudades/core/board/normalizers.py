"""Convert raw Trello payloads into the pipeline's internal shapes.

Everything in here is defensive about malformed values: an unparseable date
or custom field falls back to ``None`` instead of failing the whole snapshot.
"""

from __future__ import annotations

import math
import re
import unicodedata
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone

from ciudades.common.enums import CreatedAtSource
from ciudades.core.board.schemas import (
    Attachment,
    CheckItem,
    Checklist,
    CustomFieldScalar,
    CustomFieldValue,
    Label,
    Member,
    RawAttachment,
    RawCard,
    RawChecklist,
    RawCustomField,
    RawCustomFieldItem,
    RawLabel,
    RawMember,
)

_IMAGE_EXTENSION = re.compile(r"\.(png|jpe?g|gif|webp|avif|bmp|svg)(?:\?|$)", re.IGNORECASE)
_DESIGNER_SEPARATORS = re.compile(r"[;,/|]")
_HEX_PREFIX = re.compile(r"^[0-9a-fA-F]+")


def normalize_name(value: str) -> str:
    return value.strip().lower()


def normalize_token(value: str) -> str:
    """Lowercase, trim and strip diacritics (``"Diseñador"`` -> ``"disenador"``)."""
    decomposed = unicodedata.normalize("NFD", normalize_name(value))
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def matches_any_hint(value: str, hints: Iterable[str]) -> bool:
    normalized = normalize_token(value)
    return any(normalize_token(hint) in normalized for hint in hints)


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    candidate = value.strip()
    if candidate.endswith(("Z", "z")):
        candidate = candidate[:-1] + "+00:00"
    try:
        return as_utc(datetime.fromisoformat(candidate))
    except (ValueError, OverflowError):
        return None


def infer_created_at(card_id: str) -> tuple[datetime | None, CreatedAtSource]:
    """Trello ids are Mongo ObjectIds: the first 8 hex chars are Unix seconds."""
    match = _HEX_PREFIX.match(card_id[:8])
    if not match:
        return None, CreatedAtSource.UNKNOWN
    try:
        created = datetime.fromtimestamp(int(match.group(0), 16), tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None, CreatedAtSource.UNKNOWN
    return created, CreatedAtSource.CARD_ID


# ---------------------------------------------------------------------------
# Custom fields
# ---------------------------------------------------------------------------


def _parse_number(raw: str) -> CustomFieldScalar:
    try:
        number = float(raw)
    except ValueError:
        return raw
    if not math.isfinite(number):
        return raw
    return int(number) if number.is_integer() else number


def decode_custom_field_value(
    field: RawCustomField | None, item: RawCustomFieldItem
) -> CustomFieldScalar:
    if field is not None and field.type == "list":
        for option in field.options:
            if option.id == item.id_value and option.text is not None:
                return option.text
        return item.id_value

    raw = item.value or {}
    text = raw.get("text")
    if isinstance(text, str):
        return text
    number = raw.get("number")
    if isinstance(number, str):
        return _parse_number(number)
    date = raw.get("date")
    if isinstance(date, str):
        return date
    checked = raw.get("checked")
    if isinstance(checked, str):
        return checked == "true"
    return None


def normalize_custom_fields(
    items: Iterable[RawCustomFieldItem], field_by_id: Mapping[str, RawCustomField]
) -> list[CustomFieldValue]:
    values = []
    for item in items:
        field = field_by_id.get(item.id_custom_field)
        values.append(
            CustomFieldValue(
                field_id=item.id_custom_field,
                field_name=field.name if field else item.id_custom_field,
                field_type=field.type if field else "unknown",
                value=decode_custom_field_value(field, item),
                raw_value=item.value if item.value is not None else item.id_value,
            )
        )
    return values


# ---------------------------------------------------------------------------
# Attachments, members, labels, checklists
# ---------------------------------------------------------------------------


def looks_like_image(attachment: RawAttachment) -> bool:
    if attachment.mime_type and attachment.mime_type.startswith("image/"):
        return True
    return bool(_IMAGE_EXTENSION.search(f"{attachment.name} {attachment.url}"))


def pick_cover_image_url(card: RawCard) -> str | None:
    if card.id_attachment_cover:
        for attachment in card.attachments:
            if attachment.id == card.id_attachment_cover:
                if looks_like_image(attachment):
                    return attachment.url
                break

    for attachment in card.attachments:
        if looks_like_image(attachment):
            return attachment.url
    return None


def normalize_label(label: RawLabel) -> Label:
    return Label(id=label.id, name=label.name, color=label.color)


def normalize_member(member: RawMember) -> Member:
    return Member(id=member.id, full_name=member.full_name, username=member.username)


def normalize_attachment(attachment: RawAttachment) -> Attachment:
    return Attachment(id=attachment.id, name=attachment.name, url=attachment.url)


def normalize_checklist(checklist: RawChecklist) -> Checklist:
    items = sorted(checklist.check_items, key=lambda item: item.pos)
    return Checklist(
        id=checklist.id,
        name=checklist.name,
        items=[
            CheckItem(
                id=item.id,
                name=item.name,
                state=item.state,
                due=parse_timestamp(item.due),
                due_complete=item.due_complete,
                member_id=item.id_member,
                pos=item.pos,
            )
            for item in items
        ],
    )


# ---------------------------------------------------------------------------
# Designers
# ---------------------------------------------------------------------------


def unique_non_empty(values: Iterable[str]) -> list[str]:
    seen: dict[str, None] = {}
    for value in values:
        cleaned = value.strip()
        if cleaned and cleaned not in seen:
            seen[cleaned] = None
    return list(seen)


def extract_designers(
    members: Iterable[RawMember],
    custom_fields: Iterable[CustomFieldValue],
    hints: Iterable[str],
) -> list[str]:
    """Assigned members first, then any designer-like custom field values."""
    hints = tuple(hints)
    names = [member.full_name or member.username for member in members]

    for field in custom_fields:
        if not matches_any_hint(field.field_name, hints):
            continue
        value = field.value
        if isinstance(value, str):
            names.extend(_DESIGNER_SEPARATORS.split(value))
        elif isinstance(value, bool):
            names.append(str(value).lower())
        elif isinstance(value, (int, float)):
            names.append(str(value))

    return unique_non_empty(names)
