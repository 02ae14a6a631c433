"""Pydantic models for the board dashboard pipeline.

Two families live here:

* ``Raw*`` models decode the loosely-typed JSON returned by the Trello REST
  API.  Unknown keys are ignored, ``null`` strings and collections collapse to
  empty defaults, so nothing downstream has to deal with ``None`` where an
  empty value means the same thing.
* Output models (``Design``, ``CitySummary``, ``DashboardSnapshot`` ...) are
  frozen; a snapshot is never mutated after the pipeline produces it.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, BeforeValidator, Field

from ciudades.common.enums import (
    CityMode,
    CityResolutionMode,
    CreatedAtSource,
    DueCategory,
)

NO_CITY = "Sin ciudad"
NO_LIST = "Sin lista"
UNNAMED_LABEL = "Sin nombre"

WORKFLOW_LIST_HINTS: tuple[str, ...] = (
    "backlog",
    "todo",
    "to do",
    "doing",
    "done",
    "review",
    "qa",
    "pendiente",
    "en progreso",
    "hecho",
    "bloqueado",
)

UNDEFINED_LABEL_HINTS: tuple[str, ...] = (
    "indefinido",
    "indefinida",
    "undefined",
    "sin definir",
)

DESIGNER_FIELD_HINTS: tuple[str, ...] = (
    "disenador",
    "designer",
    "autor",
    "author",
    "artista",
    "illustrator",
)

CITY_FIELD_TOKENS: tuple[str, ...] = ("ciudad", "city")


def _empty_str(value: Any) -> Any:
    return "" if value is None else value


def _empty_list(value: Any) -> Any:
    return [] if value is None else value


def _false(value: Any) -> Any:
    return False if value is None else value


Text = Annotated[str, BeforeValidator(_empty_str)]
Flag = Annotated[bool, BeforeValidator(_false)]

CustomFieldScalar = str | int | float | bool | None


# ---------------------------------------------------------------------------
# Configuration threaded into the pipeline
# ---------------------------------------------------------------------------


class PipelineConfig(BaseModel):
    board_id: str
    city_mode: CityMode = CityMode.AUTO
    city_field_name: str = "Ciudad"
    upcoming_days: int = Field(7, gt=0, le=60)
    workflow_list_hints: tuple[str, ...] = WORKFLOW_LIST_HINTS
    undefined_label_hints: tuple[str, ...] = UNDEFINED_LABEL_HINTS
    designer_field_hints: tuple[str, ...] = DESIGNER_FIELD_HINTS
    city_field_tokens: tuple[str, ...] = CITY_FIELD_TOKENS

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Raw Trello payloads
# ---------------------------------------------------------------------------


class _RawModel(BaseModel):
    model_config = {"extra": "ignore", "populate_by_name": True}


class RawList(_RawModel):
    id: str
    name: Text = ""
    closed: Flag = False
    pos: float = 0


class RawCustomFieldOption(_RawModel):
    id: str
    value: Annotated[dict[str, Any], BeforeValidator(lambda v: {} if v is None else v)] = {}

    @property
    def text(self) -> str | None:
        text = self.value.get("text")
        return text if isinstance(text, str) else None


class RawCustomField(_RawModel):
    id: str
    name: Text = ""
    type: Text = "unknown"
    options: Annotated[list[RawCustomFieldOption], BeforeValidator(_empty_list)] = []


class RawCustomFieldItem(_RawModel):
    id_custom_field: str = Field(alias="idCustomField")
    id_value: str | None = Field(None, alias="idValue")
    value: dict[str, Any] | None = None


class RawLabel(_RawModel):
    id: Text = ""
    name: Text = ""
    color: str | None = None


class RawMember(_RawModel):
    id: str
    full_name: Text = Field("", alias="fullName")
    username: Text = ""


class RawAttachment(_RawModel):
    id: str
    name: Text = ""
    url: Text = ""
    mime_type: str | None = Field(None, alias="mimeType")


class RawCheckItem(_RawModel):
    id: str
    name: Text = ""
    state: Literal["complete", "incomplete"] = "incomplete"
    due: str | None = None
    due_complete: Flag = Field(False, alias="dueComplete")
    id_member: str | None = Field(None, alias="idMember")
    pos: float = 0


class RawChecklist(_RawModel):
    id: str
    name: Text = ""
    check_items: Annotated[list[RawCheckItem], BeforeValidator(_empty_list)] = Field(
        [], alias="checkItems"
    )


class RawCard(_RawModel):
    id: str
    name: Text = ""
    desc: Text = ""
    short_url: Text = Field("", alias="shortUrl")
    url: Text = ""
    id_attachment_cover: str | None = Field(None, alias="idAttachmentCover")
    id_list: Text = Field("", alias="idList")
    labels: Annotated[list[RawLabel], BeforeValidator(_empty_list)] = []
    id_members: Annotated[list[str], BeforeValidator(_empty_list)] = Field([], alias="idMembers")
    members: Annotated[list[RawMember], BeforeValidator(_empty_list)] = []
    due: str | None = None
    due_complete: Flag = Field(False, alias="dueComplete")
    attachments: Annotated[list[RawAttachment], BeforeValidator(_empty_list)] = []
    checklists: Annotated[list[RawChecklist], BeforeValidator(_empty_list)] = []
    custom_field_items: Annotated[list[RawCustomFieldItem], BeforeValidator(_empty_list)] = Field(
        [], alias="customFieldItems"
    )
    date_last_activity: str | None = Field(None, alias="dateLastActivity")


# ---------------------------------------------------------------------------
# Normalized output
# ---------------------------------------------------------------------------


class _Frozen(BaseModel):
    model_config = {"frozen": True}


class Label(_Frozen):
    id: str
    name: str
    color: str | None = None


class Member(_Frozen):
    id: str
    full_name: str
    username: str


class Attachment(_Frozen):
    id: str
    name: str
    url: str


class CheckItem(_Frozen):
    id: str
    name: str
    state: Literal["complete", "incomplete"]
    due: datetime | None
    due_complete: bool
    member_id: str | None
    pos: float


class Checklist(_Frozen):
    id: str
    name: str
    items: list[CheckItem]


class CustomFieldValue(_Frozen):
    field_id: str
    field_name: str
    field_type: str
    value: CustomFieldScalar
    raw_value: Any = None


class Design(_Frozen):
    id: str
    name: str
    description: str
    url: str
    short_url: str
    cover_image_url: str | None
    list_id: str
    list_name: str
    city: str
    city_source: CityResolutionMode
    due: datetime | None
    due_complete: bool
    due_category: DueCategory
    is_undefined: bool
    labels: list[Label]
    designers: list[str]
    member_ids: list[str]
    members: list[Member]
    attachments: list[Attachment]
    checklists: list[Checklist]
    custom_fields: list[CustomFieldValue]
    date_last_activity: datetime | None
    created_at: datetime | None
    created_at_source: CreatedAtSource


class CityStats(_Frozen):
    total: int = 0
    overdue: int = 0
    upcoming: int = 0
    no_due: int = 0
    undefined_count: int = 0


class LabelCounter(_Frozen):
    key: str
    name: str
    color: str | None
    count: int


class CitySummary(_Frozen):
    city: str
    source: CityResolutionMode
    designs: list[Design]
    label_counters: list[LabelCounter]
    stats: CityStats


class DashboardSnapshot(_Frozen):
    board_id: str
    fetched_at: datetime
    city_mode_resolved: CityResolutionMode
    city_field_name: str
    upcoming_days: int
    totals: CityStats
    label_counters: list[LabelCounter]
    cities: list[CitySummary]
