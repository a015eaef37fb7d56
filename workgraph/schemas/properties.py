"""
Property bag schema: one tagged model per property kind.

Raw property payloads arrive as {"id": ..., "type": "<kind>", "<kind>": payload}.
parse_property dispatches on the "type" tag; kinds we do not model, and
payloads whose shape does not match their tag, become OtherProperty instead of
being trusted. Malformed list entries (text runs, options, people, relation
refs) are dropped during parsing.
"""
import logging
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

logger = logging.getLogger(__name__)


class PropertyKind(str, Enum):
    TITLE = "title"
    RICH_TEXT = "rich_text"
    SELECT = "select"
    STATUS = "status"
    MULTI_SELECT = "multi_select"
    NUMBER = "number"
    DATE = "date"
    PEOPLE = "people"
    RELATION = "relation"
    OTHER = "other"


# ===== Payload pieces =====

class TextRun(BaseModel):
    model_config = ConfigDict(extra="ignore")
    plain_text: str


class SelectOption(BaseModel):
    model_config = ConfigDict(extra="ignore")
    name: str


class DateRange(BaseModel):
    model_config = ConfigDict(extra="ignore")
    start: Optional[str] = None
    end: Optional[str] = None


class PersonDetails(BaseModel):
    model_config = ConfigDict(extra="ignore")
    email: Optional[str] = None


class PersonRef(BaseModel):
    model_config = ConfigDict(extra="ignore")
    id: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    person: Optional[PersonDetails] = None


class RelationRef(BaseModel):
    model_config = ConfigDict(extra="ignore")
    id: str


def _keep_valid(model, entries: Any) -> list:
    """Validate each list entry against `model`, silently dropping bad ones."""
    if not isinstance(entries, list):
        return []
    kept = []
    for entry in entries:
        if isinstance(entry, model):
            kept.append(entry)
            continue
        try:
            kept.append(model.model_validate(entry))
        except ValidationError:
            continue
    return kept


# ===== Property kinds =====

class _PropertyBase(BaseModel):
    model_config = ConfigDict(extra="ignore")
    id: Optional[str] = None


class TitleProperty(_PropertyBase):
    type: Literal["title"] = "title"
    title: List[TextRun] = Field(default_factory=list)

    @field_validator("title", mode="before")
    @classmethod
    def _drop_bad_runs(cls, value):
        return _keep_valid(TextRun, value)


class RichTextProperty(_PropertyBase):
    type: Literal["rich_text"] = "rich_text"
    rich_text: List[TextRun] = Field(default_factory=list)

    @field_validator("rich_text", mode="before")
    @classmethod
    def _drop_bad_runs(cls, value):
        return _keep_valid(TextRun, value)


class SelectProperty(_PropertyBase):
    type: Literal["select"] = "select"
    select: Optional[SelectOption] = None


class StatusProperty(_PropertyBase):
    type: Literal["status"] = "status"
    status: Optional[SelectOption] = None


class MultiSelectProperty(_PropertyBase):
    type: Literal["multi_select"] = "multi_select"
    multi_select: List[SelectOption] = Field(default_factory=list)

    @field_validator("multi_select", mode="before")
    @classmethod
    def _drop_bad_options(cls, value):
        return _keep_valid(SelectOption, value)


class NumberProperty(_PropertyBase):
    type: Literal["number"] = "number"
    number: Optional[float] = None


class DateProperty(_PropertyBase):
    type: Literal["date"] = "date"
    date: Optional[DateRange] = None


class PeopleProperty(_PropertyBase):
    type: Literal["people"] = "people"
    people: List[PersonRef] = Field(default_factory=list)

    @field_validator("people", mode="before")
    @classmethod
    def _drop_bad_people(cls, value):
        return _keep_valid(PersonRef, value)


class RelationProperty(_PropertyBase):
    type: Literal["relation"] = "relation"
    relation: List[RelationRef] = Field(default_factory=list)

    @field_validator("relation", mode="before")
    @classmethod
    def _drop_bad_refs(cls, value):
        return _keep_valid(RelationRef, value)


class OtherProperty(_PropertyBase):
    """Any kind we do not extract from (formula, checkbox, url, ...)."""
    type: Literal["other"] = "other"
    source_type: Optional[str] = None


PropertyValue = Annotated[
    Union[
        TitleProperty,
        RichTextProperty,
        SelectProperty,
        StatusProperty,
        MultiSelectProperty,
        NumberProperty,
        DateProperty,
        PeopleProperty,
        RelationProperty,
        OtherProperty,
    ],
    Field(discriminator="type"),
]

_property_adapter = TypeAdapter(PropertyValue)
_KNOWN_KINDS = {k.value for k in PropertyKind if k is not PropertyKind.OTHER}


def parse_property(raw: Any) -> PropertyValue:
    """Parse one raw property payload into its tagged model."""
    if isinstance(raw, _PropertyBase):
        return raw
    if not isinstance(raw, dict):
        return OtherProperty(source_type=type(raw).__name__)

    kind = raw.get("type")
    if kind not in _KNOWN_KINDS:
        return OtherProperty(id=raw.get("id") if isinstance(raw.get("id"), str) else None,
                             source_type=kind if isinstance(kind, str) else None)

    try:
        return _property_adapter.validate_python(raw)
    except ValidationError as e:
        logger.debug(f"parse_property: '{kind}' payload rejected: {e.error_count()} errors")
        return OtherProperty(id=raw.get("id") if isinstance(raw.get("id"), str) else None, source_type=kind)


def parse_bag(raw_bag: Dict[str, Any]) -> Dict[str, PropertyValue]:
    """Parse a whole property bag, preserving its iteration order."""
    return {str(name): parse_property(value) for name, value in raw_bag.items()}


# ===== External record =====

class ExternalRecord(BaseModel):
    """One record as delivered by a source, with its property bag parsed."""
    id: str
    url: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    properties: Optional[Dict[str, PropertyValue]] = None

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "ExternalRecord":
        """
        Build a record from the inbound source contract.

        Accepts either the upstream field names (created_time/last_edited_time)
        or the normalized ones (createdAt/updatedAt). A missing or non-dict
        property bag yields properties=None.
        """
        if not isinstance(raw, dict):
            raise ValueError(f"Record must be an object, got {type(raw).__name__}")

        record_id = raw.get("id")
        if not isinstance(record_id, str) or not record_id:
            raise ValueError("Record has no id")

        bag = raw.get("properties")
        return cls(
            id=record_id,
            url=raw.get("url"),
            created_at=raw.get("created_time") or raw.get("createdAt"),
            updated_at=raw.get("last_edited_time") or raw.get("updatedAt"),
            properties=parse_bag(bag) if isinstance(bag, dict) else None,
        )
