"""
Property mapping configuration.

MappingConfig names the physical property that backs each of the 8 logical
fields. Sources may override any subset; the effective mapping is the defaults
with the overrides merged on top. DEFAULT_ALIASES lists the alternative names
tried when neither an exact nor a case-insensitive match exists.
"""
import logging
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from workgraph.core.identifiers import build_scope_key, normalize_uuid

logger = logging.getLogger(__name__)


LOGICAL_FIELDS = (
    "title", "status", "priority", "owner", "parent", "progress", "due_date", "tags",
)


# ===== Alias table =====

DEFAULT_ALIASES: Dict[str, List[str]] = {
    "Status": ["Status", "State", "Stage", "Phase"],
    "Priority": ["Priority", "Importance", "Urgency", "Level", "P"],
    "Parent": [
        "Parent",
        "Parent Item",
        "Parent Task",
        "Parent Problem",
        "Parent Solution",
        "Parent Project",
        "Parent Mission",
        "Parent Objective",
        "Parent Design",
        "Belongs To",
        "Part Of",
        "Epic",
        "Initiative",
        "Objective",
    ],
    "Owner": [
        "Owner",
        "Assignee",
        "Assigned To",
        "Responsible",
        "Lead",
        "Person",
        "People",
        "Assigned",
    ],
    "Progress": ["Progress", "Completion", "Percent Complete", "% Complete", "Done %"],
    "Deadline": ["Deadline", "Due Date", "Due", "Target Date", "End Date", "Finish Date", "Due By"],
    "Tags": ["Tags", "Labels", "Categories", "Keywords"],
}


# ===== Pydantic Models =====

class MappingConfig(BaseModel):
    """Logical field -> physical property name."""
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    title: str = "Name"
    status: str = "Status"
    priority: str = "Priority"
    owner: str = "Owner"
    parent: str = "Parent"
    progress: str = "Progress"
    due_date: str = Field("Deadline", alias="dueDate")
    tags: str = "Tags"

    def merged(self, overrides: Optional[Dict[str, str]] = None) -> "MappingConfig":
        """Return the effective mapping: these defaults with `overrides` on top."""
        if not overrides:
            return self

        update: Dict[str, str] = {}
        for key, value in overrides.items():
            field = "due_date" if key == "dueDate" else key
            if field not in LOGICAL_FIELDS:
                raise ValueError(f"Unknown logical field in mapping override: {key}")
            if isinstance(value, str) and value.strip():
                update[field] = value.strip()

        return self.model_copy(update=update)


class SourceConfig(BaseModel):
    """One upstream source (database) and the type tag its records receive."""
    source_id: str
    type_tag: str
    mappings: Optional[Dict[str, str]] = None

    @field_validator("source_id")
    @classmethod
    def _normalize_source_id(cls, value: str) -> str:
        value = (value or "").strip()
        if not value:
            raise ValueError("source_id must not be empty")
        return normalize_uuid(value)

    @field_validator("type_tag")
    @classmethod
    def _check_type_tag(cls, value: str) -> str:
        value = (value or "").strip()
        if not value:
            raise ValueError("type_tag must not be empty")
        return value

    @field_validator("mappings")
    @classmethod
    def _check_mapping_keys(cls, value: Optional[Dict[str, str]]) -> Optional[Dict[str, str]]:
        if not value:
            return value
        unknown = sorted(k for k in value if ("due_date" if k == "dueDate" else k) not in LOGICAL_FIELDS)
        if unknown:
            raise ValueError(f"Unknown logical field(s) in mapping override: {', '.join(unknown)}")
        return value


class WorkspaceConfig(BaseModel):
    """Everything the ingestion pipeline needs to know about a workspace."""
    default_mappings: MappingConfig = Field(default_factory=MappingConfig)
    aliases: Dict[str, List[str]] = Field(default_factory=lambda: {k: list(v) for k, v in DEFAULT_ALIASES.items()})
    sources: List[SourceConfig] = Field(default_factory=list)

    def mapping_for(self, source: SourceConfig) -> MappingConfig:
        return self.default_mappings.merged(source.mappings)

    def source_for_type(self, type_tag: str) -> Optional[SourceConfig]:
        for source in self.sources:
            if source.type_tag == type_tag:
                return source
        return None

    def scope_key(self) -> str:
        return build_scope_key(s.source_id for s in self.sources)
