"""
Normalized item model and fetch result shapes.
"""
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

Priority = Literal["P0", "P1", "P2", "P3"]

DEFAULT_STATUS = "Not Started"


class Owner(BaseModel):
    id: str
    name: str = "Unknown"
    email: Optional[str] = None
    avatar: Optional[str] = None


class NormalizedItem(BaseModel):
    """
    Uniform item built from one external record.

    parent_id is the only authoritative relation. children is derived by the
    relationship builder and rebuilt on every pass.
    """
    id: str
    title: str
    type: str
    status: str = DEFAULT_STATUS
    priority: Optional[Priority] = None
    progress: Optional[float] = None
    owner: Optional[Owner] = None
    assignees: List[Owner] = Field(default_factory=list)
    parent_id: Optional[str] = None
    children: List[str] = Field(default_factory=list)
    description: str = ""
    due_date: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    source_record_id: Optional[str] = None
    source_url: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


class OrphanRecord(BaseModel):
    id: str
    title: str
    parent_id: str


class SourceFailure(BaseModel):
    source_tag: str
    message: str


class FetchState(str, Enum):
    IDLE = "IDLE"
    FETCHING = "FETCHING"
    AGGREGATING = "AGGREGATING"
    DONE = "DONE"
    ABORTED = "ABORTED"


class FetchProgress(BaseModel):
    loaded: int = 0
    total: Optional[int] = None
    items: List[NormalizedItem] = Field(default_factory=list)
    done: bool = False
    current_source: Optional[str] = None
    failures: List[SourceFailure] = Field(default_factory=list)
    orphan_count: int = 0


class FetchOutcome(BaseModel):
    """
    Result of one orchestrated fetch.

    state is DONE or ABORTED. Source failures are data, not exceptions: a DONE
    outcome may carry failures for some or all sources.
    """
    state: FetchState
    scope_key: str
    items: List[NormalizedItem] = Field(default_factory=list)
    failures: List[SourceFailure] = Field(default_factory=list)
    orphan_count: int = 0
    from_cache: bool = False
    stale: bool = False
    source_count: int = 0

    @property
    def cancelled(self) -> bool:
        return self.state == FetchState.ABORTED

    @property
    def all_failed(self) -> bool:
        return self.state == FetchState.DONE and self.source_count > 0 and len(self.failures) >= self.source_count

    @classmethod
    def aborted(cls, scope_key: str) -> "FetchOutcome":
        return cls(state=FetchState.ABORTED, scope_key=scope_key)
