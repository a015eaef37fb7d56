from workgraph.schemas.items import (
    DEFAULT_STATUS,
    FetchOutcome,
    FetchProgress,
    FetchState,
    NormalizedItem,
    OrphanRecord,
    Owner,
    SourceFailure,
)
from workgraph.schemas.properties import (
    ExternalRecord,
    PropertyKind,
    PropertyValue,
    parse_bag,
    parse_property,
)

__all__ = [
    "DEFAULT_STATUS",
    "FetchOutcome",
    "FetchProgress",
    "FetchState",
    "NormalizedItem",
    "OrphanRecord",
    "Owner",
    "SourceFailure",
    "ExternalRecord",
    "PropertyKind",
    "PropertyValue",
    "parse_bag",
    "parse_property",
]
