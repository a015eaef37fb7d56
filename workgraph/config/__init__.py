from workgraph.config.loader import ConfigError, load_workspace_config
from workgraph.config.mappings import (
    DEFAULT_ALIASES,
    LOGICAL_FIELDS,
    MappingConfig,
    SourceConfig,
    WorkspaceConfig,
)

__all__ = [
    "ConfigError",
    "load_workspace_config",
    "DEFAULT_ALIASES",
    "LOGICAL_FIELDS",
    "MappingConfig",
    "SourceConfig",
    "WorkspaceConfig",
]
