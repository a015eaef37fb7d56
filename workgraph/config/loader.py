import json
import logging
import os
from typing import Any, Dict, List

from pydantic import ValidationError

from workgraph.config.mappings import WorkspaceConfig
from workgraph.core.identifiers import normalize_uuid

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when the workspace configuration file cannot be used."""
    pass


def load_workspace_config(path: str) -> WorkspaceConfig:
    """
    Load and validate the workspace configuration JSON.

    Expected layout:
        {
          "default_mappings": {"title": "Name", "dueDate": "Deadline", ...},
          "aliases": {"Status": ["Status", "State"], ...},
          "sources": [{"source_id": "...", "type_tag": "project", "mappings": {...}}]
        }

    Returns:
        WorkspaceConfig with duplicate sources removed (first one wins).
    """
    if not path or not os.path.isfile(path):
        raise ConfigError(f"Workspace config not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Workspace config {path} is not valid JSON: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"Workspace config {path} must be a JSON object")

    raw["sources"] = _dedupe_sources(raw.get("sources") or [])

    try:
        config = WorkspaceConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Workspace config {path} failed validation: {e}") from e

    if not config.sources:
        raise ConfigError(f"Workspace config {path} defines no sources")

    logger.info(f"Loaded workspace config from {path}: {len(config.sources)} sources")
    return config


def _dedupe_sources(sources: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    seen = set()
    unique = []
    for source in sources:
        if not isinstance(source, dict):
            unique.append(source)
            continue
        key = normalize_uuid(str(source.get("source_id") or "").strip())
        if key and key in seen:
            logger.warning(f"Duplicate source {key} in workspace config ignored")
            continue
        seen.add(key)
        unique.append(source)
    return unique
