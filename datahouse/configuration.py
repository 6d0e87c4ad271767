"""Workspace configuration: which data sources are active."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List

from datahouse.common import parse_timestamp, utc_now, write_json
from datahouse.errors import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "config.json"
WORKSPACE_VERSION = 1


def _unique(values: List[str]) -> List[str]:
    seen: List[str] = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


@dataclass
class WorkspaceConfiguration:
    data_source_ids: List[str] = field(default_factory=list)
    version: int = WORKSPACE_VERSION
    creation_date_time: datetime | None = None

    def __post_init__(self) -> None:
        self.data_source_ids = _unique([str(x) for x in self.data_source_ids])

    def is_active(self, source_id: str) -> bool:
        return source_id in self.data_source_ids

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "creation_date_time": self.creation_date_time.isoformat() if self.creation_date_time else None,
            "data_source_ids": list(self.data_source_ids),
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "WorkspaceConfiguration":
        if not isinstance(payload, dict):
            raise ValueError("Configuration payload must be a JSON object.")
        ids = payload.get("data_source_ids") or []
        if isinstance(ids, str) or not isinstance(ids, (list, tuple)):
            raise ValueError("data_source_ids must be a list of source identifiers.")
        return cls(
            data_source_ids=list(ids),
            version=int(payload.get("version", WORKSPACE_VERSION)),
            creation_date_time=parse_timestamp(payload.get("creation_date_time")),
        )


def config_path(workspace_root: str | Path) -> Path:
    return Path(workspace_root) / CONFIG_FILE_NAME


def load_or_create_configuration(workspace_root: str | Path) -> WorkspaceConfiguration:
    """Load ``config.json`` from the workspace root, writing a default one if absent.

    Any failure is fatal: a workspace must never run with an unknown set of
    active sources, so every error is raised as :class:`ConfigurationError`.
    """
    path = config_path(workspace_root)
    if path.exists():
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
            return WorkspaceConfiguration.from_dict(payload)
        except (OSError, ValueError, TypeError) as exc:
            raise ConfigurationError(f"Failed to load workspace configuration '{path}': {exc}") from exc

    configuration = WorkspaceConfiguration(creation_date_time=utc_now())
    try:
        write_json(configuration.to_dict(), path)
    except OSError as exc:
        raise ConfigurationError(f"Failed to write workspace configuration '{path}': {exc}") from exc
    logger.info("Created default workspace configuration at %s", path)
    return configuration
