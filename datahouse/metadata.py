"""Per-source processing state persisted in each source's own directory."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List

from datahouse.common import parse_timestamp, read_json, write_json_atomic
from datahouse.errors import MetadataError

if TYPE_CHECKING:
    from datahouse.sources.base import DataSource

logger = logging.getLogger(__name__)

METADATA_FILE_NAME = "metadata.json"

SOURCE_FILES_DIR = "source"
INTERMEDIATE_DIR = "intermediate"
RDF_DIR = "rdf"
GRAPH_DIR = "graph"
STAGE_DIRS = (SOURCE_FILES_DIR, INTERMEDIATE_DIR, RDF_DIR, GRAPH_DIR)


@dataclass
class SourceMetadata:
    """State of the last successful integration of one data source.

    Attributes:
        version: Upstream version string of the integrated data. Empty when
            the source has never been processed.
        source_file_names: Files written into ``source/`` by the update step.
        update_date_time: When the record was last refreshed.
    """

    version: str = ""
    source_file_names: List[str] = field(default_factory=list)
    update_date_time: datetime | None = None

    @property
    def is_empty(self) -> bool:
        return not self.version

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "source_file_names": list(self.source_file_names),
            "update_date_time": self.update_date_time.isoformat() if self.update_date_time else None,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "SourceMetadata":
        version = payload.get("version")
        return cls(
            version="" if version is None else str(version),
            source_file_names=[str(x) for x in payload.get("source_file_names") or []],
            update_date_time=parse_timestamp(payload.get("update_date_time")),
        )


class MetadataStore:
    def __init__(self, sources_root: Path) -> None:
        self.sources_root = Path(sources_root)

    def source_dir(self, data_source: "DataSource") -> Path:
        return self.sources_root / data_source.source_id

    def stage_dir(self, data_source: "DataSource", name: str) -> Path:
        return self.source_dir(data_source) / name

    def metadata_path(self, data_source: "DataSource") -> Path:
        return self.source_dir(data_source) / METADATA_FILE_NAME

    def ensure_directory(self, data_source: "DataSource") -> bool:
        root = self.source_dir(data_source)
        try:
            for name in STAGE_DIRS:
                (root / name).mkdir(parents=True, exist_ok=True)
        except OSError:
            logger.exception("Failed to create data source directory for '%s'", data_source.source_id)
            return False
        return True

    def load_or_create(self, data_source: "DataSource") -> SourceMetadata:
        """Load the source's record, creating an empty one on first use.

        A record that cannot be read or written is logged and replaced by an
        empty in-memory record; the source's later stages run regardless.
        """
        path = self.metadata_path(data_source)
        try:
            if path.exists():
                metadata = SourceMetadata.from_dict(read_json(path))
            else:
                metadata = SourceMetadata()
                write_json_atomic(metadata.to_dict(), path)
        except (OSError, ValueError, TypeError, AttributeError):
            logger.exception("Failed to load data source metadata for '%s'", data_source.source_id)
            metadata = SourceMetadata()
        data_source.metadata = metadata
        return metadata

    def persist(self, data_source: "DataSource", metadata: SourceMetadata) -> None:
        path = self.metadata_path(data_source)
        try:
            write_json_atomic(metadata.to_dict(), path)
        except OSError as exc:
            raise MetadataError(f"Failed to store metadata for '{data_source.source_id}': {exc}") from exc
        data_source.metadata = metadata
