from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List

from datahouse.common import utc_now
from datahouse.errors import DatahouseError, UpdaterError, UpdaterOnlyManually
from datahouse.metadata import SOURCE_FILES_DIR, MetadataStore, SourceMetadata

logger = logging.getLogger(__name__)

UPDATED = "updated"
MANUAL_ONLY = "manual_only"
FAILED = "failed"


@dataclass(frozen=True)
class UpdateOutcome:
    """Tagged result of an update or manual integration."""

    kind: str
    metadata: SourceMetadata | None = None
    changed: bool = False
    reason: str | None = None

    @classmethod
    def updated(cls, metadata: SourceMetadata, changed: bool = True) -> "UpdateOutcome":
        return cls(kind=UPDATED, metadata=metadata, changed=changed)

    @classmethod
    def manual_only(cls, reason: str) -> "UpdateOutcome":
        return cls(kind=MANUAL_ONLY, reason=reason)

    @classmethod
    def failed(cls, reason: str) -> "UpdateOutcome":
        return cls(kind=FAILED, reason=reason)

    @property
    def succeeded(self) -> bool:
        return self.kind == UPDATED


class Updater(ABC):
    """Detects the newest upstream version and fetches its files.

    Subclasses implement :meth:`get_newest_version` and :meth:`download` and
    signal problems by raising :class:`UpdaterError` (or
    :class:`UpdaterOnlyManually`). :meth:`update` and :meth:`integrate` turn
    those into an :class:`UpdateOutcome`.
    """

    @abstractmethod
    def get_newest_version(self) -> str:
        ...

    @abstractmethod
    def download(self, store: MetadataStore, data_source: "DataSource", version: str) -> List[str]:
        """Fetch ``version`` into the source directory and return the written file names."""

    def expected_file_names(self) -> List[str]:
        return []

    def update(self, store: MetadataStore, data_source: "DataSource") -> UpdateOutcome:
        current = data_source.metadata
        try:
            newest = self.get_newest_version()
            if current.version == newest and _files_present(store, data_source, current.source_file_names):
                return UpdateOutcome.updated(current, changed=False)
            file_names = self.download(store, data_source, newest)
        except UpdaterOnlyManually as exc:
            return UpdateOutcome.manual_only(str(exc))
        except UpdaterError as exc:
            return UpdateOutcome.failed(str(exc))

        metadata = SourceMetadata(version=newest, source_file_names=list(file_names), update_date_time=utc_now())
        return UpdateOutcome.updated(metadata)

    def integrate(self, store: MetadataStore, data_source: "DataSource", version: str) -> UpdateOutcome:
        """Adopt files the user placed into ``source/`` as ``version``."""
        if not version:
            return UpdateOutcome.failed("No version given for manual integration.")
        try:
            file_names = self.manual_file_names(store, data_source)
        except UpdaterError as exc:
            return UpdateOutcome.failed(str(exc))
        metadata = SourceMetadata(version=version, source_file_names=file_names, update_date_time=utc_now())
        return UpdateOutcome.updated(metadata)

    def manual_file_names(self, store: MetadataStore, data_source: "DataSource") -> List[str]:
        source_dir = store.stage_dir(data_source, SOURCE_FILES_DIR)
        expected = self.expected_file_names()
        if expected:
            missing = [name for name in expected if not (source_dir / name).is_file()]
            if missing:
                raise UpdaterError(
                    f"Missing files for manual integration in {source_dir}: {', '.join(missing)}",
                    data_source.source_id,
                )
            return list(expected)

        found = sorted(p.name for p in source_dir.iterdir() if _is_data_file(p)) if source_dir.is_dir() else []
        if not found:
            raise UpdaterError(f"No files found for manual integration in {source_dir}", data_source.source_id)
        return found


def _is_data_file(path: Path) -> bool:
    # Skips hidden files and unfinished downloads.
    return path.is_file() and not path.name.startswith(".") and not path.name.endswith(".part")


def _files_present(store: MetadataStore, data_source: "DataSource", names: List[str]) -> bool:
    source_dir = store.stage_dir(data_source, SOURCE_FILES_DIR)
    return bool(names) and all((source_dir / name).is_file() for name in names)


class Parser(ABC):
    @abstractmethod
    def parse(self, store: MetadataStore, data_source: "DataSource") -> bool:
        """Normalize the downloaded files. Raises :class:`ParserError` on failure."""


class Exporter(ABC):
    """Serializes the normalized representation into one output format."""

    directory: str = ""
    extension: str = ""

    def output_path(self, store: MetadataStore, data_source: "DataSource") -> Path:
        return store.stage_dir(data_source, self.directory) / f"{data_source.source_id}{self.extension}"

    @abstractmethod
    def write(self, store: MetadataStore, data_source: "DataSource") -> Path:
        ...

    def export(self, store: MetadataStore, data_source: "DataSource") -> bool:
        try:
            path = self.write(store, data_source)
        except (OSError, ValueError, KeyError, DatahouseError):
            logger.exception("Failed to export data source '%s' with %s", data_source.source_id, type(self).__name__)
            return False
        logger.debug("Exported '%s' to %s", data_source.source_id, path)
        return True


class DataSource(ABC):
    """One pluggable upstream dataset and its four collaborators.

    ``source_id`` is a class attribute so every instance of an implementation
    reports the same identifier.
    """

    source_id: str = ""

    def __init__(self) -> None:
        if not self.source_id:
            raise ValueError(f"{type(self).__name__} does not declare a source_id")
        self.metadata = SourceMetadata()
        self._updater: Updater | None = None
        self._parser: Parser | None = None
        self._rdf_exporter: Exporter | None = None
        self._graph_exporter: Exporter | None = None

    @abstractmethod
    def create_updater(self) -> Updater:
        ...

    @abstractmethod
    def create_parser(self) -> Parser:
        ...

    @abstractmethod
    def create_rdf_exporter(self) -> Exporter:
        ...

    @abstractmethod
    def create_graph_exporter(self) -> Exporter:
        ...

    @property
    def updater(self) -> Updater:
        if self._updater is None:
            self._updater = self.create_updater()
        return self._updater

    @property
    def parser(self) -> Parser:
        if self._parser is None:
            self._parser = self.create_parser()
        return self._parser

    @property
    def rdf_exporter(self) -> Exporter:
        if self._rdf_exporter is None:
            self._rdf_exporter = self.create_rdf_exporter()
        return self._rdf_exporter

    @property
    def graph_exporter(self) -> Exporter:
        if self._graph_exporter is None:
            self._graph_exporter = self.create_graph_exporter()
        return self._graph_exporter

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.source_id!r}>"
