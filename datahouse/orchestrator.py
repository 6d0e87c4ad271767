"""Runs the update → parse → export pipeline over the active data sources.

Every stage of every source is isolated: a failing stage is logged and the
next stage still runs, and nothing raised by one source's collaborators can
stop the iteration over the remaining sources.

Two entry points exist:

* :meth:`PipelineOrchestrator.run_update`: automatic run, four stages per
  source (update, parse, RDF export, graph export).
* :meth:`PipelineOrchestrator.run_integration`: adopt manually downloaded
  files for one source under a caller-supplied version, then parse and run the
  RDF export.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Sequence

from datahouse.errors import MetadataError, ParserError
from datahouse.metadata import SOURCE_FILES_DIR, MetadataStore
from datahouse.sources import DataSource, Exporter, UpdateOutcome
from datahouse.sources.base import MANUAL_ONLY

logger = logging.getLogger(__name__)

# Per-source run states.
IDLE = "Idle"
UPDATING = "Updating"
UPDATED = "Updated"
MANUAL_ONLY_STATE = "ManualOnly"
UPDATE_FAILED = "UpdateFailed"
PARSING = "Parsing"
PARSED = "Parsed"
PARSE_FAILED = "ParseFailed"
EXPORTING_A = "ExportingA"
EXPORTED_A = "ExportedA"
EXPORT_FAILED_A = "ExportFailedA"
EXPORTING_B = "ExportingB"
EXPORTED_B = "ExportedB"
EXPORT_FAILED_B = "ExportFailedB"
DONE = "Done"

# Update stage labels.
STATUS_UPDATED = "updated"
STATUS_UNCHANGED = "unchanged"
STATUS_MANUAL_ONLY = "manual_only"
STATUS_FAILED = "failed"


@dataclass
class SourceRunReport:
    """What happened to one data source during a run.

    Stage fields stay ``None`` when the stage was not part of the run
    (``exported_graph`` on the manual path).
    """

    source_id: str
    manual: bool = False
    update: str | None = None
    parsed: bool | None = None
    exported_rdf: bool | None = None
    exported_graph: bool | None = None
    states: List[str] = field(default_factory=lambda: [IDLE])

    def enter(self, state: str) -> None:
        self.states.append(state)

    @property
    def done(self) -> bool:
        return self.states[-1] == DONE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_id": self.source_id,
            "manual": self.manual,
            "update": self.update,
            "parsed": self.parsed,
            "exported_rdf": self.exported_rdf,
            "exported_graph": self.exported_graph,
            "states": list(self.states),
        }


class PipelineOrchestrator:
    def __init__(self, store: MetadataStore, workspace_root: str | Path | None = None) -> None:
        self.store = store
        self.workspace_root = Path(workspace_root) if workspace_root is not None else store.sources_root.parent

    def prepare(self, sources: Sequence[DataSource]) -> None:
        for data_source in sources:
            self.store.ensure_directory(data_source)
        for data_source in sources:
            self.store.load_or_create(data_source)

    def run_update(self, sources: Sequence[DataSource]) -> List[SourceRunReport]:
        self.prepare(sources)
        return [self.process(data_source) for data_source in sources]

    def run_integration(
        self,
        sources: Sequence[DataSource],
        source_id: str | None,
        version: str | None,
    ) -> SourceRunReport | None:
        self.prepare(sources)
        source_id = (source_id or "").strip()
        version = (version or "").strip()
        if not source_id or not version:
            logger.error("Failed to read source name and version from the command line")
            return None

        for data_source in sources:
            if data_source.source_id == source_id:
                return self.integrate(data_source, version)
        logger.debug("No active data source '%s'; nothing to integrate", source_id)
        return None

    def process(self, data_source: DataSource) -> SourceRunReport:
        logger.info("Processing of data source '%s' started", data_source.source_id)
        report = SourceRunReport(source_id=data_source.source_id)
        report.enter(UPDATING)
        try:
            outcome = data_source.updater.update(self.store, data_source)
        except Exception as exc:
            logger.exception("Failed to update data source '%s'", data_source.source_id)
            outcome = UpdateOutcome.failed(str(exc))
        self._apply_update(data_source, outcome, report)

        self._parse(data_source, report)
        report.exported_rdf = self._export(data_source, "rdf_exporter", report, EXPORTING_A)
        report.exported_graph = self._export(data_source, "graph_exporter", report, EXPORTING_B)
        report.enter(DONE)
        logger.info("Processing of data source '%s' finished", data_source.source_id)
        return report

    def integrate(self, data_source: DataSource, version: str) -> SourceRunReport:
        logger.info("Processing of data source '%s' started", data_source.source_id)
        report = SourceRunReport(source_id=data_source.source_id, manual=True)
        report.enter(UPDATING)
        try:
            outcome = data_source.updater.integrate(self.store, data_source, version)
        except Exception as exc:
            logger.exception("Failed to update data source '%s'", data_source.source_id)
            outcome = UpdateOutcome.failed(str(exc))
        self._apply_update(data_source, outcome, report)

        self._parse(data_source, report)
        # The graph export is not part of manual integration.
        report.exported_rdf = self._export(data_source, "rdf_exporter", report, EXPORTING_A)
        report.enter(DONE)
        logger.info("Processing of data source '%s' finished", data_source.source_id)
        return report

    def manual_instructions(self, data_source: DataSource, reason: str | None = None) -> str:
        source_id = data_source.source_id
        lines = [
            f"Data source '{source_id}' can only be updated manually.",
            f"Download the new version of {source_id} into {self.store.stage_dir(data_source, SOURCE_FILES_DIR)}"
            f" and run: datahouse --integrate {self.workspace_root} {source_id} <version>",
        ]
        if reason:
            lines.append(reason)
        return "\n".join(lines)

    def _apply_update(self, data_source: DataSource, outcome: UpdateOutcome, report: SourceRunReport) -> None:
        source_id = data_source.source_id
        label = "updated manually" if report.manual else "updated"

        if outcome.kind == MANUAL_ONLY:
            logger.error(self.manual_instructions(data_source, outcome.reason))
            report.update = STATUS_MANUAL_ONLY
            report.enter(MANUAL_ONLY_STATE)
            return

        if not outcome.succeeded:
            logger.error("Failed to update data source '%s': %s", source_id, outcome.reason)
            report.update = STATUS_FAILED
            report.enter(UPDATE_FAILED)
            return

        if outcome.changed and outcome.metadata is not None:
            try:
                self.store.persist(data_source, outcome.metadata)
            except MetadataError:
                logger.exception("Failed to store metadata of data source '%s'", source_id)
                report.update = STATUS_FAILED
                report.enter(UPDATE_FAILED)
                return

        logger.info("\t%s: %s", label, outcome.changed)
        report.update = STATUS_UPDATED if outcome.changed else STATUS_UNCHANGED
        report.enter(UPDATED)

    def _parse(self, data_source: DataSource, report: SourceRunReport) -> None:
        report.enter(PARSING)
        parsed = False
        try:
            parsed = bool(data_source.parser.parse(self.store, data_source))
        except ParserError as exc:
            logger.error("Failed to parse data source '%s': %s", data_source.source_id, exc)
        except Exception:
            logger.exception("Failed to parse data source '%s'", data_source.source_id)
        logger.info("\tparsed: %s", parsed)
        report.parsed = parsed
        report.enter(PARSED if parsed else PARSE_FAILED)

    def _export(self, data_source: DataSource, role: str, report: SourceRunReport, state: str) -> bool:
        report.enter(state)
        exported = False
        try:
            exporter: Exporter = getattr(data_source, role)
            exported = bool(exporter.export(self.store, data_source))
        except Exception:
            logger.exception("Failed to export data source '%s'", data_source.source_id)
        logger.info("\texported: %s", exported)
        if state == EXPORTING_A:
            report.enter(EXPORTED_A if exported else EXPORT_FAILED_A)
        else:
            report.enter(EXPORTED_B if exported else EXPORT_FAILED_B)
        return exported
