from __future__ import annotations

import logging
from pathlib import Path
from typing import List

from datahouse.configuration import WorkspaceConfiguration, load_or_create_configuration
from datahouse.errors import ConfigurationError
from datahouse.metadata import MetadataStore
from datahouse.orchestrator import PipelineOrchestrator, SourceRunReport
from datahouse.registry import DataSourceRegistry, default_registry, resolve_active_sources
from datahouse.sources import DataSource
from datahouse.status import StatusReport, StatusReporter

logger = logging.getLogger(__name__)

SOURCES_DIRECTORY = "sources"


class Workspace:
    """A workspace directory with its configuration and active data sources.

    Construction fails with :class:`ConfigurationError` when the directory
    tree or ``config.json`` cannot be created or read.
    """

    def __init__(self, working_directory: str | Path, registry: DataSourceRegistry | None = None) -> None:
        self.working_directory = Path(working_directory)
        self.sources_directory = self.working_directory / SOURCES_DIRECTORY
        try:
            self.sources_directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ConfigurationError(f"Failed to create workspace at '{self.working_directory}': {exc}") from exc

        self.configuration: WorkspaceConfiguration = load_or_create_configuration(self.working_directory)
        self.registry = registry if registry is not None else default_registry()
        self.data_sources: List[DataSource] = resolve_active_sources(self.registry.factories(), self.configuration)
        self.store = MetadataStore(self.sources_directory)
        self.orchestrator = PipelineOrchestrator(self.store, self.working_directory)
        self.reporter = StatusReporter()

        missing = [sid for sid in self.configuration.data_source_ids if sid not in self.data_source_ids]
        if missing:
            logger.warning("Configured data sources not available: %s", ", ".join(missing))

    @property
    def data_source_ids(self) -> List[str]:
        return [ds.source_id for ds in self.data_sources]

    def check_state(self) -> StatusReport:
        self.orchestrator.prepare(self.data_sources)
        report = self.reporter.report(self.data_sources)
        logger.info("\n%s", report.table)
        logger.info(report.message)
        return report

    def update_data_sources(self) -> List[SourceRunReport]:
        return self.orchestrator.run_update(self.data_sources)

    def integrate_data_sources(self, source_id: str | None, version: str | None) -> SourceRunReport | None:
        return self.orchestrator.run_integration(self.data_sources, source_id, version)
