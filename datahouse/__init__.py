"""Workspace orchestration for pluggable upstream data sources."""

from datahouse.configuration import WorkspaceConfiguration
from datahouse.metadata import SourceMetadata
from datahouse.orchestrator import SourceRunReport
from datahouse.workspace import Workspace

__all__ = ["SourceMetadata", "SourceRunReport", "Workspace", "WorkspaceConfiguration"]
