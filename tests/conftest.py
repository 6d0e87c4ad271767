"""Shared fixtures: fake data sources that record every collaborator call."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Dict, List

import pytest

from datahouse.errors import ParserError, UpdaterError, UpdaterOnlyManually
from datahouse.metadata import SOURCE_FILES_DIR, MetadataStore
from datahouse.sources.base import DataSource, Exporter, Parser, Updater


class FakeUpdater(Updater):
    def __init__(self, source: "FakeDataSource", newest: str, mode: str) -> None:
        self.source = source
        self.newest = newest
        self.mode = mode

    def get_newest_version(self) -> str:
        self.source.calls.append("version")
        if self.mode == "manual":
            raise UpdaterOnlyManually("login required")
        if self.mode == "unreachable":
            raise UpdaterError("upstream unreachable")
        if self.mode == "crash":
            raise RuntimeError("boom")
        return self.newest

    def download(self, store: MetadataStore, data_source: DataSource, version: str) -> List[str]:
        self.source.calls.append("download")
        if self.mode == "fail":
            raise UpdaterError("download failed")
        target = store.stage_dir(data_source, SOURCE_FILES_DIR) / "data.csv"
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text("id,name\nA1,alpha\n", encoding="utf-8")
        return ["data.csv"]

    def integrate(self, store, data_source, version):
        self.source.calls.append("integrate")
        return super().integrate(store, data_source, version)


class FakeParser(Parser):
    def __init__(self, source: "FakeDataSource", mode: str) -> None:
        self.source = source
        self.mode = mode

    def parse(self, store: MetadataStore, data_source: DataSource) -> bool:
        self.source.calls.append("parse")
        if self.mode == "fail":
            raise ParserError("unparseable", data_source.source_id)
        if self.mode == "crash":
            raise RuntimeError("parser crashed")
        return True


class FakeExporter(Exporter):
    def __init__(self, source: "FakeDataSource", name: str, result: Any) -> None:
        self.source = source
        self.name = name
        self.result = result

    def write(self, store, data_source):
        return store.source_dir(data_source)

    def export(self, store: MetadataStore, data_source: DataSource) -> bool:
        self.source.calls.append(self.name)
        if self.result == "crash":
            raise RuntimeError("exporter crashed")
        return bool(self.result)


class FakeDataSource(DataSource):
    options: Dict[str, Any] = {}

    def __init__(self) -> None:
        super().__init__()
        self.calls: List[str] = []

    def create_updater(self) -> Updater:
        if self.options.get("update") == "broken_factory":
            raise RuntimeError("cannot build updater")
        return FakeUpdater(self, self.options.get("newest", "2021-01-01"), self.options.get("update", "ok"))

    def create_parser(self) -> Parser:
        return FakeParser(self, self.options.get("parse", "ok"))

    def create_rdf_exporter(self) -> Exporter:
        return FakeExporter(self, "export_rdf", self.options.get("export_rdf", True))

    def create_graph_exporter(self) -> Exporter:
        return FakeExporter(self, "export_graph", self.options.get("export_graph", True))


def make_source_class(source_id: str, **options: Any) -> type:
    return type(f"Fake{source_id}Source", (FakeDataSource,), {"source_id": source_id, "options": options})


@pytest.fixture
def source_factory() -> Callable[..., type]:
    """Build a FakeDataSource subclass with a fixed id and behaviour."""
    return make_source_class


@pytest.fixture
def store(tmp_path: Path) -> MetadataStore:
    return MetadataStore(tmp_path / "sources")


@pytest.fixture
def write_config() -> Callable[[Path, List[str]], Path]:
    def _write(root: Path, ids: List[str]) -> Path:
        root.mkdir(parents=True, exist_ok=True)
        path = root / "config.json"
        path.write_text(json.dumps({"version": 1, "data_source_ids": ids}), encoding="utf-8")
        return path

    return _write
