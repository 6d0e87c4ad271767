"""Collaborators for sources that publish plain delimited tables."""

from __future__ import annotations

import logging
import os
from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import networkx as nx
import pandas as pd
import requests

from datahouse.common import ensure_dirs, getenv
from datahouse.errors import ParserError, UpdaterError, UpdaterOnlyManually
from datahouse.metadata import GRAPH_DIR, INTERMEDIATE_DIR, RDF_DIR, SOURCE_FILES_DIR, MetadataStore
from datahouse.sources.base import DataSource, Exporter, Parser, Updater

logger = logging.getLogger(__name__)

DEFAULT_BASE_IRI = "https://datahouse.example.org/"
DEFAULT_USER_AGENT = "datahouse-updater/0.1"
RDF_TYPE = "http://www.w3.org/1999/02/22-rdf-syntax-ns#type"
TAB_SUFFIXES = {".tsv", ".txt", ".tab"}


def _http_headers() -> Dict[str, str]:
    return {"user-agent": getenv("DATAHOUSE_USER_AGENT") or DEFAULT_USER_AGENT}


def standardize_columns(df: pd.DataFrame) -> pd.DataFrame:
    out = df.copy(deep=True)
    out.columns = [
        str(col)
        .strip()
        .replace("\n", " ")
        .replace("  ", " ")
        for col in out.columns
    ]
    out.columns = [
        col.lower().replace(" ", "_").replace("(", "").replace(")", "").replace("%", "pct")
        for col in out.columns
    ]
    return out


def read_intermediate(store: MetadataStore, data_source: DataSource) -> pd.DataFrame:
    tables = sorted(store.stage_dir(data_source, INTERMEDIATE_DIR).glob("*.parquet"))
    if not tables:
        raise ValueError(f"No parsed tables found for '{data_source.source_id}'")
    return pd.concat([pd.read_parquet(path) for path in tables], ignore_index=True)


class HttpFileUpdater(Updater):
    """Downloads a single file; its ``Last-Modified`` date is the version."""

    def __init__(self, url: str, file_name: str, timeout: int = 60) -> None:
        self.url = url
        self.file_name = file_name
        self.timeout = timeout

    def get_newest_version(self) -> str:
        try:
            resp = requests.head(self.url, headers=_http_headers(), timeout=self.timeout, allow_redirects=True)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise UpdaterError(f"Version lookup failed for {self.url}: {exc}") from exc

        last_modified = resp.headers.get("Last-Modified")
        if not last_modified:
            raise UpdaterError(f"No Last-Modified header served by {self.url}")
        try:
            return parsedate_to_datetime(last_modified).strftime("%Y-%m-%d")
        except (TypeError, ValueError) as exc:
            raise UpdaterError(f"Unreadable Last-Modified header {last_modified!r}") from exc

    def download(self, store: MetadataStore, data_source: DataSource, version: str) -> List[str]:
        target = store.stage_dir(data_source, SOURCE_FILES_DIR) / self.file_name
        partial = target.with_name(target.name + ".part")
        ensure_dirs(target.parent)
        logger.info("Downloading %s for '%s' (version %s)", self.url, data_source.source_id, version)
        try:
            with requests.get(self.url, headers=_http_headers(), timeout=self.timeout, stream=True) as resp:
                resp.raise_for_status()
                with partial.open("wb") as handle:
                    for chunk in resp.iter_content(chunk_size=1024 * 1024):
                        if chunk:
                            handle.write(chunk)
            os.replace(partial, target)
        except (requests.RequestException, OSError) as exc:
            partial.unlink(missing_ok=True)
            raise UpdaterError(f"Download of {self.url} failed: {exc}", data_source.source_id) from exc
        return [self.file_name]


class ManualOnlyUpdater(Updater):
    """For upstreams behind a login or licence click-through."""

    def __init__(self, file_names: List[str], download_page: str | None = None) -> None:
        self.file_names = list(file_names)
        self.download_page = download_page

    def _refuse(self) -> UpdaterOnlyManually:
        hint = f" Download it from {self.download_page}." if self.download_page else ""
        return UpdaterOnlyManually(f"Upstream data cannot be fetched automatically.{hint}")

    def get_newest_version(self) -> str:
        raise self._refuse()

    def download(self, store: MetadataStore, data_source: DataSource, version: str) -> List[str]:
        raise self._refuse()

    def expected_file_names(self) -> List[str]:
        return list(self.file_names)


class TableParser(Parser):
    def __init__(self, separator: Optional[str] = None) -> None:
        self.separator = separator

    def _separator_for(self, path: Path) -> str:
        if self.separator:
            return self.separator
        suffixes = {s.lower() for s in path.suffixes}
        return "\t" if suffixes & TAB_SUFFIXES else ","

    def parse(self, store: MetadataStore, data_source: DataSource) -> bool:
        source_id = data_source.source_id
        names = data_source.metadata.source_file_names
        if not names:
            raise ParserError(f"No source files recorded for '{source_id}'", source_id)

        source_dir = store.stage_dir(data_source, SOURCE_FILES_DIR)
        out_dir = store.stage_dir(data_source, INTERMEDIATE_DIR)
        ensure_dirs(out_dir)
        # Tables of a previous version must not leak into the exports.
        for stale in out_dir.glob("*.parquet"):
            try:
                stale.unlink()
            except OSError as exc:
                raise ParserError(f"Failed to remove stale table {stale}: {exc}", source_id) from exc
        for name in names:
            path = source_dir / name
            try:
                df = pd.read_csv(path, sep=self._separator_for(path), dtype=str)
                df = standardize_columns(df)
                df.to_parquet(out_dir / f"{Path(name).name.split('.')[0]}.parquet", index=False)
            except (OSError, ValueError) as exc:
                raise ParserError(f"Failed to parse {path}: {exc}", source_id) from exc
        return True


def _iri(base: str, *parts: str) -> str:
    return base + "/".join(quote(str(p), safe="") for p in parts)


def _literal(value: Any) -> str:
    text = str(value).replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n").replace("\r", "\\r")
    return f'"{text}"'


class NTriplesExporter(Exporter):
    directory = RDF_DIR
    extension = ".nt"

    def __init__(self, key_column: str | None = None, base_iri: str = DEFAULT_BASE_IRI) -> None:
        self.key_column = key_column
        self.base_iri = base_iri

    def write(self, store: MetadataStore, data_source: DataSource) -> Path:
        df = read_intermediate(store, data_source)
        source_id = data_source.source_id
        record_type = _iri(self.base_iri, source_id, "vocab", "Record")
        path = self.output_path(store, data_source)
        ensure_dirs(path.parent)

        with path.open("w", encoding="utf-8") as fh:
            for i, row in enumerate(df.to_dict(orient="records")):
                key = row.get(self.key_column) if self.key_column else None
                subject = _iri(self.base_iri, source_id, str(key) if pd.notna(key) else f"row{i}")
                fh.write(f"<{subject}> <{RDF_TYPE}> <{record_type}> .\n")
                for column, value in row.items():
                    if pd.isna(value):
                        continue
                    predicate = _iri(self.base_iri, source_id, "vocab", column)
                    fh.write(f"<{subject}> <{predicate}> {_literal(value)} .\n")
        return path


class GraphMLExporter(Exporter):
    """One node per row; ``reference_columns`` hold ``|``-separated keys of other rows."""

    directory = GRAPH_DIR
    extension = ".graphml"

    def __init__(self, key_column: str | None = None, reference_columns: Dict[str, str] | None = None) -> None:
        self.key_column = key_column
        self.reference_columns = reference_columns or {}

    def build_graph(self, df: pd.DataFrame, source_id: str) -> nx.MultiDiGraph:
        graph = nx.MultiDiGraph(source=source_id)
        keys: List[str] = []
        for i, row in enumerate(df.to_dict(orient="records")):
            key = row.get(self.key_column) if self.key_column else None
            key = str(key) if pd.notna(key) else f"row{i}"
            attrs = {str(col): str(val) for col, val in row.items() if pd.notna(val)}
            attrs.setdefault("label", source_id)
            graph.add_node(key, **attrs)
            keys.append(key)

        for key, row in zip(keys, df.to_dict(orient="records")):
            for column, label in self.reference_columns.items():
                value = row.get(column)
                if value is None or pd.isna(value):
                    continue
                for target in str(value).split("|"):
                    target = target.strip()
                    if target and target in graph:
                        graph.add_edge(key, target, label=label)
        return graph

    def write(self, store: MetadataStore, data_source: DataSource) -> Path:
        df = read_intermediate(store, data_source)
        graph = self.build_graph(df, data_source.source_id)
        path = self.output_path(store, data_source)
        ensure_dirs(path.parent)
        nx.write_graphml(graph, path)
        return path
