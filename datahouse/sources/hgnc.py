from __future__ import annotations

from datahouse.sources.base import DataSource, Exporter, Parser, Updater
from datahouse.sources.tabular import GraphMLExporter, HttpFileUpdater, NTriplesExporter, TableParser

HGNC_URL = "https://storage.googleapis.com/public-download-files/hgnc/tsv/tsv/hgnc_complete_set.txt"
HGNC_FILE = "hgnc_complete_set.txt"


class HGNCDataSource(DataSource):
    """HUGO Gene Nomenclature Committee complete gene set."""

    source_id = "HGNC"

    def create_updater(self) -> Updater:
        return HttpFileUpdater(HGNC_URL, HGNC_FILE)

    def create_parser(self) -> Parser:
        return TableParser(separator="\t")

    def create_rdf_exporter(self) -> Exporter:
        return NTriplesExporter(key_column="hgnc_id")

    def create_graph_exporter(self) -> Exporter:
        return GraphMLExporter(key_column="hgnc_id")
