from __future__ import annotations

from datahouse.sources.base import DataSource, Exporter, Parser, Updater
from datahouse.sources.tabular import GraphMLExporter, ManualOnlyUpdater, NTriplesExporter, TableParser

DRUGBANK_DOWNLOAD_PAGE = "https://go.drugbank.com/releases/latest#open-data"
DRUGBANK_VOCABULARY_FILE = "drugbank vocabulary.csv"


class DrugBankDataSource(DataSource):
    """DrugBank open vocabulary.

    Downloads require an account, so the file has to be placed into the
    source directory by hand and integrated with an explicit version.
    """

    source_id = "DrugBank"

    def create_updater(self) -> Updater:
        return ManualOnlyUpdater([DRUGBANK_VOCABULARY_FILE], download_page=DRUGBANK_DOWNLOAD_PAGE)

    def create_parser(self) -> Parser:
        return TableParser()

    def create_rdf_exporter(self) -> Exporter:
        return NTriplesExporter(key_column="drugbank_id")

    def create_graph_exporter(self) -> Exporter:
        return GraphMLExporter(key_column="drugbank_id")
