from .base import DataSource, Exporter, Parser, UpdateOutcome, Updater
from .drugbank import DrugBankDataSource
from .hgnc import HGNCDataSource

BUILTIN_DATA_SOURCES = [
    HGNCDataSource,
    DrugBankDataSource,
]

__all__ = [
    "DataSource",
    "Exporter",
    "Parser",
    "UpdateOutcome",
    "Updater",
    "BUILTIN_DATA_SOURCES",
]
