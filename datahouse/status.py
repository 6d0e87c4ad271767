"""Staleness of active data sources against their upstream versions."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List

import pandas as pd

from datahouse.errors import UpdaterError
from datahouse.sources import DataSource

logger = logging.getLogger(__name__)

UNAVAILABLE = "-"

COLUMN_TITLES = [
    "SourceID",
    "Version is up-to-date",
    "Version",
    "new Version",
    "Time of latest update",
    "Files",
]


@dataclass(frozen=True)
class StatusRow:
    source_id: str
    up_to_date: bool
    version: str
    latest_version: str
    update_date_time: datetime | None
    source_file_names: List[str] = field(default_factory=list)

    def to_display(self) -> Dict[str, Any]:
        return {
            "SourceID": self.source_id,
            "Version is up-to-date": self.up_to_date,
            "Version": self.version or UNAVAILABLE,
            "new Version": self.latest_version,
            "Time of latest update": self.update_date_time.isoformat() if self.update_date_time else UNAVAILABLE,
            "Files": ", ".join(self.source_file_names) or UNAVAILABLE,
        }


@dataclass
class StatusReport:
    rows: List[StatusRow]
    table: str
    message: str

    @property
    def total(self) -> int:
        return len(self.rows)

    @property
    def up_to_date(self) -> int:
        return count_rows_up_to_date(self.rows)

    @property
    def all_up_to_date(self) -> bool:
        return self.up_to_date == self.total


def count_rows_up_to_date(rows: Iterable[StatusRow]) -> int:
    return sum(1 for row in rows if row.up_to_date)


def summary_message(up_to_date: int, total: int) -> str:
    if up_to_date == total:
        return "all source data are up-to-date."
    return f"{up_to_date}/{total} source data are up-to-date."


def render_summary(rows: Iterable[StatusRow]) -> str:
    frame = pd.DataFrame([row.to_display() for row in rows], columns=COLUMN_TITLES)
    body = "(no active data sources)" if frame.empty else frame.to_string(index=False)
    spacer = "-" * max(len(line) for line in body.splitlines())
    return "\n".join([spacer, body, spacer])


class StatusReporter:
    """Compares persisted versions with what the updaters currently see.

    Lookups are best effort: an unreachable upstream renders as ``-`` and the
    source counts as not up to date.
    """

    def latest_upstream_version(self, data_source: DataSource) -> str:
        try:
            return str(data_source.updater.get_newest_version())
        except UpdaterError as exc:
            logger.error("New version of '%s' is not accessible: %s", data_source.source_id, exc)
        except Exception:
            logger.exception("New version of '%s' is not accessible.", data_source.source_id)
        return UNAVAILABLE

    def is_up_to_date(self, data_source: DataSource) -> bool:
        return self._matches(data_source, self.latest_upstream_version(data_source))

    @staticmethod
    def _matches(data_source: DataSource, latest: str) -> bool:
        return latest != UNAVAILABLE and data_source.metadata.version == latest

    def build_row(self, data_source: DataSource) -> StatusRow:
        latest = self.latest_upstream_version(data_source)
        metadata = data_source.metadata
        return StatusRow(
            source_id=data_source.source_id,
            up_to_date=self._matches(data_source, latest),
            version=metadata.version,
            latest_version=latest,
            update_date_time=metadata.update_date_time,
            source_file_names=list(metadata.source_file_names),
        )

    def build_rows(self, sources: Iterable[DataSource]) -> List[StatusRow]:
        return [self.build_row(ds) for ds in sources]

    def count_up_to_date(self, sources: Iterable[DataSource]) -> int:
        return sum(1 for ds in sources if self.is_up_to_date(ds))

    def report(self, sources: Iterable[DataSource]) -> StatusReport:
        rows = self.build_rows(sources)
        return StatusReport(
            rows=rows,
            table=render_summary(rows),
            message=summary_message(count_rows_up_to_date(rows), len(rows)),
        )
