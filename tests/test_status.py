"""Tests for datahouse/status.py."""

from __future__ import annotations

import logging

from datahouse.metadata import SourceMetadata
from datahouse.status import (
    COLUMN_TITLES,
    UNAVAILABLE,
    StatusReporter,
    StatusRow,
    count_rows_up_to_date,
    render_summary,
    summary_message,
)


def _with_version(source, version: str):
    source.metadata = SourceMetadata(version=version, source_file_names=["data.csv"])
    return source


class TestUpToDate:
    def test_matching_version_is_up_to_date(self, source_factory):
        source = _with_version(source_factory("A", newest="2021-01-01")(), "2021-01-01")

        assert StatusReporter().is_up_to_date(source) is True

    def test_different_version_is_stale(self, source_factory):
        source = _with_version(source_factory("A", newest="2021-02-01")(), "2021-01-01")

        assert StatusReporter().is_up_to_date(source) is False

    def test_comparison_is_plain_string_equality(self, source_factory):
        source = _with_version(source_factory("A", newest="2021-1-1")(), "2021-01-01")

        assert StatusReporter().is_up_to_date(source) is False

    def test_unreachable_upstream_is_not_up_to_date(self, source_factory, caplog):
        source = _with_version(source_factory("B", update="unreachable")(), "2021-01-01")

        with caplog.at_level(logging.ERROR):
            assert StatusReporter().is_up_to_date(source) is False

        assert "New version of 'B' is not accessible" in caplog.text

    def test_unexpected_error_never_raises(self, source_factory):
        source = _with_version(source_factory("B", update="crash")(), "2021-01-01")

        assert StatusReporter().latest_upstream_version(source) == UNAVAILABLE
        assert StatusReporter().is_up_to_date(source) is False

    def test_manual_only_renders_sentinel(self, source_factory):
        source = source_factory("M", update="manual")()

        assert StatusReporter().latest_upstream_version(source) == UNAVAILABLE


class TestReport:
    def test_scenario_one_fresh_one_unreachable(self, source_factory):
        a = _with_version(source_factory("A", newest="2021-01-01")(), "2021-01-01")
        b = _with_version(source_factory("B", update="unreachable")(), "2020-12-01")

        report = StatusReporter().report([a, b])

        assert [row.source_id for row in report.rows] == ["A", "B"]
        assert report.rows[0].up_to_date is True
        assert report.rows[1].up_to_date is False
        assert report.rows[1].latest_version == UNAVAILABLE
        assert report.up_to_date == 1
        assert report.message == "1/2 source data are up-to-date."

    def test_all_up_to_date_message(self, source_factory):
        sources = [_with_version(source_factory(x, newest="v1")(), "v1") for x in "AB"]

        report = StatusReporter().report(sources)

        assert report.all_up_to_date
        assert report.message == "all source data are up-to-date."

    def test_upstream_queried_once_per_source(self, source_factory):
        source = _with_version(source_factory("A")(), "2021-01-01")

        StatusReporter().report([source])

        assert source.calls.count("version") == 1

    def test_count_up_to_date_matches_individual_checks(self, source_factory):
        fresh = _with_version(source_factory("A", newest="v1")(), "v1")
        stale = _with_version(source_factory("B", newest="v2")(), "v1")
        reporter = StatusReporter()

        assert reporter.count_up_to_date([fresh, stale]) == 1
        assert reporter.count_up_to_date([fresh]) == 1


class TestRendering:
    def test_summary_message(self):
        assert summary_message(3, 3) == "all source data are up-to-date."
        assert summary_message(0, 0) == "all source data are up-to-date."
        assert summary_message(2, 5) == "2/5 source data are up-to-date."

    def test_table_has_headers_and_rows_in_order(self):
        rows = [
            StatusRow("Zeta", True, "1", "1", None, ["z.csv"]),
            StatusRow("Alpha", False, "", UNAVAILABLE, None, []),
        ]

        table = render_summary(rows)

        for title in COLUMN_TITLES:
            assert title in table
        assert table.index("Zeta") < table.index("Alpha")
        assert "z.csv" in table
        assert table.splitlines()[0].strip("-") == ""

    def test_empty_table(self):
        table = render_summary([])

        assert "no active data sources" in table

    def test_count_rows(self):
        rows = [StatusRow("A", True, "1", "1", None), StatusRow("B", False, "1", "2", None)]

        assert count_rows_up_to_date(rows) == 1
