"""Tests for datahouse/registry.py."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from datahouse.configuration import WorkspaceConfiguration
from datahouse.errors import ConfigurationError
from datahouse.registry import DataSourceRegistry, default_registry, load_factory, resolve_active_sources
from datahouse.sources.hgnc import HGNCDataSource


def _broken_factory():
    raise RuntimeError("missing optional dependency")


class TestResolveActiveSources:
    def test_filters_to_configured_ids_in_registry_order(self, source_factory):
        """Configuration {A, B} over registry A, B, C resolves to A, B."""
        factories = [source_factory("A"), source_factory("B"), source_factory("C")]
        config = WorkspaceConfiguration(data_source_ids=["B", "A"])

        sources = resolve_active_sources(factories, config)

        assert [s.source_id for s in sources] == ["A", "B"]

    def test_instantiation_failure_is_skipped(self, source_factory, caplog):
        factories = [source_factory("A"), _broken_factory, source_factory("B")]
        config = WorkspaceConfiguration(data_source_ids=["A", "B"])

        with caplog.at_level(logging.ERROR):
            sources = resolve_active_sources(factories, config)

        assert [s.source_id for s in sources] == ["A", "B"]
        assert "Failed to instantiate data source" in caplog.text
        assert "_broken_factory" in caplog.text

    def test_missing_source_id_is_instantiation_failure(self, source_factory):
        factories = [source_factory("")]
        config = WorkspaceConfiguration(data_source_ids=[""])

        assert resolve_active_sources(factories, config) == []

    def test_duplicate_ids_are_kept(self, source_factory):
        factories = [source_factory("A"), source_factory("A")]
        config = WorkspaceConfiguration(data_source_ids=["A"])

        assert len(resolve_active_sources(factories, config)) == 2

    def test_stable_order_across_calls(self, source_factory):
        factories = [source_factory(x) for x in "DCBA"]
        config = WorkspaceConfiguration(data_source_ids=list("ABCD"))

        first = [s.source_id for s in resolve_active_sources(factories, config)]
        second = [s.source_id for s in resolve_active_sources(factories, config)]

        assert first == second == ["D", "C", "B", "A"]


class TestDataSourceRegistry:
    def test_register_appends(self, source_factory):
        registry = DataSourceRegistry()
        a, b = source_factory("A"), source_factory("B")

        registry.register(a)
        registry.register(b)

        assert registry.factories() == [a, b]
        assert len(registry) == 2

    def test_factories_returns_copy(self, source_factory):
        registry = DataSourceRegistry([source_factory("A")])

        registry.factories().clear()

        assert len(registry) == 1

    def test_default_registry_has_builtins(self):
        ids = [factory.source_id for factory in default_registry()]

        assert "HGNC" in ids
        assert "DrugBank" in ids

    def test_register_inventory(self, tmp_path: Path, caplog):
        inventory = tmp_path / "sources.yaml"
        inventory.write_text(
            "data_sources:\n"
            "  - factory: \"datahouse.sources.hgnc:HGNCDataSource\"\n"
            "  - \"no_such_module.sources:Missing\"\n",
            encoding="utf-8",
        )
        registry = DataSourceRegistry()

        with caplog.at_level(logging.ERROR):
            added = registry.register_inventory(inventory)

        assert added == 1
        assert registry.factories() == [HGNCDataSource]
        assert "no_such_module" in caplog.text

    def test_missing_inventory_is_configuration_error(self, tmp_path: Path):
        with pytest.raises(ConfigurationError):
            DataSourceRegistry().register_inventory(tmp_path / "absent.yaml")


class TestLoadFactory:
    def test_resolves_reference(self):
        assert load_factory("datahouse.sources.hgnc:HGNCDataSource") is HGNCDataSource

    @pytest.mark.parametrize("reference", ["datahouse.sources.hgnc", ":HGNCDataSource", "datahouse.sources.hgnc:"])
    def test_rejects_malformed_reference(self, reference):
        with pytest.raises(ValueError):
            load_factory(reference)

    def test_rejects_non_callable(self):
        with pytest.raises(TypeError):
            load_factory("datahouse.sources.hgnc:HGNC_URL")
