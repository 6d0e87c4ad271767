"""Known data-source implementations and selection of the active ones."""

from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator, List

import yaml

from datahouse.configuration import WorkspaceConfiguration
from datahouse.errors import ConfigurationError
from datahouse.sources import BUILTIN_DATA_SOURCES, DataSource

logger = logging.getLogger(__name__)

DataSourceFactory = Callable[[], DataSource]


def _factory_name(factory: Any) -> str:
    module = getattr(factory, "__module__", None)
    name = getattr(factory, "__qualname__", None) or repr(factory)
    return f"{module}.{name}" if module else name


def load_factory(reference: str) -> DataSourceFactory:
    """Resolve ``"package.module:ClassName"`` to the named callable."""
    module_name, sep, attr = reference.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Expected 'module:attribute', got {reference!r}")
    target: Any = importlib.import_module(module_name)
    for part in attr.split("."):
        target = getattr(target, part)
    if not callable(target):
        raise TypeError(f"{reference} is not callable")
    return target


class DataSourceRegistry:
    """Append-only, ordered collection of data-source factories."""

    def __init__(self, factories: Iterable[DataSourceFactory] | None = None) -> None:
        self._factories: List[DataSourceFactory] = list(factories or [])

    def register(self, factory: DataSourceFactory) -> DataSourceFactory:
        self._factories.append(factory)
        return factory

    def factories(self) -> List[DataSourceFactory]:
        return list(self._factories)

    def register_inventory(self, path: str | Path) -> int:
        """Register the factories listed in a YAML plugin inventory.

        The file holds a ``data_sources`` list whose items are either a
        ``"module:Class"`` string or a mapping with a ``factory`` key. Entries
        that cannot be imported are logged and skipped.
        """
        path = Path(path)
        try:
            with path.open("r", encoding="utf-8") as fh:
                payload = yaml.safe_load(fh) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigurationError(f"Failed to read data source inventory '{path}': {exc}") from exc

        added = 0
        for entry in payload.get("data_sources", []) or []:
            reference = entry.get("factory") if isinstance(entry, dict) else entry
            try:
                self.register(load_factory(str(reference)))
                added += 1
            except (ImportError, AttributeError, TypeError, ValueError):
                logger.exception("Failed to load data source factory %r from %s", reference, path)
        return added

    def __iter__(self) -> Iterator[DataSourceFactory]:
        return iter(self.factories())

    def __len__(self) -> int:
        return len(self._factories)


_default_registry: DataSourceRegistry | None = None


def default_registry() -> DataSourceRegistry:
    global _default_registry
    if _default_registry is None:
        _default_registry = DataSourceRegistry(BUILTIN_DATA_SOURCES)
    return _default_registry


def resolve_active_sources(
    factories: Iterable[DataSourceFactory],
    configuration: WorkspaceConfiguration,
) -> List[DataSource]:
    sources: List[DataSource] = []
    for factory in factories:
        try:
            data_source = factory()
        except Exception:
            logger.exception("Failed to instantiate data source '%s'", _factory_name(factory))
            continue
        if configuration.is_active(data_source.source_id):
            sources.append(data_source)
    return sources
