#!/usr/bin/env python
from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Dict, List

from datahouse.configuration import CONFIG_FILE_NAME, WorkspaceConfiguration
from datahouse.metadata import GRAPH_DIR, METADATA_FILE_NAME, RDF_DIR, SOURCE_FILES_DIR, SourceMetadata
from datahouse.workspace import SOURCES_DIRECTORY


def _read_json(path: Path) -> Dict:
    return json.loads(path.read_text(encoding="utf-8"))


def _validate_source(source_dir: Path, source_id: str, errors: List[str], warnings: List[str]) -> None:
    metadata_path = source_dir / METADATA_FILE_NAME
    if not metadata_path.exists():
        warnings.append(f"Source {source_id} has no {METADATA_FILE_NAME}; it has never been processed")
        return
    try:
        metadata = SourceMetadata.from_dict(_read_json(metadata_path))
    except (OSError, ValueError, TypeError, AttributeError) as exc:
        errors.append(f"Source {source_id} metadata unreadable: {exc}")
        return

    if metadata.is_empty:
        warnings.append(f"Source {source_id} has no integrated version")
        return
    if metadata.update_date_time is None:
        warnings.append(f"Source {source_id} metadata missing update_date_time")
    if not metadata.source_file_names:
        errors.append(f"Source {source_id} version {metadata.version} lists no source files")

    for name in metadata.source_file_names:
        path = source_dir / SOURCE_FILES_DIR / name
        if not path.exists():
            errors.append(f"Source {source_id} source file missing: {path}")
        elif path.stat().st_size <= 0:
            warnings.append(f"Source {source_id} source file is empty: {path}")

    for folder in (RDF_DIR, GRAPH_DIR):
        if not any((source_dir / folder).glob(f"{source_id}.*")):
            warnings.append(f"Source {source_id} has no {folder} export")


def run(workspace: str, fail_on_warning: bool = False) -> int:
    errors: List[str] = []
    warnings: List[str] = []
    root = Path(workspace)

    config_path = root / CONFIG_FILE_NAME
    if not config_path.exists():
        errors.append(f"Workspace configuration missing: {config_path}")
        return print_result(errors, warnings, fail_on_warning)
    try:
        configuration = WorkspaceConfiguration.from_dict(_read_json(config_path))
    except (OSError, ValueError, TypeError) as exc:
        errors.append(f"Workspace configuration unreadable: {exc}")
        return print_result(errors, warnings, fail_on_warning)

    if not configuration.data_source_ids:
        warnings.append("No data sources are configured")

    sources_root = root / SOURCES_DIRECTORY
    for source_id in configuration.data_source_ids:
        _validate_source(sources_root / source_id, source_id, errors, warnings)

    if sources_root.is_dir():
        for path in sorted(p for p in sources_root.iterdir() if p.is_dir()):
            if not configuration.is_active(path.name):
                warnings.append(f"Workspace holds data of inactive source: {path.name}")

    return print_result(errors, warnings, fail_on_warning)


def print_result(errors: List[str], warnings: List[str], fail_on_warning: bool = False) -> int:
    if errors:
        print("Workspace validation failed with errors:")
        for item in errors:
            print(f"- ERROR: {item}")
    else:
        print("Workspace validation errors: none")

    if warnings:
        print("Workspace validation warnings:")
        for item in warnings:
            print(f"- WARNING: {item}")

    if errors or (fail_on_warning and warnings):
        return 1
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Validate the files of a datahouse workspace")
    parser.add_argument("workspace")
    parser.add_argument("--fail-on-warning", action="store_true", default=False)
    args = parser.parse_args()

    raise SystemExit(run(args.workspace, args.fail_on_warning))


if __name__ == "__main__":
    main()
