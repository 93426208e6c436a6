from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List, Optional

import yaml

from .types import ConfigCollections

COLLECTIONS = ("pressures", "generators", "systems", "actions")


def _find_file(config_dir: Path, name: str) -> Optional[Path]:
    for suffix in (".json", ".yml", ".yaml"):
        path = config_dir / f"{name}{suffix}"
        if path.exists():
            return path
    return None


def _read(path: Path) -> Any:
    raw = path.read_text(encoding="utf-8")
    try:
        if path.suffix == ".json":
            return json.loads(raw)
        return yaml.safe_load(raw)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ValueError(f"Invalid configuration file: {path}: {e}")


def _as_records(data: Any, path: Path) -> List[Any]:
    """Accept either a list of records or an id-keyed mapping of records."""
    if data is None:
        return []
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        records = []
        for key, value in data.items():
            if isinstance(value, dict) and "id" not in value:
                value = {"id": key, **value}
            records.append(value)
        return records
    raise ValueError(f"Configuration file must contain a list or mapping of records: {path}")


def load_collection(config_dir: Path, name: str) -> List[Any]:
    """Load one collection (`pressures`, `generators`, ...) from `config_dir`.

    Looks for `<name>.json`, then `<name>.yml`/`.yaml`. A missing file is an
    empty collection.
    """
    path = _find_file(config_dir, name)
    if path is None:
        return []
    return _as_records(_read(path), path)


def load_schema(config_dir: Path) -> dict:
    path = _find_file(config_dir, "schema")
    if path is None:
        return {}
    data = _read(path)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Schema file must contain an object: {path}")
    return data


def load_collections(config_dir: Path) -> ConfigCollections:
    if not config_dir.exists():
        raise FileNotFoundError(f"Configuration directory not found: {config_dir}")
    data = {name: load_collection(config_dir, name) for name in COLLECTIONS}
    return ConfigCollections(schema=load_schema(config_dir), **data)
