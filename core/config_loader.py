"""Shared helpers for locating and loading declaration files."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Sequence

import json
import tomllib

import yaml


ConfigLoader = Callable[[Any], Any]


FILE_LOADERS: Dict[str, ConfigLoader] = {
    ".toml": tomllib.load,
    ".json": json.load,
    ".yaml": yaml.safe_load,
    ".yml": yaml.safe_load,
}
"""Mapping of file suffixes to loader callables."""

_BINARY_SUFFIXES = frozenset({".toml"})


def load_config_file(path: Path) -> Mapping[str, Any]:
    """Decode ``path`` with the loader registered for its suffix."""

    suffix = path.suffix.lower()
    loader = FILE_LOADERS.get(suffix)
    if loader is None:
        supported = ", ".join(sorted(FILE_LOADERS))
        raise ValueError(f"Unsupported configuration file extension: {suffix}. Supported: {supported}")

    if suffix in _BINARY_SUFFIXES:
        with path.open("rb") as handle:
            data = loader(handle)
    else:
        with path.open("r", encoding="utf-8") as handle:
            data = loader(handle)

    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise TypeError(f"Configuration file '{path}' must contain a mapping at the root")
    return data


def collect_config_files(directory: Path, *, suffixes: Iterable[str] | None = None) -> Dict[str, Path]:
    """Map file stems to declaration files directly inside ``directory``."""

    allowed = {suffix.lower() for suffix in (suffixes or FILE_LOADERS)}
    files: Dict[str, Path] = {}
    for path in sorted(directory.iterdir()):
        if not path.is_file() or path.suffix.lower() not in allowed:
            continue
        previous = files.get(path.stem)
        if previous is not None:
            raise ValueError(
                f"Multiple configuration files found for '{path.stem}': '{previous.name}' and '{path.name}'. "
                "Only one format per configuration entry is allowed."
            )
        files[path.stem] = path
    return files


def merge_mappings(base: Mapping[str, Any], overlay: Mapping[str, Any]) -> Dict[str, Any]:
    """Deep merge ``overlay`` on top of ``base``; nested mappings merge, everything else is replaced."""

    merged: Dict[str, Any] = dict(base)
    for key, value in overlay.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = merge_mappings(current, value)
        else:
            merged[key] = value
    return merged


def normalize_string_list(value: Any, *, field_name: str | None = None) -> List[str]:
    """Coerce ``value`` into a list of stripped, non-empty strings."""

    label = f"{field_name} " if field_name else ""
    if value is None:
        return []
    if isinstance(value, str):
        text = value.strip()
        return [text] if text else []
    if not isinstance(value, Sequence):
        raise TypeError(f"{label}must be a string or sequence of strings")

    items: List[str] = []
    for item in value:
        if not isinstance(item, str):
            raise TypeError(f"{label}entries must be strings")
        text = item.strip()
        if text:
            items.append(text)
    return items


def resolve_config_paths(root: Path, directories: Iterable[Path]) -> tuple[tuple[Path, ...], tuple[Path, ...]]:
    """Resolve ``directories`` against ``root`` and split them into existing and missing paths.

    A directory listed twice keeps only its last position so later entries take precedence.
    """

    ordered: List[Path] = []
    for raw in directories:
        path = raw if raw.is_absolute() else (root / raw).resolve()
        if path in ordered:
            ordered.remove(path)
        ordered.append(path)

    existing = tuple(path for path in ordered if path.exists())
    missing = tuple(path for path in ordered if not path.exists())
    return existing, missing


__all__ = [
    "ConfigLoader",
    "FILE_LOADERS",
    "collect_config_files",
    "load_config_file",
    "merge_mappings",
    "normalize_string_list",
    "resolve_config_paths",
]
