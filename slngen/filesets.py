"""Per-target source file selection."""
from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List, Sequence
import posixpath

from .axes import Target
from .errors import UnhandledAxisCombination


def normalize_path(path: str | Path) -> str:
    """Return ``path`` with forward slashes and redundant segments collapsed."""

    text = str(path).replace("\\", "/")
    return posixpath.normpath(text) if text else text


def unique_paths(paths: Iterable[str | Path]) -> List[str]:
    ordered: List[str] = []
    seen: set[str] = set()
    for path in paths:
        normalized = normalize_path(path)
        if normalized and normalized not in seen:
            seen.add(normalized)
            ordered.append(normalized)
    return ordered


def collect_sources(root: Path, extensions: Iterable[str]) -> List[str]:
    """List files below ``root`` whose suffix is in ``extensions``, relative to ``root`` and sorted."""

    allowed = {ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in extensions}
    if not root.is_dir():
        raise FileNotFoundError(f"Source root '{root}' does not exist")
    found = [
        path.relative_to(root).as_posix()
        for path in root.rglob("*")
        if path.is_file() and path.suffix.lower() in allowed
    ]
    return sorted(found)


def _as_tuple(value: str | Sequence[str]) -> tuple[str, ...]:
    if isinstance(value, str):
        return (value,)
    return tuple(str(item) for item in value)


class FileSetResolver:
    """Narrows a project's default file set to the files of the active axis values.

    Files are registered as owned by a selector (one or more axes) and a
    value tuple of that selector. For a target, every file owned by an
    inactive value is excluded unless the active value owns it as well.
    Files owned by no value are axis independent and always kept.
    """

    def __init__(self, owner: str = "<file set>") -> None:
        self._owner = owner
        self._owners: Dict[tuple[str, ...], Dict[tuple[str, ...], List[str]]] = {}

    def register(self, axes: str | Sequence[str], values: str | Sequence[str], files: Iterable[str | Path]) -> None:
        selector = _as_tuple(axes)
        key = _as_tuple(values)
        if len(selector) != len(key):
            raise ValueError(f"Selector {selector} expects {len(selector)} value(s), got {key}")
        bucket = self._owners.setdefault(selector, {}).setdefault(key, [])
        for path in unique_paths(files):
            if path not in bucket:
                bucket.append(path)

    def selectors(self) -> tuple[tuple[str, ...], ...]:
        return tuple(self._owners)

    def owned_files(self, axes: str | Sequence[str], values: str | Sequence[str]) -> tuple[str, ...]:
        return tuple(self._owners.get(_as_tuple(axes), {}).get(_as_tuple(values), ()))

    def _active_values(self, selector: tuple[str, ...], target: Target) -> tuple[str, ...]:
        active = tuple(target.get(axis) for axis in selector)
        if any(value is None for value in active):
            raise UnhandledAxisCombination(
                self._owner, target.name, dict(zip(selector, active))
            )
        return active  # type: ignore[return-value]

    def exclusions(self, target: Target) -> List[str]:
        excluded: List[str] = []
        seen: set[str] = set()
        for selector, owners in self._owners.items():
            active = self._active_values(selector, target)
            keep = set(owners.get(active, ()))
            for values, files in owners.items():
                if values == active:
                    continue
                for path in files:
                    if path not in keep and path not in seen:
                        seen.add(path)
                        excluded.append(path)
        return excluded

    def resolve_with_exclusions(
        self,
        default_files: Iterable[str | Path],
        target: Target,
    ) -> tuple[List[str], List[str]]:
        """Return ``(resolved, excluded)``; exclusions absent from the defaults are ignored."""

        defaults = unique_paths(default_files)
        excluded = set(self.exclusions(target))
        resolved = [path for path in defaults if path not in excluded]
        applied = [path for path in defaults if path in excluded]
        return resolved, applied

    def resolve(self, default_files: Iterable[str | Path], target: Target) -> List[str]:
        resolved, _ = self.resolve_with_exclusions(default_files, target)
        return resolved


__all__ = ["FileSetResolver", "collect_sources", "normalize_path", "unique_paths"]
