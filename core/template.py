"""Placeholder substitution for path and name templates."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping
import re


_PLACEHOLDER_PATTERN = re.compile(r"\{\{([^{}]+)\}\}")
_SINGLE_PLACEHOLDER_PATTERN = re.compile(r"^\s*\{\{([^{}]+)\}\}\s*$")


class TemplateError(ValueError):
    """Raised when template resolution fails."""


@dataclass(slots=True)
class TemplateResolver:
    """Resolves ``{{dotted.path}}`` placeholders against a nested mapping context.

    Context values may contain placeholders themselves; they are resolved
    recursively and self-references are reported as circular dependencies.
    A template consisting of a single placeholder returns the raw context
    value, anything else is substituted as text.
    """

    context: Mapping[str, Any]
    _cache: dict[str, Any] = field(default_factory=dict, init=False, repr=False)

    def resolve(self, value: Any) -> Any:
        return self._resolve_value(value, stack=[])

    def clear_cache(self) -> None:
        self._cache.clear()

    def _resolve_value(self, value: Any, *, stack: list[str]) -> Any:
        if isinstance(value, str):
            return self._resolve_string(value, stack=stack)
        if isinstance(value, list):
            return [self._resolve_value(item, stack=list(stack)) for item in value]
        if isinstance(value, tuple):
            return tuple(self._resolve_value(item, stack=list(stack)) for item in value)
        if isinstance(value, dict):
            return {key: self._resolve_value(item, stack=list(stack)) for key, item in value.items()}
        return value

    def _resolve_string(self, value: str, *, stack: list[str]) -> Any:
        single = _SINGLE_PLACEHOLDER_PATTERN.match(value)
        if single:
            return self._resolve_path(single.group(1).strip(), stack=stack)
        if not _PLACEHOLDER_PATTERN.search(value):
            return value

        def replacement(match: re.Match[str]) -> str:
            return str(self._resolve_path(match.group(1).strip(), stack=stack))

        return _PLACEHOLDER_PATTERN.sub(replacement, value)

    def _resolve_path(self, path: str, *, stack: list[str]) -> Any:
        if path in self._cache:
            return self._cache[path]
        if path in stack:
            raise TemplateError(f"Circular dependency detected: {' -> '.join(stack + [path])}")

        stack.append(path)
        resolved = self._resolve_value(self._lookup_raw(path), stack=stack)
        stack.pop()
        self._cache[path] = resolved
        return resolved

    def _lookup_raw(self, path: str) -> Any:
        current: Any = self.context
        for part in path.split("."):
            if isinstance(current, Mapping) and part in current:
                current = current[part]
                continue
            raise TemplateError(f"Cannot resolve path '{path}' in template context")
        return current


def extract_placeholders(value: Any) -> set[str]:
    """Collect all placeholder paths referenced within *value*."""

    placeholders: set[str] = set()

    def _collect(obj: Any) -> None:
        if isinstance(obj, str):
            for match in _PLACEHOLDER_PATTERN.finditer(obj):
                path = match.group(1).strip()
                if path:
                    placeholders.add(path)
        elif isinstance(obj, Mapping):
            for item in obj.values():
                _collect(item)
        elif isinstance(obj, (list, tuple)):
            for item in obj:
                _collect(item)

    _collect(value)
    return placeholders


__all__ = ["TemplateError", "TemplateResolver", "extract_placeholders"]
