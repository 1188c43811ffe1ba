"""Resolution-time errors raised while generating a build matrix.

Every error aborts the whole generation run; none of them are retried.
"""
from __future__ import annotations

from typing import Any, Mapping, Sequence


class GenerationError(ValueError):
    """Base class for errors that abort a generation run."""


class EmptyAxis(GenerationError):
    def __init__(self, axis: str) -> None:
        super().__init__(f"Axis '{axis}' declares no values")
        self.axis = axis


class InvalidCombination(GenerationError):
    def __init__(self, entry: Any, reason: str) -> None:
        super().__init__(f"Invalid combination {entry!r}: {reason}")
        self.entry = entry
        self.reason = reason


class DuplicateTarget(GenerationError):
    def __init__(self, target_name: str) -> None:
        super().__init__(f"Target '{target_name}' would be expanded more than once")
        self.target_name = target_name


class PathCollision(GenerationError):
    def __init__(self, project: str, path: str, first: str, second: str) -> None:
        super().__init__(
            f"Project '{project}' resolves targets '{first}' and '{second}' to the same path {path}"
        )
        self.project = project
        self.path = path
        self.targets = (first, second)


class UnhandledAxisCombination(GenerationError):
    def __init__(self, project: str, target_name: str, values: Mapping[str, str | None]) -> None:
        rendered = ", ".join(f"{axis}={value}" for axis, value in values.items())
        super().__init__(
            f"Project '{project}' has no configuration for {rendered} (target '{target_name}')"
        )
        self.project = project
        self.target_name = target_name
        self.values = dict(values)


class CyclicDependency(GenerationError):
    def __init__(self, cycle: Sequence[str]) -> None:
        super().__init__(f"Circular dependency detected: {' -> '.join(cycle)}")
        self.cycle = tuple(cycle)


class UnknownProject(GenerationError, KeyError):
    def __init__(self, name: str, available: Sequence[str], *, referenced_by: str | None = None) -> None:
        listing = ", ".join(sorted(available)) or "<none>"
        if referenced_by:
            message = f"Dependency '{name}' of project '{referenced_by}' not found. Available projects: {listing}"
        else:
            message = f"Project '{name}' not found. Available projects: {listing}"
        super().__init__(message)
        self.name = name

    def __str__(self) -> str:
        return str(self.args[0])


class IncompleteConfiguration(GenerationError):
    def __init__(self, project: str, target_name: str, missing: Sequence[str]) -> None:
        super().__init__(
            f"Configuration of '{project}' for target '{target_name}' left unset: {', '.join(missing)}"
        )
        self.project = project
        self.target_name = target_name
        self.missing = tuple(missing)


class GenerationTimeout(GenerationError):
    def __init__(self, timeout: float, pending: Sequence[str]) -> None:
        super().__init__(
            f"Generation exceeded {timeout:g}s with {len(pending)} target(s) unresolved: {', '.join(pending)}"
        )
        self.timeout = timeout
        self.pending = tuple(pending)


__all__ = [
    "CyclicDependency",
    "DuplicateTarget",
    "EmptyAxis",
    "GenerationError",
    "GenerationTimeout",
    "IncompleteConfiguration",
    "InvalidCombination",
    "PathCollision",
    "UnhandledAxisCombination",
    "UnknownProject",
]
