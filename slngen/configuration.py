"""The per-(project, target) configuration accumulator."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping

from .axes import Target
from .errors import IncompleteConfiguration


class OutputKind(str, Enum):
    EXE = "exe"
    LIB = "lib"
    DLL = "dll"

    @property
    def suffix(self) -> str:
        return f".{self.value}"


def parse_define(text: str) -> tuple[str, str | None]:
    """Split ``NAME=VALUE`` into its parts; a bare ``NAME`` is a flag-only define."""

    name, separator, value = text.partition("=")
    name = name.strip()
    if not name:
        raise ValueError(f"Invalid preprocessor define '{text}'")
    return name, (value.strip() if separator else None)


def normalize_defines(raw: Any) -> Dict[str, str | None]:
    """Accept ``["A", "B=1"]`` or ``{"A": None, "B": 1}`` and return an ordered mapping."""

    if raw is None:
        return {}
    if isinstance(raw, Mapping):
        return {str(key): (None if value is None or value is True else str(value)) for key, value in raw.items()}
    if isinstance(raw, str):
        raw = [raw]
    defines: Dict[str, str | None] = {}
    for item in raw:
        name, value = parse_define(str(item))
        defines[name] = value
    return defines


def _extend_unique(target: List[str], values: Iterable[str]) -> None:
    existing = set(target)
    for value in values:
        if value not in existing:
            target.append(value)
            existing.add(value)


_LIST_FIELDS = (
    "include_paths",
    "exported_include_paths",
    "library_paths",
    "libraries",
    "compiler_options",
    "linker_options",
    "options",
    "dependencies",
    "excluded_files",
    "source_files",
)

_REQUIRED_FIELDS = (
    "output_kind",
    "name",
    "project_file_name",
    "output_path",
    "intermediate_path",
)


@dataclass(slots=True)
class Configuration:
    """Mutable build descriptor populated by the configuration pipeline.

    List fields keep insertion order and never hold duplicates; defines are
    keyed by name so a later write replaces an earlier value.
    """

    project: str
    target: Target
    output_kind: OutputKind | None = None
    name: str | None = None
    project_file_name: str | None = None
    project_path: str | None = None
    output_path: str | None = None
    intermediate_path: str | None = None
    target_library_path: str | None = None
    working_directory: str | None = None
    include_paths: List[str] = field(default_factory=list)
    exported_include_paths: List[str] = field(default_factory=list)
    library_paths: List[str] = field(default_factory=list)
    libraries: List[str] = field(default_factory=list)
    defines: Dict[str, str | None] = field(default_factory=dict)
    compiler_options: List[str] = field(default_factory=list)
    linker_options: List[str] = field(default_factory=list)
    options: List[str] = field(default_factory=list)
    dependencies: List[str] = field(default_factory=list)
    excluded_files: List[str] = field(default_factory=list)
    source_files: List[str] = field(default_factory=list)

    def add(self, field_name: str, values: Iterable[str]) -> None:
        if field_name not in _LIST_FIELDS:
            raise AttributeError(f"Configuration has no list field '{field_name}'")
        _extend_unique(getattr(self, field_name), (str(value) for value in values))

    def add_include_paths(self, *paths: str) -> None:
        self.add("include_paths", paths)

    def add_exported_include_paths(self, *paths: str) -> None:
        self.add("exported_include_paths", paths)

    def add_library_paths(self, *paths: str) -> None:
        self.add("library_paths", paths)

    def add_libraries(self, *libraries: str) -> None:
        self.add("libraries", libraries)

    def add_compiler_options(self, *options: str) -> None:
        self.add("compiler_options", options)

    def add_linker_options(self, *options: str) -> None:
        self.add("linker_options", options)

    def add_options(self, *options: str) -> None:
        self.add("options", options)

    def add_defines(self, *defines: str) -> None:
        for text in defines:
            name, value = parse_define(text)
            self.defines[name] = value

    def update_defines(self, defines: Mapping[str, str | None]) -> None:
        self.defines.update(defines)

    @property
    def output_file(self) -> str | None:
        """Final artifact path; static libraries land in the target library path."""

        if self.output_kind is None:
            return None
        directory = self.output_path
        if self.output_kind is OutputKind.LIB and self.target_library_path:
            directory = self.target_library_path
        if directory is None:
            return None
        return f"{directory}/{self.project}{self.output_kind.suffix}"

    def missing_fields(self) -> List[str]:
        return [name for name in _REQUIRED_FIELDS if getattr(self, name) is None]

    def finalize(self) -> "Configuration":
        missing = self.missing_fields()
        if missing:
            raise IncompleteConfiguration(self.project, self.target.name, missing)
        return self

    def to_mapping(self) -> Dict[str, Any]:
        return {
            "project": self.project,
            "target": self.target.to_mapping(),
            "output_kind": self.output_kind.value if self.output_kind else None,
            "name": self.name,
            "project_file_name": self.project_file_name,
            "project_path": self.project_path,
            "output_path": self.output_path,
            "output_file": self.output_file,
            "intermediate_path": self.intermediate_path,
            "target_library_path": self.target_library_path,
            "working_directory": self.working_directory,
            "include_paths": list(self.include_paths),
            "exported_include_paths": list(self.exported_include_paths),
            "library_paths": list(self.library_paths),
            "libraries": list(self.libraries),
            "defines": dict(self.defines),
            "compiler_options": list(self.compiler_options),
            "linker_options": list(self.linker_options),
            "options": list(self.options),
            "dependencies": list(self.dependencies),
            "excluded_files": list(self.excluded_files),
            "source_files": list(self.source_files),
        }


__all__ = ["Configuration", "OutputKind", "normalize_defines", "parse_define"]
