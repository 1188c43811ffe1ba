"""Loading solution declarations, profile overrides and global settings from disk."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Sequence

from core.config_loader import (
    collect_config_files,
    load_config_file,
    merge_mappings,
    normalize_string_list,
    resolve_config_paths,
)
from core.console import Console

from .axes import AxisRegistry
from .configuration import OutputKind
from .imanim import builtin_solutions
from .pipeline import AxisSwitch, Contribution, PathLayout
from .profiles import ProfileRegistry
from .project import Project, ProjectDependency
from .solution import Solution, SolutionLayout


COMBINATION_SEPARATOR = ","

_PROJECT_KEYS = {
    "name",
    "kind",
    "source_root",
    "files",
    "axes",
    "dependencies",
    "layout",
    "switches",
}
_SETTING_KEYS = set(Contribution.__dataclass_fields__) - {"files"}


@dataclass(slots=True)
class GlobalConfig:
    log_level: str = "none"
    workers: int = 1
    timeout: float | None = None
    output_dir: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "GlobalConfig":
        global_section = data.get("global", {}) if isinstance(data, Mapping) else {}
        if not isinstance(global_section, Mapping):
            raise TypeError("[global] must be a table")
        log_level = str(global_section.get("log_level", "none")).strip().lower()
        if log_level not in Console.LEVELS:
            allowed = ", ".join(Console.LEVELS)
            raise ValueError(f"global.log_level '{log_level}' is not supported (allowed: {allowed})")
        workers = global_section.get("workers", 1)
        if isinstance(workers, bool) or not isinstance(workers, int) or workers < 1:
            raise ValueError("global.workers must be a positive integer")
        timeout = global_section.get("timeout")
        if timeout is not None:
            if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
                raise ValueError("global.timeout must be a positive number of seconds")
            timeout = float(timeout)
        output_dir = global_section.get("output_dir")
        return cls(
            log_level=log_level,
            workers=workers,
            timeout=timeout,
            output_dir=str(output_dir) if output_dir else None,
        )


def _parse_switches(project: str, data: Any) -> List[AxisSwitch]:
    """Parse ``{axis: {value: contribution}}`` tables.

    A key joining several axes with ``,`` switches on their combination; its
    case keys join the values the same way.
    """

    if data is None:
        return []
    if not isinstance(data, Mapping):
        raise TypeError(f"projects.{project}.switches must be a table")

    switches: List[AxisSwitch] = []
    for raw_axes, raw_cases in data.items():
        label = f"projects.{project}.switches.{raw_axes}"
        if not isinstance(raw_cases, Mapping):
            raise TypeError(f"{label} must be a table of cases")
        axes = tuple(part.strip() for part in str(raw_axes).split(COMBINATION_SEPARATOR))
        cases = []
        for raw_values, raw_contribution in raw_cases.items():
            values = tuple(part.strip() for part in str(raw_values).split(COMBINATION_SEPARATOR))
            if len(values) != len(axes):
                raise ValueError(f"{label}.{raw_values} must name one value per axis {axes}")
            cases.append((values, Contribution.from_mapping(raw_contribution, label=f"{label}.{raw_values}")))
        switches.append(AxisSwitch(axes=axes, cases=tuple(cases)))
    return switches


def parse_project(data: Mapping[str, Any]) -> Project:
    if not isinstance(data, Mapping):
        raise TypeError("[[projects]] entries must be tables")
    name = data.get("name")
    if not name or not str(name).strip():
        raise ValueError("projects.name is required")
    name = str(name).strip()
    unknown = {str(key) for key in data if str(key) not in _PROJECT_KEYS | _SETTING_KEYS}
    if unknown:
        raise ValueError(f"Project '{name}' contains unknown keys: {', '.join(sorted(unknown))}")

    raw_kind = str(data.get("kind", "exe")).strip().lower()
    try:
        kind = OutputKind(raw_kind)
    except ValueError:
        allowed = ", ".join(item.value for item in OutputKind)
        raise ValueError(f"projects.{name}.kind '{raw_kind}' is not supported (allowed: {allowed})") from None

    dependencies_section = data.get("dependencies", [])
    dependencies: List[ProjectDependency] = []
    if dependencies_section:
        if isinstance(dependencies_section, Sequence) and not isinstance(dependencies_section, (str, bytes)):
            for entry in dependencies_section:
                dependencies.append(ProjectDependency.from_value(entry))
        else:
            raise TypeError(f"projects.{name}.dependencies must be an array of tables or strings")

    layout_section = data.get("layout")
    layout = None
    if layout_section is not None:
        if not isinstance(layout_section, Mapping):
            raise TypeError(f"projects.{name}.layout must be a table")
        layout = PathLayout.from_mapping(layout_section)

    settings = Contribution.from_mapping(
        {key: value for key, value in data.items() if key in _SETTING_KEYS},
        label=f"projects.{name}",
    )
    return Project(
        name=name,
        kind=kind,
        source_root=str(data.get("source_root", "{{root}}")),
        files=tuple(normalize_string_list(data.get("files"), field_name=f"projects.{name}.files")),
        axes=tuple(normalize_string_list(data.get("axes"), field_name=f"projects.{name}.axes")),
        settings=settings,
        switches=tuple(_parse_switches(name, data.get("switches"))),
        dependencies=tuple(dependencies),
        layout=layout,
    )


@dataclass(slots=True)
class SolutionDefinition:
    """A solution parsed from a declaration file, before it is bound to a root."""

    name: str
    registry: AxisRegistry
    projects: List[Project]
    profiles: List[str] = field(default_factory=lambda: ["Debug", "Release"])
    allow: List[Any] | None = None
    layout: SolutionLayout = field(default_factory=SolutionLayout)
    variables: Dict[str, str] = field(default_factory=dict)
    root: str | None = None
    description: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "SolutionDefinition":
        solution_section = data.get("solution")
        if not isinstance(solution_section, Mapping):
            raise ValueError("[solution] section is required in solution configuration")
        name = solution_section.get("name")
        if not name or not str(name).strip():
            raise ValueError("solution.name is required")
        name = str(name).strip()

        profiles = normalize_string_list(solution_section.get("profiles"), field_name="solution.profiles")
        allow = solution_section.get("allow")
        if allow is not None and (isinstance(allow, (str, bytes)) or not isinstance(allow, Sequence)):
            raise TypeError("solution.allow must be an array of combinations")

        layout_section = solution_section.get("layout", {})
        if not isinstance(layout_section, Mapping):
            raise TypeError("solution.layout must be a table")

        variables_section = solution_section.get("variables", {})
        if not isinstance(variables_section, Mapping):
            raise TypeError("solution.variables must be a table")

        axes_section = data.get("axes", {})
        if not isinstance(axes_section, Mapping):
            raise TypeError("[axes] must be a table")

        projects_section = data.get("projects", [])
        if isinstance(projects_section, (str, bytes)) or not isinstance(projects_section, Sequence):
            raise TypeError("[[projects]] must be an array of tables")
        projects = [parse_project(entry) for entry in projects_section]
        if not projects:
            raise ValueError(f"Solution '{name}' declares no projects")

        root = solution_section.get("root")
        description = solution_section.get("description")
        return cls(
            name=name,
            registry=AxisRegistry.from_mapping(axes_section),
            projects=projects,
            profiles=profiles or ["Debug", "Release"],
            allow=list(allow) if allow is not None else None,
            layout=SolutionLayout.from_mapping(layout_section),
            variables={str(key): str(value) for key, value in variables_section.items()},
            root=str(root) if root else None,
            description=str(description) if description else None,
        )

    def to_solution(self, root: Path) -> Solution:
        base = Path(self.root) if self.root else Path(".")
        solution_root = base if base.is_absolute() else root / base
        return Solution(
            name=self.name,
            axes=tuple(self.registry),
            projects=tuple(self.projects),
            profiles=tuple(self.profiles),
            allow=tuple(self.allow) if self.allow is not None else None,
            layout=self.layout,
            variables=self.variables,
            root=solution_root.as_posix(),
            description=self.description,
        )


@dataclass(slots=True)
class ConfigurationStore:
    root: Path
    global_config: GlobalConfig
    profiles: ProfileRegistry
    solutions: Dict[str, Solution]
    sources: Dict[str, str] = field(default_factory=dict)
    config_dirs: tuple[Path, ...] = field(default_factory=tuple)

    @classmethod
    def builtin(cls, root: Path) -> "ConfigurationStore":
        """Store holding only the built-in solutions and profiles."""

        solutions = builtin_solutions(root.as_posix())
        return cls(
            root=root,
            global_config=GlobalConfig(),
            profiles=ProfileRegistry.with_builtins(),
            solutions=solutions,
            sources={name: "<builtin>" for name in solutions},
        )

    @classmethod
    def from_directory(cls, root: Path) -> "ConfigurationStore":
        return cls.from_directories(root, [root / "config"])

    @classmethod
    def from_directories(cls, root: Path, directories: Iterable[Path]) -> "ConfigurationStore":
        resolved_dirs, missing_dirs = resolve_config_paths(root, directories)
        if missing_dirs and not resolved_dirs:
            missing_display = ", ".join(str(path) for path in missing_dirs)
            raise FileNotFoundError(f"No configuration directories found. Missing: {missing_display}")

        store = cls.builtin(root)
        global_data: Mapping[str, Any] = {}

        for config_dir in resolved_dirs:
            top_level_files = collect_config_files(config_dir)
            global_path = top_level_files.pop("config", None)
            if global_path is not None:
                global_data = merge_mappings(global_data, load_config_file(global_path))

            profiles_path = top_level_files.pop("profiles", None)
            if profiles_path is not None:
                store.profiles.merge_from_mapping(load_config_file(profiles_path))

            solutions_dir = config_dir / "solutions"
            if not solutions_dir.exists():
                continue

            for _, path in sorted(collect_config_files(solutions_dir).items()):
                definition = SolutionDefinition.from_mapping(load_config_file(path))
                store.solutions[definition.name] = definition.to_solution(root)
                store.sources[definition.name] = str(path)

        store.global_config = GlobalConfig.from_mapping(global_data)
        store.config_dirs = resolved_dirs
        return store

    def list_solutions(self) -> Iterable[str]:
        return self.solutions.keys()

    def get_solution(self, name: str) -> Solution:
        if name not in self.solutions:
            available = ", ".join(sorted(self.solutions)) or "<none>"
            raise KeyError(f"Solution '{name}' not found. Available solutions: {available}")
        return self.solutions[name]


__all__ = [
    "ConfigurationStore",
    "GlobalConfig",
    "SolutionDefinition",
    "parse_project",
]
