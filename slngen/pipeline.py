"""Configuration pipeline: base defaults, project steps, axis switches, file resolution."""
from __future__ import annotations

from dataclasses import dataclass, field
from itertools import product
from pathlib import PurePosixPath, PureWindowsPath
import re
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Mapping, Sequence

from core.config_loader import normalize_string_list
from core.template import TemplateResolver

from .axes import AxisRegistry, Target
from .configuration import Configuration, normalize_defines
from .errors import UnhandledAxisCombination
from .filesets import FileSetResolver, normalize_path
from .profiles import ProfileRegistry

if TYPE_CHECKING:
    from .project import Project


Step = Callable[[Configuration, "StepContext"], None]

_ROOTED_TEMPLATE = re.compile(r"^\{\{\s*(root|project\.source_root)\s*\}\}")


def _is_absolute(path: str) -> bool:
    return PurePosixPath(path).is_absolute() or PureWindowsPath(path).is_absolute()


@dataclass(slots=True)
class StepContext:
    """Explicit substitution context handed to every pipeline step.

    Templates may reference ``{{root}}``, ``{{project.name}}``,
    ``{{project.source_root}}``, ``{{solution.name}}``, ``{{target.name}}``,
    ``{{target.slug}}``, ``{{target.profile}}``, ``{{target.<axis>}}`` and
    ``{{var.<name>}}`` for solution variables.
    """

    root: str
    project_name: str
    source_root_template: str
    target: Target
    solution: str | None = None
    variables: Mapping[str, str] = field(default_factory=dict)
    _resolver: TemplateResolver | None = field(default=None, init=False, repr=False)

    def template_context(self) -> Dict[str, Any]:
        return {
            "root": self.root,
            "project": {"name": self.project_name, "source_root": self.source_root_template},
            "solution": {"name": self.solution or ""},
            "target": self.target.template_context(),
            "var": dict(self.variables),
        }

    def resolve(self, template: str) -> str:
        if self._resolver is None:
            self._resolver = TemplateResolver(self.template_context())
        return str(self._resolver.resolve(template))

    def path(self, *parts: str) -> str:
        return normalize_path(self.resolve("/".join(parts)))

    @property
    def source_root(self) -> str:
        return self.path(self.source_root_template)

    def source_path(self, template: str) -> str:
        """Resolve ``template`` relative to the project source root unless it is rooted."""

        resolved = self.resolve(template).replace("\\", "/")
        if _ROOTED_TEMPLATE.match(template) or _is_absolute(resolved):
            return normalize_path(resolved)
        return normalize_path(f"{self.source_root}/{resolved}")


def _as_tuple(value: Any, *, field_name: str) -> tuple[str, ...]:
    if isinstance(value, tuple) and all(isinstance(item, str) for item in value):
        return value
    return tuple(normalize_string_list(list(value) if isinstance(value, (set, frozenset)) else value, field_name=field_name))


@dataclass(frozen=True, slots=True)
class Contribution:
    """Settings added to a configuration when a case is active.

    ``files`` are the source files owned by the case; they are compiled only
    while the case is active.
    """

    defines: tuple[str, ...] = ()
    include_paths: tuple[str, ...] = ()
    exported_include_paths: tuple[str, ...] = ()
    library_paths: tuple[str, ...] = ()
    libraries: tuple[str, ...] = ()
    compiler_options: tuple[str, ...] = ()
    linker_options: tuple[str, ...] = ()
    options: tuple[str, ...] = ()
    files: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        for name in self.__dataclass_fields__:
            object.__setattr__(self, name, _as_tuple(getattr(self, name), field_name=name))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, label: str = "contribution") -> "Contribution":
        if not isinstance(data, Mapping):
            raise TypeError(f"{label} must be a mapping")
        allowed = set(cls.__dataclass_fields__)
        unknown = {str(key) for key in data if str(key) not in allowed}
        if unknown:
            raise ValueError(f"{label} contains unknown keys: {', '.join(sorted(unknown))}")
        values: Dict[str, tuple[str, ...]] = {}
        for name in allowed:
            raw = data.get(name)
            if name == "defines" and isinstance(raw, Mapping):
                raw = [key if value is None else f"{key}={value}" for key, value in normalize_defines(raw).items()]
            values[name] = tuple(normalize_string_list(raw, field_name=f"{label}.{name}"))
        return cls(**values)

    def apply(self, conf: Configuration, ctx: StepContext) -> None:
        conf.add_defines(*(ctx.resolve(item) for item in self.defines))
        conf.add_include_paths(*(ctx.path(item) for item in self.include_paths))
        conf.add_exported_include_paths(*(ctx.path(item) for item in self.exported_include_paths))
        conf.add_library_paths(*(ctx.path(item) for item in self.library_paths))
        conf.add_libraries(*(ctx.resolve(item) for item in self.libraries))
        conf.add_compiler_options(*(ctx.resolve(item) for item in self.compiler_options))
        conf.add_linker_options(*(ctx.resolve(item) for item in self.linker_options))
        conf.add_options(*(ctx.resolve(item) for item in self.options))


@dataclass(frozen=True, slots=True)
class AxisSwitch:
    """A total mapping from the active values of ``axes`` to a contribution.

    A target whose values have no case is an error; there is no default branch.
    """

    axes: tuple[str, ...]
    cases: tuple[tuple[tuple[str, ...], Contribution], ...]

    def __post_init__(self) -> None:
        axes = (self.axes,) if isinstance(self.axes, str) else tuple(self.axes)
        cases = []
        for key, contribution in self.cases:
            values = (key,) if isinstance(key, str) else tuple(key)
            values = tuple(str(getattr(value, "value", value)) for value in values)
            if len(values) != len(axes):
                raise ValueError(f"Case {values} does not match switch axes {axes}")
            cases.append((values, contribution))
        object.__setattr__(self, "axes", axes)
        object.__setattr__(self, "cases", tuple(cases))

    @classmethod
    def on(cls, axis: str, cases: Mapping[Any, Contribution]) -> "AxisSwitch":
        return cls(axes=(axis,), cases=tuple(((key,), value) for key, value in cases.items()))

    @classmethod
    def combination(cls, axes: Sequence[str], cases: Mapping[Sequence[Any], Contribution]) -> "AxisSwitch":
        return cls(axes=tuple(axes), cases=tuple((tuple(key), value) for key, value in cases.items()))

    def case_for(self, target: Target) -> Contribution | None:
        active = tuple(target.get(axis) for axis in self.axes)
        for values, contribution in self.cases:
            if values == active:
                return contribution
        return None

    def apply(self, conf: Configuration, ctx: StepContext) -> None:
        contribution = self.case_for(ctx.target)
        if contribution is None:
            values = {axis: ctx.target.get(axis) for axis in self.axes}
            raise UnhandledAxisCombination(conf.project, ctx.target.name, values)
        contribution.apply(conf, ctx)

    def register_files(self, resolver: FileSetResolver, ctx: StepContext) -> None:
        for values, contribution in self.cases:
            resolver.register(self.axes, values, (ctx.source_path(path) for path in contribution.files))

    def missing_cases(
        self,
        registry: AxisRegistry,
        targets: Sequence[Target] | None = None,
    ) -> List[tuple[str, ...]]:
        handled = {values for values, _ in self.cases}
        if targets is None:
            domain: Iterable[tuple[str, ...]] = product(*(registry.get(axis).values for axis in self.axes))
        else:
            domain = dict.fromkeys(tuple(target[axis] for axis in self.axes) for target in targets)
        return [combo for combo in domain if combo not in handled]

    def unknown_cases(self, registry: AxisRegistry) -> List[tuple[str, ...]]:
        unknown: List[tuple[str, ...]] = []
        for values, _ in self.cases:
            for axis, value in zip(self.axes, values):
                if axis not in registry or value not in registry.get(axis):
                    unknown.append(values)
                    break
        return unknown


@dataclass(frozen=True, slots=True)
class PathLayout:
    """Naming templates applied by the base-defaults step.

    Every path template embeds ``{{target.name}}`` so targets never share
    output or intermediate directories.
    """

    configuration_name: str = "{{target.name}}"
    project_file_name: str = "{{project.name}}"
    project_path: str = "{{root}}/projects/{{project.name}}"
    output_path: str = "{{root}}/bin/{{project.name}}/{{target.name}}"
    intermediate_path: str = "{{root}}/tmp/{{project.name}}/{{target.name}}"
    target_library_path: str = "{{root}}/tmp/lib/{{target.name}}"
    working_directory: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PathLayout":
        allowed = set(cls.__dataclass_fields__)
        unknown = {str(key) for key in data if str(key) not in allowed}
        if unknown:
            raise ValueError(f"layout contains unknown keys: {', '.join(sorted(unknown))}")
        return cls(**{str(key): str(value) for key, value in data.items()})


class ConfigurationPipeline:
    """Runs the ordered configuration chain for one (project, target) pair.

    Order: base defaults, project settings, project steps, axis switches,
    file-set resolution. Each call builds a fresh accumulator, so running it
    twice for the same pair gives equal configurations.
    """

    def __init__(
        self,
        *,
        profiles: ProfileRegistry | None = None,
        layout: PathLayout | None = None,
        root: str = ".",
        solution: str | None = None,
        variables: Mapping[str, str] | None = None,
    ) -> None:
        self._profiles = profiles or ProfileRegistry.with_builtins()
        self._layout = layout or PathLayout()
        self._root = root
        self._solution = solution
        self._variables = dict(variables or {})

    def context_for(self, project: "Project", target: Target) -> StepContext:
        return StepContext(
            root=self._root,
            project_name=project.name,
            source_root_template=project.source_root,
            target=target,
            solution=self._solution,
            variables=self._variables,
        )

    def configure(self, project: "Project", target: Target) -> Configuration:
        ctx = self.context_for(project, target)
        conf = Configuration(project=project.name, target=target)
        self.apply_base_defaults(conf, project, ctx)
        project.settings.apply(conf, ctx)
        for step in project.steps:
            step(conf, ctx)
        for switch in project.switches:
            switch.apply(conf, ctx)
        self.resolve_files(conf, project, ctx)
        return conf.finalize()

    def apply_base_defaults(self, conf: Configuration, project: "Project", ctx: StepContext) -> None:
        layout = project.layout or self._layout
        conf.output_kind = project.kind
        conf.name = ctx.resolve(layout.configuration_name)
        conf.project_file_name = ctx.resolve(layout.project_file_name)
        conf.project_path = ctx.path(layout.project_path)
        conf.output_path = ctx.path(layout.output_path)
        conf.intermediate_path = ctx.path(layout.intermediate_path)
        conf.target_library_path = ctx.path(layout.target_library_path)
        if layout.working_directory is not None:
            conf.working_directory = ctx.path(layout.working_directory)
        self._profiles.get(ctx.target.profile).apply(conf)

    @staticmethod
    def file_resolver(project: "Project", ctx: StepContext) -> FileSetResolver:
        resolver = FileSetResolver(owner=project.name)
        for switch in project.switches:
            switch.register_files(resolver, ctx)
        return resolver

    def resolve_files(self, conf: Configuration, project: "Project", ctx: StepContext) -> None:
        defaults: Iterable[str] = (ctx.source_path(path) for path in project.files)
        resolved, excluded = self.file_resolver(project, ctx).resolve_with_exclusions(defaults, ctx.target)
        conf.add("source_files", resolved)
        conf.add("excluded_files", excluded)


__all__ = [
    "AxisSwitch",
    "ConfigurationPipeline",
    "Contribution",
    "PathLayout",
    "Step",
    "StepContext",
]
