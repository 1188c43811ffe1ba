"""Solution declarations and assembly of per-target generation requests."""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Sequence

from core.console import ConsoleLike
from core.template import TemplateResolver, extract_placeholders

from .axes import Axis, AxisRegistry, Target, expand
from .configuration import Configuration, OutputKind
from .errors import (
    CyclicDependency,
    DuplicateTarget,
    GenerationError,
    GenerationTimeout,
    InvalidCombination,
    PathCollision,
    UnknownProject,
)
from .filesets import normalize_path
from .pipeline import ConfigurationPipeline
from .profiles import ProfileRegistry
from .project import Project


@dataclass(frozen=True, slots=True)
class SolutionLayout:
    configuration_name: str = "{{target.name}}"
    file_name: str = "{{solution.name}}"
    path: str = "{{root}}"

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "SolutionLayout":
        allowed = set(cls.__dataclass_fields__)
        unknown = {str(key) for key in data if str(key) not in allowed}
        if unknown:
            raise ValueError(f"solution layout contains unknown keys: {', '.join(sorted(unknown))}")
        return cls(**{str(key): str(value) for key, value in data.items()})


@dataclass(frozen=True, slots=True)
class Solution:
    name: str
    axes: tuple[Axis, ...]
    projects: tuple[Project, ...]
    profiles: tuple[str, ...] = ("Debug", "Release")
    allow: tuple[Any, ...] | None = None
    layout: SolutionLayout = SolutionLayout()
    variables: tuple[tuple[str, str], ...] = ()
    root: str = "."
    description: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "axes", tuple(self.axes))
        object.__setattr__(self, "projects", tuple(self.projects))
        object.__setattr__(self, "profiles", tuple(str(profile) for profile in self.profiles))
        if self.allow is not None:
            object.__setattr__(self, "allow", tuple(self.allow))
        if isinstance(self.variables, Mapping):
            object.__setattr__(self, "variables", tuple((str(k), str(v)) for k, v in self.variables.items()))

    def registry(self) -> AxisRegistry:
        return AxisRegistry(self.axes)

    def get_project(self, name: str) -> Project:
        for project in self.projects:
            if project.name == name:
                return project
        raise UnknownProject(name, [project.name for project in self.projects])

    def targets(self, *, allow: Iterable[Any] | None = None) -> List[Target]:
        return expand(self.axes, self.profiles, allow=self.allow if allow is None else allow)

    def with_root(self, root: str) -> "Solution":
        return Solution(
            name=self.name,
            axes=self.axes,
            projects=self.projects,
            profiles=self.profiles,
            allow=self.allow,
            layout=self.layout,
            variables=self.variables,
            root=root,
            description=self.description,
        )


def build_order(projects: Sequence[Project]) -> List[str]:
    """Return project names with every dependency before its dependents.

    Traversal follows declaration order so the result is stable.
    """

    by_name: Dict[str, Project] = {}
    for project in projects:
        if project.name in by_name:
            raise ValueError(f"Project '{project.name}' is declared more than once")
        by_name[project.name] = project

    visiting: List[str] = []
    visited: set[str] = set()
    order: List[str] = []

    def visit(name: str, referenced_by: str | None) -> None:
        if name in visiting:
            raise CyclicDependency(visiting[visiting.index(name):] + [name])
        if name in visited:
            return
        project = by_name.get(name)
        if project is None:
            raise UnknownProject(name, list(by_name), referenced_by=referenced_by)

        visiting.append(name)
        for dependency in project.dependencies:
            visit(dependency.name, name)
        visiting.pop()
        visited.add(name)
        order.append(name)

    for project in projects:
        visit(project.name, None)
    return order


@dataclass(slots=True)
class SolutionConfiguration:
    name: str
    file_name: str
    path: str
    projects: List[str] = field(default_factory=list)

    def to_mapping(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "file_name": self.file_name,
            "path": self.path,
            "projects": list(self.projects),
        }


@dataclass(slots=True)
class TargetGeneration:
    """Every project configuration for one target, in build order."""

    target: Target
    solution: SolutionConfiguration
    configurations: List[tuple[str, Configuration]] = field(default_factory=list)

    def get(self, project: str) -> Configuration:
        for name, conf in self.configurations:
            if name == project:
                return conf
        raise KeyError(f"Project '{project}' is not part of target '{self.target.name}'")

    def to_mapping(self) -> Dict[str, Any]:
        return {
            "target": self.target.to_mapping(),
            "solution": self.solution.to_mapping(),
            "projects": [conf.to_mapping() for _, conf in self.configurations],
        }


@dataclass(slots=True)
class GenerationRequest:
    solution: str
    build_order: List[str]
    targets: List[TargetGeneration] = field(default_factory=list)

    def __iter__(self) -> Iterator[TargetGeneration]:
        return iter(self.targets)

    def __len__(self) -> int:
        return len(self.targets)

    def for_target(self, name: str) -> TargetGeneration:
        for generation in self.targets:
            if generation.target.name == name:
                return generation
        raise KeyError(f"Target '{name}' not found in generation request for '{self.solution}'")

    def to_mapping(self) -> Dict[str, Any]:
        return {
            "solution": self.solution,
            "build_order": list(self.build_order),
            "targets": [generation.to_mapping() for generation in self.targets],
        }


@dataclass(slots=True)
class _Exposure:
    include_paths: List[str] = field(default_factory=list)
    link: List[tuple[str, str]] = field(default_factory=list)


def _import_library(conf: Configuration) -> tuple[str, str]:
    return conf.target_library_path or conf.output_path or "", f"{conf.project}.lib"


class ProjectGraphAssembler:
    """Runs the configuration pipeline for every (target, project) pair.

    Dependencies are configured first; a dependency's exported include paths
    and link libraries are inherited by its dependents, and public edges
    re-export them further. Targets are independent, so they may be resolved
    on worker threads; the request always lists them in expansion order.
    """

    def __init__(
        self,
        *,
        profiles: ProfileRegistry | None = None,
        console: ConsoleLike | None = None,
        workers: int = 1,
        timeout: float | None = None,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self._profiles = profiles or ProfileRegistry.with_builtins()
        self._console = console
        self._workers = workers
        self._timeout = timeout

    def assemble(
        self,
        solution: Solution,
        *,
        targets: Sequence[Target] | None = None,
        allow: Iterable[Any] | None = None,
    ) -> GenerationRequest:
        order = build_order(solution.projects)
        self._check_declarations(solution)
        if targets is not None:
            expanded = list(targets)
            self._check_targets(solution, expanded)
        else:
            expanded = solution.targets(allow=allow)
        self._info(f"Expanded {len(expanded)} target(s) for solution '{solution.name}'")

        pipeline = ConfigurationPipeline(
            profiles=self._profiles,
            root=solution.root,
            solution=solution.name,
            variables=dict(solution.variables),
        )

        def generate(target: Target) -> TargetGeneration:
            generation = self._generate_target(solution, order, pipeline, target)
            self._debug(f"Resolved target '{target.name}'")
            return generation

        generations = self._run(generate, expanded)
        _check_distinct_paths(generations)
        return GenerationRequest(solution=solution.name, build_order=order, targets=generations)

    @staticmethod
    def _check_targets(solution: Solution, targets: Sequence[Target]) -> None:
        """Reject caller-supplied targets the expander could never have produced."""

        registry = solution.registry()
        declared = registry.names()
        seen: set[Target] = set()
        for target in targets:
            if target.axes != declared:
                raise InvalidCombination(
                    target.name,
                    f"expected axes {', '.join(declared) or '-'}, got {', '.join(target.axes) or '-'}",
                )
            for axis, value in target.values:
                if value not in registry.get(axis):
                    raise InvalidCombination(target.name, f"'{value}' is not a value of axis '{axis}'")
            if target.profile not in solution.profiles:
                raise InvalidCombination(target.name, f"unknown profile {target.profile}")
            if target in seen:
                raise DuplicateTarget(target.name)
            seen.add(target)

    def _check_declarations(self, solution: Solution) -> None:
        for profile in solution.profiles:
            self._profiles.get(profile)
        registry = solution.registry()
        for project in solution.projects:
            undeclared = [axis for axis in project.axes if axis not in registry]
            if undeclared:
                raise GenerationError(
                    f"Project '{project.name}' varies over undeclared axis {', '.join(undeclared)}"
                )

    def _run(self, generate: Callable[[Target], TargetGeneration], targets: Sequence[Target]) -> List[TargetGeneration]:
        if self._workers == 1 and self._timeout is None:
            return [generate(target) for target in targets]

        executor = ThreadPoolExecutor(max_workers=self._workers)
        try:
            futures = [executor.submit(generate, target) for target in targets]
            _, pending = wait(futures, timeout=self._timeout)
            if pending:
                for future in pending:
                    future.cancel()
                names = [target.name for target, future in zip(targets, futures) if future in pending]
                raise GenerationTimeout(self._timeout or 0.0, names)
            # result() re-raises the first failure in expansion order
            return [future.result() for future in futures]
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    @staticmethod
    def _generate_target(
        solution: Solution,
        order: Sequence[str],
        pipeline: ConfigurationPipeline,
        target: Target,
    ) -> TargetGeneration:
        projects = {project.name: project for project in solution.projects}
        configurations: Dict[str, Configuration] = {}
        exposures: Dict[str, _Exposure] = {}

        for name in order:
            project = projects[name]
            conf = pipeline.configure(project, target.project(project.axes))
            exposure = _Exposure(include_paths=list(conf.exported_include_paths))

            for dependency in project.dependencies:
                inherited = exposures[dependency.name]
                conf.add("dependencies", [dependency.name])
                conf.add_include_paths(*inherited.include_paths)
                for library_path, library in inherited.link:
                    conf.add_library_paths(library_path)
                    conf.add_libraries(library)
                if dependency.public:
                    exposure.include_paths.extend(
                        path for path in inherited.include_paths if path not in exposure.include_paths
                    )
                if project.kind is OutputKind.LIB:
                    exposure.link.extend(item for item in inherited.link if item not in exposure.link)

            if project.kind in (OutputKind.LIB, OutputKind.DLL):
                exposure.link.insert(0, _import_library(conf))
            configurations[name] = conf
            exposures[name] = exposure

        solution_conf = _solution_configuration(solution, target, order)
        return TargetGeneration(
            target=target,
            solution=solution_conf,
            configurations=[(name, configurations[name]) for name in order],
        )

    def _info(self, message: str) -> None:
        if self._console is not None:
            self._console.info(message)

    def _debug(self, message: str) -> None:
        if self._console is not None:
            self._console.debug(message)


def _check_distinct_paths(generations: Sequence[TargetGeneration]) -> None:
    """Fail when two project identities of one project share an output or intermediate path.

    Configurations are compared by their projected target, so a library
    shared by several full targets may keep a single output directory.
    """

    owners: Dict[tuple[str, str], Target] = {}
    for generation in generations:
        for name, conf in generation.configurations:
            for path in (conf.output_path, conf.intermediate_path):
                if path is None:
                    continue
                owner = owners.setdefault((name, path), conf.target)
                if owner != conf.target:
                    raise PathCollision(name, path, owner.name, conf.target.name)


def _solution_configuration(solution: Solution, target: Target, order: Sequence[str]) -> SolutionConfiguration:
    resolver = TemplateResolver(
        {
            "root": solution.root,
            "solution": {"name": solution.name},
            "target": target.template_context(),
            "var": dict(solution.variables),
        }
    )
    return SolutionConfiguration(
        name=str(resolver.resolve(solution.layout.configuration_name)),
        file_name=str(resolver.resolve(solution.layout.file_name)),
        path=normalize_path(str(resolver.resolve(solution.layout.path))),
        projects=list(order),
    )


def validate_solution(solution: Solution, *, profiles: ProfileRegistry | None = None) -> List[str]:
    """Collect every declaration problem without generating anything."""

    errors: List[str] = []
    registry = solution.registry()
    profile_registry = profiles or ProfileRegistry.with_builtins()
    for profile in solution.profiles:
        if profile not in profile_registry:
            errors.append(f"solution '{solution.name}' uses unknown profile '{profile}'")
    try:
        build_order(solution.projects)
    except (GenerationError, ValueError) as exc:
        errors.append(str(exc))
    try:
        targets: List[Target] | None = solution.targets()
    except GenerationError as exc:
        errors.append(str(exc))
        targets = None
    for project in solution.projects:
        problems = project.validate_structure(registry, targets)
        errors.extend(problems)
        if not problems and targets is not None:
            errors.extend(_layout_problems(project, targets))
    return errors


def _layout_problems(project: Project, targets: Sequence[Target]) -> List[str]:
    if project.layout is None:
        return []
    identities = {target.project(project.axes) for target in targets}
    if len(identities) < 2:
        return []
    problems: List[str] = []
    for field_name in ("output_path", "intermediate_path"):
        placeholders = extract_placeholders(getattr(project.layout, field_name))
        if not any(path.startswith("target.") for path in placeholders):
            problems.append(f"project '{project.name}' layout {field_name} does not reference the target")
    return problems


def assemble(
    solution: Solution,
    *,
    targets: Sequence[Target] | None = None,
    profiles: ProfileRegistry | None = None,
    console: ConsoleLike | None = None,
    workers: int = 1,
    timeout: float | None = None,
) -> GenerationRequest:
    """Resolve every project of ``solution`` for every target."""

    assembler = ProjectGraphAssembler(profiles=profiles, console=console, workers=workers, timeout=timeout)
    return assembler.assemble(solution, targets=targets)


__all__ = [
    "GenerationRequest",
    "ProjectGraphAssembler",
    "Solution",
    "SolutionConfiguration",
    "SolutionLayout",
    "TargetGeneration",
    "assemble",
    "build_order",
    "validate_solution",
]
