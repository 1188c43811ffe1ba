"""Static project declarations."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping, Sequence

from .axes import AxisRegistry, Target
from .configuration import OutputKind
from .pipeline import AxisSwitch, Contribution, PathLayout, Step


@dataclass(frozen=True, slots=True)
class ProjectDependency:
    """Edge to another project; a public edge re-exports the dependency's includes."""

    name: str
    public: bool = False

    @classmethod
    def from_value(cls, value: Any) -> "ProjectDependency":
        if isinstance(value, ProjectDependency):
            return value
        if isinstance(value, str):
            name = value.strip()
            if not name:
                raise ValueError("Dependency entries cannot be empty strings")
            return cls(name=name)
        if isinstance(value, Mapping):
            raw_name = value.get("name") or value.get("project")
            if not raw_name or not str(raw_name).strip():
                raise ValueError("Dependency entries must include a non-empty 'name'")
            return cls(name=str(raw_name).strip(), public=bool(value.get("public", False)))
        raise TypeError("Dependencies must be specified as strings or mappings")


@dataclass(frozen=True, slots=True)
class Project:
    """A compilation unit and the ordered chain that configures it.

    ``axes`` names the solution axes the project varies over; a library that
    does not care about backends leaves it empty and is configured per
    profile only.
    """

    name: str
    kind: OutputKind
    source_root: str = "{{root}}"
    files: tuple[str, ...] = ()
    axes: tuple[str, ...] = ()
    settings: Contribution = Contribution()
    steps: tuple[Step, ...] = ()
    switches: tuple[AxisSwitch, ...] = ()
    dependencies: tuple[ProjectDependency, ...] = ()
    layout: PathLayout | None = None

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("Project name is required")
        object.__setattr__(self, "kind", OutputKind(self.kind))
        object.__setattr__(self, "files", tuple(str(path) for path in self.files))
        object.__setattr__(self, "axes", tuple(str(axis) for axis in self.axes))
        object.__setattr__(self, "steps", tuple(self.steps))
        object.__setattr__(self, "switches", tuple(self.switches))
        object.__setattr__(
            self,
            "dependencies",
            tuple(ProjectDependency.from_value(item) for item in self.dependencies),
        )

    def validate_structure(self, registry: AxisRegistry, targets: Sequence[Target] | None = None) -> List[str]:
        """Return structural problems of the project against ``registry``.

        Switch totality is checked against ``targets`` when given (the
        combinations the expander actually produces), otherwise against the
        full declared domain.
        """

        errors: List[str] = []
        for axis in self.axes:
            if axis not in registry:
                errors.append(f"project '{self.name}' varies over undeclared axis '{axis}'")
        if errors:
            return errors
        for switch in self.switches:
            outside = [axis for axis in switch.axes if axis not in self.axes]
            if outside:
                errors.append(
                    f"project '{self.name}' switches on axis {', '.join(outside)} it does not vary over"
                )
                continue
            for values in switch.unknown_cases(registry):
                errors.append(f"project '{self.name}' has a case for undeclared values {values}")
            for values in switch.missing_cases(registry, targets):
                rendered = ", ".join(f"{axis}={value}" for axis, value in zip(switch.axes, values))
                errors.append(f"project '{self.name}' has no case for {rendered}")
        seen: set[str] = set()
        for dependency in self.dependencies:
            if dependency.name == self.name:
                errors.append(f"project '{self.name}' depends on itself")
            if dependency.name in seen:
                errors.append(f"project '{self.name}' lists dependency '{dependency.name}' twice")
            seen.add(dependency.name)
        return errors


__all__ = ["Project", "ProjectDependency"]
