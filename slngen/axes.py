"""Axis declarations and expansion of axes into concrete targets."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from itertools import product
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Sequence

from .errors import DuplicateTarget, EmptyAxis, InvalidCombination


RESERVED_AXIS_NAMES = frozenset({"profile", "slug", "name"})


def _value_text(value: Any) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


@dataclass(frozen=True, slots=True)
class Axis:
    """An ordered set of mutually exclusive values; a target picks exactly one."""

    name: str
    values: tuple[str, ...]
    labels: tuple[tuple[str, str], ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", tuple(_value_text(value) for value in self.values))
        object.__setattr__(
            self,
            "labels",
            tuple((_value_text(value), str(label)) for value, label in self.labels),
        )
        # labels build target slugs, so two values may never render alike
        seen: Dict[str, str] = {}
        for value in self.values:
            rendered = self.label(value)
            if rendered in seen:
                raise ValueError(
                    f"Axis '{self.name}' renders values '{seen[rendered]}' and '{value}' as '{rendered}'"
                )
            seen[rendered] = value

    @classmethod
    def from_enum(
        cls,
        name: str,
        enum_type: type[Enum],
        *,
        labels: Mapping[Any, str] | None = None,
    ) -> "Axis":
        return cls(
            name=name,
            values=tuple(member.value for member in enum_type),
            labels=tuple((key, value) for key, value in (labels or {}).items()),
        )

    def label(self, value: Any) -> str:
        text = _value_text(value)
        for candidate, label in self.labels:
            if candidate == text:
                return label
        return text

    def __contains__(self, value: object) -> bool:
        return _value_text(value) in self.values


@dataclass(frozen=True, slots=True)
class Target:
    """One concrete combination: a value per axis plus a build profile.

    Identity is the ordered ``(axis, value)`` tuple and the profile; display
    labels only affect naming.
    """

    values: tuple[tuple[str, str], ...]
    profile: str
    labels: tuple[str, ...] = field(default=(), compare=False)

    def __getitem__(self, axis: str) -> str:
        for name, value in self.values:
            if name == axis:
                return value
        raise KeyError(f"Target '{self.name}' has no axis '{axis}'")

    def get(self, axis: str, default: str | None = None) -> str | None:
        for name, value in self.values:
            if name == axis:
                return value
        return default

    @property
    def axes(self) -> tuple[str, ...]:
        return tuple(name for name, _ in self.values)

    @property
    def slug(self) -> str:
        parts = self.labels or tuple(value for _, value in self.values)
        return "_".join(parts)

    @property
    def name(self) -> str:
        return f"{self.profile}_{self.slug}" if self.values else self.profile

    def project(self, axis_names: Iterable[str]) -> "Target":
        """Return the target restricted to ``axis_names``, keeping declaration order."""

        wanted = set(axis_names)
        missing = wanted.difference(self.axes)
        if missing:
            raise KeyError(f"Target '{self.name}' has no axis {', '.join(sorted(missing))}")
        keep = [index for index, (name, _) in enumerate(self.values) if name in wanted]
        labels = tuple(self.labels[index] for index in keep) if self.labels else ()
        return Target(
            values=tuple(self.values[index] for index in keep),
            profile=self.profile,
            labels=labels,
        )

    def to_mapping(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "profile": self.profile,
            "axes": {name: value for name, value in self.values},
        }

    def template_context(self) -> Dict[str, str]:
        context = {name: value for name, value in self.values}
        context.update(profile=self.profile, slug=self.slug, name=self.name)
        return context


class AxisRegistry:
    """Ordered collection of axis declarations."""

    def __init__(self, axes: Iterable[Axis] | None = None) -> None:
        self._axes: Dict[str, Axis] = {}
        for axis in axes or ():
            self.declare(axis)

    def declare(self, axis: Axis) -> Axis:
        if not axis.name or axis.name in RESERVED_AXIS_NAMES:
            raise ValueError(f"Axis name '{axis.name}' is reserved or empty")
        if axis.name in self._axes:
            raise ValueError(f"Axis '{axis.name}' is already declared")
        self._axes[axis.name] = axis
        return axis

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "AxisRegistry":
        registry = cls()
        registry.merge_from_mapping(mapping)
        return registry

    def merge_from_mapping(self, mapping: Mapping[str, Any]) -> None:
        """Declare axes from ``{name: [values]}`` or ``{name: {values, labels}}`` entries."""

        for raw_name, raw_value in mapping.items():
            name = str(raw_name).strip()
            labels: Mapping[str, Any] = {}
            if isinstance(raw_value, Mapping):
                values = raw_value.get("values", [])
                raw_labels = raw_value.get("labels")
                if isinstance(raw_labels, Mapping):
                    labels = raw_labels
            else:
                values = raw_value
            if isinstance(values, str) or not isinstance(values, Sequence):
                raise TypeError(f"axes.{name} must be a list of values")
            self.declare(
                Axis(
                    name=name,
                    values=tuple(str(value) for value in values),
                    labels=tuple((str(key), str(label)) for key, label in labels.items()),
                )
            )

    def get(self, name: str) -> Axis:
        if name not in self._axes:
            available = ", ".join(self._axes) or "<none>"
            raise KeyError(f"Axis '{name}' not found. Available axes: {available}")
        return self._axes[name]

    def names(self) -> tuple[str, ...]:
        return tuple(self._axes)

    def select(self, names: Iterable[str]) -> List[Axis]:
        wanted = set(names)
        for name in wanted:
            self.get(name)
        return [axis for axis in self._axes.values() if axis.name in wanted]

    def __iter__(self) -> Iterator[Axis]:
        return iter(self._axes.values())

    def __len__(self) -> int:
        return len(self._axes)

    def __contains__(self, name: object) -> bool:
        return name in self._axes


@dataclass(frozen=True, slots=True)
class _AllowEntry:
    values: tuple[str, ...]
    profiles: frozenset[str] | None


class TargetExpander:
    """Computes the canonical, deterministic list of targets for a set of axes.

    Order is axis declaration order, then value order, then profile order.
    An allow-list only filters that order, it never reorders it.
    """

    def __init__(
        self,
        axes: Sequence[Axis],
        profiles: Sequence[str],
        *,
        allow: Iterable[Any] | None = None,
    ) -> None:
        self._axes = tuple(axes)
        self._profiles = tuple(str(profile) for profile in profiles)
        names: set[str] = set()
        for axis in self._axes:
            if axis.name in names:
                raise ValueError(f"Axis '{axis.name}' is declared more than once")
            names.add(axis.name)
            if not axis.values:
                raise EmptyAxis(axis.name)
        if not self._profiles:
            raise EmptyAxis("profile")
        self._allow = None if allow is None else [self._normalize_allow(entry) for entry in allow]

    def _normalize_allow(self, entry: Any) -> _AllowEntry:
        axis_names = [axis.name for axis in self._axes]
        profiles: Any = None
        if isinstance(entry, Mapping):
            unknown = [str(key) for key in entry if key not in axis_names and key != "profile"]
            if unknown:
                raise InvalidCombination(entry, f"unknown axis {', '.join(unknown)}")
            missing = [name for name in axis_names if name not in entry]
            if missing:
                raise InvalidCombination(entry, f"missing value for axis {', '.join(missing)}")
            raw_values = [entry[name] for name in axis_names]
            profiles = entry.get("profile")
        elif isinstance(entry, Sequence) and not isinstance(entry, str):
            raw_values = list(entry)
            if len(raw_values) == len(axis_names) + 1:
                profiles = raw_values.pop()
            elif len(raw_values) != len(axis_names):
                raise InvalidCombination(entry, f"expected {len(axis_names)} axis values")
        else:
            raise InvalidCombination(entry, "entries must be mappings or sequences")

        values: List[str] = []
        for axis, raw in zip(self._axes, raw_values):
            text = _value_text(raw)
            if text not in axis.values:
                raise InvalidCombination(entry, f"'{text}' is not a value of axis '{axis.name}'")
            values.append(text)

        allowed_profiles: frozenset[str] | None = None
        if profiles is not None:
            names = [profiles] if isinstance(profiles, str) else [str(item) for item in profiles]
            unknown_profiles = [name for name in names if name not in self._profiles]
            if unknown_profiles:
                raise InvalidCombination(entry, f"unknown profile {', '.join(unknown_profiles)}")
            allowed_profiles = frozenset(names)
        return _AllowEntry(values=tuple(values), profiles=allowed_profiles)

    def _allowed(self, values: tuple[str, ...], profile: str) -> bool:
        if self._allow is None:
            return True
        for entry in self._allow:
            if entry.values == values and (entry.profiles is None or profile in entry.profiles):
                return True
        return False

    def expand(self) -> List[Target]:
        targets: List[Target] = []
        seen: set[Target] = set()
        for combination in product(*(axis.values for axis in self._axes)):
            for profile in self._profiles:
                if not self._allowed(combination, profile):
                    continue
                target = Target(
                    values=tuple(zip((axis.name for axis in self._axes), combination)),
                    profile=profile,
                    labels=tuple(axis.label(value) for axis, value in zip(self._axes, combination)),
                )
                if target in seen:
                    raise DuplicateTarget(target.name)
                seen.add(target)
                targets.append(target)
        return targets


def expand(
    axes: Sequence[Axis],
    profiles: Sequence[str] = ("Debug", "Release"),
    *,
    allow: Iterable[Any] | None = None,
) -> List[Target]:
    """Expand ``axes`` and ``profiles`` into concrete targets."""

    return TargetExpander(axes, profiles, allow=allow).expand()


__all__ = ["Axis", "AxisRegistry", "RESERVED_AXIS_NAMES", "Target", "TargetExpander", "expand"]
