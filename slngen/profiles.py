"""Build profile definitions and registry."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping

from core.config_loader import normalize_string_list

from .configuration import Configuration, normalize_defines


@dataclass(slots=True)
class BuildProfile:
    name: str
    defines: Dict[str, str | None] = field(default_factory=dict)
    compiler_options: list[str] = field(default_factory=list)
    linker_options: list[str] = field(default_factory=list)
    options: list[str] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, name: str, data: Mapping[str, Any]) -> "BuildProfile":
        if not isinstance(data, Mapping):
            raise TypeError(f"Profile '{name}' definition must be a mapping")
        allowed_keys = {"defines", "compiler_options", "linker_options", "options"}
        unknown = {str(key) for key in data if str(key) not in allowed_keys}
        if unknown:
            raise ValueError(f"Profile '{name}' contains unknown keys: {', '.join(sorted(unknown))}")
        return cls(
            name=name,
            defines=normalize_defines(data.get("defines")),
            compiler_options=normalize_string_list(data.get("compiler_options"), field_name=f"profiles.{name}.compiler_options"),
            linker_options=normalize_string_list(data.get("linker_options"), field_name=f"profiles.{name}.linker_options"),
            options=normalize_string_list(data.get("options"), field_name=f"profiles.{name}.options"),
        )

    def merge(self, other: "BuildProfile") -> "BuildProfile":
        defines = dict(self.defines)
        defines.update(other.defines)
        return BuildProfile(
            name=self.name,
            defines=defines,
            compiler_options=_merged(self.compiler_options, other.compiler_options),
            linker_options=_merged(self.linker_options, other.linker_options),
            options=_merged(self.options, other.options),
        )

    def clone(self) -> "BuildProfile":
        return BuildProfile(
            name=self.name,
            defines=dict(self.defines),
            compiler_options=list(self.compiler_options),
            linker_options=list(self.linker_options),
            options=list(self.options),
        )

    def apply(self, conf: Configuration) -> None:
        conf.update_defines(self.defines)
        conf.add_compiler_options(*self.compiler_options)
        conf.add_linker_options(*self.linker_options)
        conf.add_options(*self.options)


def _merged(base: Iterable[str], extra: Iterable[str]) -> list[str]:
    result = list(base)
    for value in extra:
        if value not in result:
            result.append(value)
    return result


def _build_builtin_profiles() -> Dict[str, BuildProfile]:
    raw: Dict[str, Mapping[str, Any]] = {
        "Debug": {
            "defines": ["_DEBUG"],
            "options": ["Compiler.Optimization.Disable"],
        },
        "Release": {
            "defines": ["NDEBUG"],
            "options": [
                "Compiler.Optimization.MaximizeSpeed",
                "Compiler.Inline.AnySuitable",
            ],
        },
    }
    return {name: BuildProfile.from_mapping(name, data) for name, data in raw.items()}


class ProfileRegistry:
    def __init__(self, profiles: Mapping[str, BuildProfile] | None = None) -> None:
        self._profiles: Dict[str, BuildProfile] = {}
        for name, profile in (profiles or {}).items():
            self._profiles[name] = profile.clone()

    @classmethod
    def with_builtins(cls) -> "ProfileRegistry":
        return cls(_build_builtin_profiles())

    def merge(self, profiles: Mapping[str, BuildProfile]) -> None:
        for name, profile in profiles.items():
            existing = self._profiles.get(name)
            self._profiles[name] = existing.merge(profile) if existing else profile.clone()

    def merge_from_mapping(self, mapping: Mapping[str, Any]) -> None:
        section = mapping.get("profiles") if isinstance(mapping.get("profiles"), Mapping) else mapping
        parsed: Dict[str, BuildProfile] = {}
        for raw_name, raw_value in section.items():
            name = str(raw_name).strip()
            if name and isinstance(raw_value, Mapping):
                parsed[name] = BuildProfile.from_mapping(name, raw_value)
        if parsed:
            self.merge(parsed)

    def get(self, name: str) -> BuildProfile:
        profile = self._profiles.get(name)
        if profile is None:
            available = ", ".join(self._profiles) or "<none>"
            raise KeyError(f"Profile '{name}' not found. Available profiles: {available}")
        return profile.clone()

    def available(self) -> Iterable[str]:
        return self._profiles.keys()

    def __contains__(self, name: object) -> bool:
        return name in self._profiles


__all__ = ["BuildProfile", "ProfileRegistry"]
