"""Build matrix expansion and per-target project configuration generation."""

from .axes import Axis, AxisRegistry, Target, TargetExpander, expand
from .configuration import Configuration, OutputKind
from .errors import (
    CyclicDependency,
    DuplicateTarget,
    EmptyAxis,
    GenerationError,
    GenerationTimeout,
    IncompleteConfiguration,
    InvalidCombination,
    PathCollision,
    UnhandledAxisCombination,
    UnknownProject,
)
from .filesets import FileSetResolver
from .pipeline import AxisSwitch, ConfigurationPipeline, Contribution, PathLayout, StepContext
from .profiles import BuildProfile, ProfileRegistry
from .project import Project, ProjectDependency
from .solution import (
    GenerationRequest,
    ProjectGraphAssembler,
    Solution,
    SolutionLayout,
    TargetGeneration,
    assemble,
    build_order,
    validate_solution,
)

__all__ = [
    "Axis",
    "AxisRegistry",
    "AxisSwitch",
    "BuildProfile",
    "Configuration",
    "ConfigurationPipeline",
    "Contribution",
    "CyclicDependency",
    "DuplicateTarget",
    "EmptyAxis",
    "FileSetResolver",
    "GenerationError",
    "GenerationRequest",
    "GenerationTimeout",
    "IncompleteConfiguration",
    "InvalidCombination",
    "OutputKind",
    "PathCollision",
    "PathLayout",
    "ProfileRegistry",
    "Project",
    "ProjectDependency",
    "ProjectGraphAssembler",
    "Solution",
    "SolutionLayout",
    "StepContext",
    "Target",
    "TargetExpander",
    "TargetGeneration",
    "UnhandledAxisCombination",
    "UnknownProject",
    "assemble",
    "build_order",
    "expand",
    "validate_solution",
]
