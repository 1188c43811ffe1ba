from __future__ import annotations

import threading
import unittest

from slngen.axes import Axis, Target
from slngen.configuration import Configuration, OutputKind
from slngen.errors import (
    CyclicDependency,
    DuplicateTarget,
    GenerationError,
    GenerationTimeout,
    InvalidCombination,
    PathCollision,
    UnhandledAxisCombination,
    UnknownProject,
)
from slngen.pipeline import AxisSwitch, Contribution, PathLayout, StepContext
from slngen.profiles import ProfileRegistry
from slngen.project import Project, ProjectDependency
from slngen.solution import (
    ProjectGraphAssembler,
    Solution,
    SolutionLayout,
    assemble,
    build_order,
    validate_solution,
)


def _lib(name: str, *dependencies, include: str | None = None) -> Project:
    return Project(
        name=name,
        kind=OutputKind.LIB,
        settings=Contribution(exported_include_paths=(include,) if include else ()),
        dependencies=dependencies,
    )


GRAPHICS = Axis(name="graphics", values=("DX11", "OpenGL3"))

APP_SWITCH = AxisSwitch.on(
    "graphics",
    {
        "DX11": Contribution(defines=("GFX=DX11",)),
        "OpenGL3": Contribution(defines=("GFX=OPENGL3",)),
    },
)


class BuildOrderTests(unittest.TestCase):
    def test_dependencies_come_first(self) -> None:
        projects = [
            Project(name="App", kind="exe", dependencies=["Core", "Render"]),
            _lib("Render", "Core"),
            _lib("Core"),
        ]
        self.assertEqual(build_order(projects), ["Core", "Render", "App"])

    def test_cycle_is_reported_with_path(self) -> None:
        projects = [_lib("A", "B"), _lib("B", "C"), _lib("C", "A")]
        with self.assertRaises(CyclicDependency) as ctx:
            build_order(projects)
        self.assertEqual(ctx.exception.cycle, ("A", "B", "C", "A"))
        self.assertIn("A -> B -> C -> A", str(ctx.exception))

    def test_unknown_dependency(self) -> None:
        with self.assertRaises(UnknownProject) as ctx:
            build_order([_lib("A", "Missing")])
        self.assertIsInstance(ctx.exception, KeyError)
        self.assertIn("Dependency 'Missing' of project 'A'", str(ctx.exception))

    def test_duplicate_project_names(self) -> None:
        with self.assertRaises(ValueError):
            build_order([_lib("A"), _lib("A")])


class AssemblyTests(unittest.TestCase):
    def _solution(self, *projects: Project, **kwargs) -> Solution:
        return Solution(name="Demo", axes=(GRAPHICS,), projects=projects, root="/work", **kwargs)

    def test_every_target_resolves_every_project(self) -> None:
        solution = self._solution(
            _lib("Core", include="{{root}}/core/include"),
            Project(name="App", kind="exe", axes=("graphics",), switches=(APP_SWITCH,), dependencies=["Core"]),
        )
        request = assemble(solution)

        self.assertEqual(request.build_order, ["Core", "App"])
        self.assertEqual(
            [generation.target.name for generation in request],
            ["Debug_DX11", "Release_DX11", "Debug_OpenGL3", "Release_OpenGL3"],
        )
        app = request.for_target("Release_OpenGL3").get("App")
        self.assertEqual(app.defines["GFX"], "OPENGL3")
        self.assertIn("/work/core/include", app.include_paths)
        self.assertIn("Core.lib", app.libraries)
        self.assertIn("/work/tmp/lib/Release", app.library_paths)
        self.assertEqual(app.dependencies, ["Core"])

        core = request.for_target("Release_OpenGL3").get("Core")
        self.assertEqual(core.name, "Release")
        self.assertEqual(core.output_file, "/work/tmp/lib/Release/Core.lib")

    def test_public_dependencies_reexport_includes(self) -> None:
        solution = self._solution(
            _lib("Base", include="{{root}}/base"),
            _lib("Public", ProjectDependency("Base", public=True), include="{{root}}/public"),
            _lib("Private", "Base", include="{{root}}/private"),
            Project(name="UsesPublic", kind="exe", dependencies=["Public"]),
            Project(name="UsesPrivate", kind="exe", dependencies=["Private"]),
        )
        generation = assemble(solution).targets[0]

        uses_public = generation.get("UsesPublic")
        self.assertEqual(uses_public.include_paths, ["/work/public", "/work/base"])

        uses_private = generation.get("UsesPrivate")
        self.assertEqual(uses_private.include_paths, ["/work/private"])
        self.assertEqual(uses_private.libraries, ["Private.lib", "Base.lib"])

    def test_parallel_generation_keeps_expansion_order(self) -> None:
        solution = self._solution(
            Project(name="App", kind="exe", axes=("graphics",), switches=(APP_SWITCH,)),
            profiles=("Debug", "Release", "Profile"),
        )
        profiles = ProfileRegistry.with_builtins()
        profiles.merge_from_mapping({"Profile": {"defines": ["NDEBUG", "PROFILE"]}})
        sequential = assemble(solution, profiles=profiles)
        parallel = assemble(solution, profiles=profiles, workers=4)
        self.assertEqual(parallel.to_mapping(), sequential.to_mapping())

    def test_timeout_aborts_generation(self) -> None:
        release = threading.Event()

        def slow(conf: Configuration, ctx: StepContext) -> None:
            release.wait(2.0)

        solution = self._solution(Project(name="App", kind="exe", steps=(slow,)))
        assembler = ProjectGraphAssembler(workers=2, timeout=0.05)
        try:
            with self.assertRaises(GenerationTimeout) as ctx:
                assembler.assemble(solution)
        finally:
            release.set()
        self.assertEqual(
            set(ctx.exception.pending),
            {"Debug_DX11", "Release_DX11", "Debug_OpenGL3", "Release_OpenGL3"},
        )

    def test_missing_case_in_allowed_subset_aborts(self) -> None:
        switch = AxisSwitch.on("graphics", {"DX11": Contribution(defines=("GFX=DX11",))})
        solution = self._solution(Project(name="App", kind="exe", axes=("graphics",), switches=(switch,)))
        with self.assertRaises(UnhandledAxisCombination):
            assemble(solution)
        request = assemble(solution, targets=solution.targets(allow=[("DX11",)]))
        self.assertEqual(len(request), 2)

    def test_failure_in_parallel_run_is_raised(self) -> None:
        switch = AxisSwitch.on("graphics", {"DX11": Contribution()})
        solution = self._solution(Project(name="App", kind="exe", axes=("graphics",), switches=(switch,)))
        with self.assertRaises(UnhandledAxisCombination):
            assemble(solution, workers=3)

    def test_undeclared_project_axis(self) -> None:
        solution = self._solution(Project(name="App", kind="exe", axes=("platform",)))
        with self.assertRaises(GenerationError):
            assemble(solution)

    def test_solution_configuration_naming(self) -> None:
        solution = self._solution(
            Project(name="App", kind="exe", axes=("graphics",), switches=(APP_SWITCH,)),
            layout=SolutionLayout(
                configuration_name="{{target.profile}}_{{target.slug}}",
                file_name="{{solution.name}}_{{var.dev_env}}_{{var.platform}}",
            ),
            variables={"dev_env": "vs2022", "platform": "win64"},
        )
        generation = assemble(solution).for_target("Debug_OpenGL3")
        self.assertEqual(generation.solution.file_name, "Demo_vs2022_win64")
        self.assertEqual(generation.solution.name, "Debug_OpenGL3")
        self.assertEqual(generation.solution.path, "/work")
        self.assertEqual(generation.solution.projects, ["App"])

    def test_shared_output_path_is_rejected(self) -> None:
        layout = PathLayout(output_path="{{root}}/bin")
        solution = self._solution(
            Project(name="App", kind="exe", axes=("graphics",), switches=(APP_SWITCH,), layout=layout)
        )
        with self.assertRaises(PathCollision) as ctx:
            assemble(solution)
        self.assertEqual(ctx.exception.path, "/work/bin")
        self.assertEqual(ctx.exception.targets, ("Debug_DX11", "Release_DX11"))

    def test_explicit_targets_are_checked(self) -> None:
        solution = self._solution(Project(name="App", kind="exe", axes=("graphics",), switches=(APP_SWITCH,)))
        target = solution.targets()[0]
        with self.assertRaises(DuplicateTarget):
            assemble(solution, targets=[target, target])
        with self.assertRaises(InvalidCombination):
            assemble(solution, targets=[Target(values=(), profile="Debug")])
        with self.assertRaises(InvalidCombination):
            assemble(solution, targets=[Target(values=(("graphics", "Metal"),), profile="Debug")])
        with self.assertRaises(InvalidCombination):
            assemble(solution, targets=[Target(values=(("graphics", "DX11"),), profile="Shipping")])

    def test_invalid_worker_count(self) -> None:
        with self.assertRaises(ValueError):
            ProjectGraphAssembler(workers=0)


class ValidationTests(unittest.TestCase):
    def test_reports_declaration_problems(self) -> None:
        switch = AxisSwitch.on("graphics", {"DX11": Contribution(), "Metal": Contribution()})
        solution = Solution(
            name="Broken",
            axes=(GRAPHICS,),
            projects=(
                Project(name="App", kind="exe", axes=("graphics",), switches=(switch,), dependencies=["App"]),
                Project(name="Tool", kind="exe", axes=("arch",)),
            ),
            profiles=("Debug", "Shipping"),
        )
        errors = validate_solution(solution)
        self.assertTrue(any("unknown profile 'Shipping'" in error for error in errors))
        self.assertTrue(any("Circular dependency" in error for error in errors))
        self.assertTrue(any("no case for graphics=OpenGL3" in error for error in errors))
        self.assertTrue(any("undeclared values ('Metal',)" in error for error in errors))
        self.assertTrue(any("undeclared axis 'arch'" in error for error in errors))
        self.assertTrue(any("depends on itself" in error for error in errors))

    def test_layout_without_target_placeholder(self) -> None:
        layout = PathLayout(output_path="{{root}}/bin/{{project.name}}")
        solution = Solution(
            name="Demo",
            axes=(GRAPHICS,),
            projects=(
                Project(name="App", kind="exe", axes=("graphics",), switches=(APP_SWITCH,), layout=layout),
                _lib("Tool"),
            ),
        )
        self.assertEqual(
            validate_solution(solution),
            ["project 'App' layout output_path does not reference the target"],
        )

    def test_valid_solution(self) -> None:
        solution = Solution(
            name="Demo",
            axes=(GRAPHICS,),
            projects=(Project(name="App", kind="exe", axes=("graphics",), switches=(APP_SWITCH,)),),
        )
        self.assertEqual(validate_solution(solution), [])


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
