from __future__ import annotations

import unittest

from slngen.axes import Axis, AxisRegistry, Target, expand
from slngen.configuration import Configuration, OutputKind, normalize_defines, parse_define
from slngen.errors import IncompleteConfiguration, UnhandledAxisCombination
from slngen.pipeline import AxisSwitch, ConfigurationPipeline, Contribution, PathLayout, StepContext
from slngen.profiles import ProfileRegistry
from slngen.project import Project


GRAPHICS = AxisSwitch.on(
    "graphics",
    {
        "DX11": Contribution(
            defines=("GFX=DX11",),
            libraries=("d3d11.lib",),
            files=("backends/impl_dx11.cpp",),
        ),
        "OpenGL3": Contribution(
            defines=("GFX=OPENGL3",),
            libraries=("opengl32.lib",),
            files=("backends/impl_opengl3.cpp",),
        ),
    },
)


def _demo_project(**overrides) -> Project:
    data = dict(
        name="Demo",
        kind=OutputKind.EXE,
        source_root="{{root}}/demo",
        files=("main.cpp", "backends/impl_dx11.cpp", "backends/impl_opengl3.cpp"),
        axes=("graphics",),
        settings=Contribution(include_paths=("{{root}}/include",), defines=("NOMINMAX",)),
        switches=(GRAPHICS,),
    )
    data.update(overrides)
    return Project(**data)


def _target(profile: str = "Debug", **values: str) -> Target:
    return Target(values=tuple(values.items()), profile=profile)


class ConfigurationPipelineTests(unittest.TestCase):
    def setUp(self) -> None:
        self.pipeline = ConfigurationPipeline(root="/work", solution="Demo")

    def test_configure_applies_defaults_profile_and_switch(self) -> None:
        conf = self.pipeline.configure(_demo_project(), _target(graphics="DX11"))

        self.assertEqual(conf.output_kind, OutputKind.EXE)
        self.assertEqual(conf.name, "Debug_DX11")
        self.assertEqual(conf.output_path, "/work/bin/Demo/Debug_DX11")
        self.assertEqual(conf.intermediate_path, "/work/tmp/Demo/Debug_DX11")
        self.assertEqual(conf.output_file, "/work/bin/Demo/Debug_DX11/Demo.exe")
        self.assertEqual(conf.defines, {"_DEBUG": None, "NOMINMAX": None, "GFX": "DX11"})
        self.assertIn("Compiler.Optimization.Disable", conf.options)
        self.assertEqual(conf.include_paths, ["/work/include"])
        self.assertEqual(conf.libraries, ["d3d11.lib"])
        self.assertEqual(
            conf.source_files,
            ["/work/demo/main.cpp", "/work/demo/backends/impl_dx11.cpp"],
        )
        self.assertEqual(conf.excluded_files, ["/work/demo/backends/impl_opengl3.cpp"])

    def test_release_profile(self) -> None:
        conf = self.pipeline.configure(_demo_project(), _target("Release", graphics="OpenGL3"))
        self.assertIn("NDEBUG", conf.defines)
        self.assertNotIn("_DEBUG", conf.defines)
        self.assertIn("Compiler.Inline.AnySuitable", conf.options)
        self.assertEqual(conf.defines["GFX"], "OPENGL3")

    def test_configure_is_repeatable(self) -> None:
        project = _demo_project()
        target = _target(graphics="OpenGL3")
        self.assertEqual(self.pipeline.configure(project, target), self.pipeline.configure(project, target))

    def test_distinct_targets_get_distinct_paths(self) -> None:
        project = _demo_project()
        targets = expand([Axis(name="graphics", values=("DX11", "OpenGL3"))])
        confs = [self.pipeline.configure(project, target) for target in targets]
        self.assertEqual(len({conf.output_path for conf in confs}), len(targets))
        self.assertEqual(len({conf.intermediate_path for conf in confs}), len(targets))

    def test_missing_case_is_an_error(self) -> None:
        with self.assertRaises(UnhandledAxisCombination) as ctx:
            self.pipeline.configure(_demo_project(), _target(graphics="Vulkan"))
        self.assertEqual(ctx.exception.values, {"graphics": "Vulkan"})
        self.assertEqual(ctx.exception.target_name, "Debug_Vulkan")

    def test_steps_run_in_order_after_settings(self) -> None:
        calls = []

        def first(conf: Configuration, ctx: StepContext) -> None:
            calls.append("first")
            conf.add_defines("LEVEL=1")

        def second(conf: Configuration, ctx: StepContext) -> None:
            calls.append("second")
            conf.add_defines("LEVEL=2")
            conf.add_include_paths(ctx.path("{{project.source_root}}", "generated"))

        conf = self.pipeline.configure(_demo_project(steps=(first, second)), _target(graphics="DX11"))
        self.assertEqual(calls, ["first", "second"])
        self.assertEqual(conf.defines["LEVEL"], "2")
        self.assertEqual(conf.include_paths, ["/work/include", "/work/demo/generated"])

    def test_source_paths_join_source_root_unless_rooted(self) -> None:
        ctx = StepContext(
            root="/work",
            project_name="Demo",
            source_root_template="{{root}}/demo",
            target=_target(graphics="DX11"),
            variables={"backend": "backends", "sdk": "/opt/sdk", "win": "C:\\sdk"},
        )
        self.assertEqual(ctx.source_path("{{var.backend}}/impl.cpp"), "/work/demo/backends/impl.cpp")
        self.assertEqual(ctx.source_path("{{root}}/extern/x.cpp"), "/work/extern/x.cpp")
        self.assertEqual(ctx.source_path("{{ project.source_root }}/y.cpp"), "/work/demo/y.cpp")
        self.assertEqual(ctx.source_path("{{var.sdk}}/z.cpp"), "/opt/sdk/z.cpp")
        self.assertEqual(ctx.source_path("{{var.win}}/w.cpp"), "C:/sdk/w.cpp")
        self.assertEqual(ctx.source_path("main.cpp"), "/work/demo/main.cpp")

    def test_combination_switch(self) -> None:
        switch = AxisSwitch.combination(
            ("platform", "graphics"),
            {
                ("Win32", "DX11"): Contribution(defines=("WIN32_DX11",)),
                ("GLFW", "OpenGL3"): Contribution(defines=("GLFW_GL",)),
            },
        )
        project = _demo_project(axes=("platform", "graphics"), switches=(switch,), files=("main.cpp",))
        conf = self.pipeline.configure(project, _target(platform="GLFW", graphics="OpenGL3"))
        self.assertIn("GLFW_GL", conf.defines)
        with self.assertRaises(UnhandledAxisCombination):
            self.pipeline.configure(project, _target(platform="GLFW", graphics="DX11"))

    def test_project_layout_overrides_pipeline_layout(self) -> None:
        layout = PathLayout(
            configuration_name="{{target.profile}}_{{target.slug}}",
            project_file_name="{{project.name}}_{{var.dev_env}}",
            output_path="{{root}}/out/{{target.slug}}/{{target.profile}}",
            working_directory="{{root}}/working_dir",
        )
        pipeline = ConfigurationPipeline(root="/work", variables={"dev_env": "vs2022"})
        conf = pipeline.configure(_demo_project(layout=layout), _target(graphics="DX11"))
        self.assertEqual(conf.project_file_name, "Demo_vs2022")
        self.assertEqual(conf.output_path, "/work/out/DX11/Debug")
        self.assertEqual(conf.working_directory, "/work/working_dir")

    def test_unknown_profile_lists_available(self) -> None:
        with self.assertRaises(KeyError) as ctx:
            self.pipeline.configure(_demo_project(), _target("Profile", graphics="DX11"))
        self.assertIn("Debug", str(ctx.exception))

    def test_profile_overrides_are_merged(self) -> None:
        profiles = ProfileRegistry.with_builtins()
        profiles.merge_from_mapping({"profiles": {"Debug": {"defines": {"TRACE": 1}}, "Profile": {"defines": ["NDEBUG"]}}})
        pipeline = ConfigurationPipeline(profiles=profiles, root="/work")
        conf = pipeline.configure(_demo_project(), _target("Debug", graphics="DX11"))
        self.assertEqual(conf.defines["TRACE"], "1")
        self.assertIn("_DEBUG", conf.defines)
        self.assertIn("Profile", profiles)


class ContributionTests(unittest.TestCase):
    def test_from_mapping_accepts_define_tables(self) -> None:
        contribution = Contribution.from_mapping(
            {"defines": {"GFX": "DX11", "NOMINMAX": True}, "libraries": "d3d11.lib"},
            label="switch",
        )
        self.assertEqual(contribution.defines, ("GFX=DX11", "NOMINMAX"))
        self.assertEqual(contribution.libraries, ("d3d11.lib",))

    def test_from_mapping_rejects_unknown_keys(self) -> None:
        with self.assertRaises(ValueError) as ctx:
            Contribution.from_mapping({"librarys": ["d3d11.lib"]}, label="switch")
        self.assertIn("librarys", str(ctx.exception))

    def test_switch_reports_missing_and_unknown_cases(self) -> None:
        registry = AxisRegistry([Axis(name="graphics", values=("DX11", "OpenGL3", "Vulkan"))])
        switch = AxisSwitch.on("graphics", {"DX11": Contribution(), "Metal": Contribution()})
        self.assertEqual(switch.missing_cases(registry), [("OpenGL3",), ("Vulkan",)])
        self.assertEqual(switch.unknown_cases(registry), [("Metal",)])
        targets = [_target(graphics="DX11")]
        self.assertEqual(switch.missing_cases(registry, targets), [])


class ConfigurationTests(unittest.TestCase):
    def test_parse_define(self) -> None:
        self.assertEqual(parse_define("A=1"), ("A", "1"))
        self.assertEqual(parse_define("FLAG"), ("FLAG", None))
        with self.assertRaises(ValueError):
            parse_define("=1")
        self.assertEqual(normalize_defines(["A", "B=2"]), {"A": None, "B": "2"})

    def test_list_fields_stay_unique(self) -> None:
        conf = Configuration(project="Demo", target=_target())
        conf.add_libraries("a.lib", "b.lib", "a.lib")
        conf.add_libraries("b.lib")
        self.assertEqual(conf.libraries, ["a.lib", "b.lib"])
        with self.assertRaises(AttributeError):
            conf.add("defines", ["A"])

    def test_finalize_reports_unset_fields(self) -> None:
        conf = Configuration(project="Demo", target=_target(), output_kind=OutputKind.LIB, name="Debug")
        with self.assertRaises(IncompleteConfiguration) as ctx:
            conf.finalize()
        self.assertEqual(
            ctx.exception.missing,
            ("project_file_name", "output_path", "intermediate_path"),
        )

    def test_static_library_output_goes_to_library_path(self) -> None:
        conf = Configuration(
            project="Lib",
            target=_target(),
            output_kind=OutputKind.LIB,
            output_path="bin/Debug",
            target_library_path="tmp/lib/Debug",
        )
        self.assertEqual(conf.output_file, "tmp/lib/Debug/Lib.lib")


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
