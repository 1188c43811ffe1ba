"""Built-in declarations for the ImAnim library, its demo and the backend examples."""
from __future__ import annotations

from enum import Enum
from typing import Callable, Dict, Iterable, List, Mapping, Sequence

from .axes import Axis
from .configuration import Configuration, OutputKind
from .pipeline import AxisSwitch, Contribution, PathLayout, Step, StepContext
from .project import Project, ProjectDependency
from .solution import Solution, SolutionLayout


class Platform(str, Enum):
    WIN32 = "Win32"
    GLFW = "GLFW"
    SDL2 = "SDL2"
    SDL3 = "SDL3"


class Graphics(str, Enum):
    OPENGL3 = "OpenGL3"
    DIRECTX9 = "DirectX9"
    DIRECTX10 = "DirectX10"
    DIRECTX11 = "DirectX11"
    DIRECTX12 = "DirectX12"
    VULKAN = "Vulkan"


class ExampleType(str, Enum):
    GLFW_OPENGL3 = "GLFW_OpenGL3"
    SDL2_OPENGL3 = "SDL2_OpenGL3"
    WIN32_DIRECTX11 = "Win32_DirectX11"
    IMPLATFORM = "ImPlatform"


EXAMPLE_LABELS = {ExampleType.WIN32_DIRECTX11: "Win32_DX11"}

VARIABLES = {"dev_env": "vs2022", "platform": "win64"}

IMGUI = "{{root}}/extern/imgui"
BACKENDS = f"{IMGUI}/backends"

COMMON = Contribution(
    defines=("NOMINMAX", "WIN32", "_CRT_SECURE_NO_WARNINGS"),
    compiler_options=("/W4",),
    options=("Compiler.CppLanguageStandard.CPP17",),
)

WINDOWS_APP = Contribution(
    options=("Linker.SubSystem.Windows",),
    linker_options=("/ENTRY:mainCRTStartup",),
)


def runtime_library(*, dll: bool) -> Step:
    """MSVC runtime per profile: debug CRT for Debug, release CRT otherwise."""

    suffix = "DLL" if dll else ""

    def apply(conf: Configuration, ctx: StepContext) -> None:
        runtime = "MultiThreadedDebug" if ctx.target.profile == "Debug" else "MultiThreaded"
        conf.add_options(f"Compiler.RuntimeLibrary.{runtime}{suffix}")

    return apply


STATIC_RUNTIME = runtime_library(dll=False)
DLL_RUNTIME = runtime_library(dll=True)

DIRECTX_COMMON = ("dxgi.lib", "d3dcompiler.lib")

PLATFORM_BACKENDS: Dict[Platform, Contribution] = {
    Platform.WIN32: Contribution(
        defines=("IM_CONFIG_PLATFORM=IM_PLATFORM_WIN32",),
        files=(f"{BACKENDS}/imgui_impl_win32.cpp",),
    ),
    Platform.GLFW: Contribution(
        defines=("IM_CONFIG_PLATFORM=IM_PLATFORM_GLFW",),
        include_paths=("{{root}}/extern/glfw/include",),
        library_paths=("{{root}}/extern/glfw/lib",),
        libraries=("glfw3.lib",),
        files=(f"{BACKENDS}/imgui_impl_glfw.cpp",),
    ),
    Platform.SDL2: Contribution(
        defines=("IM_CONFIG_PLATFORM=IM_PLATFORM_SDL2",),
        include_paths=("{{root}}/extern/SDL2/include",),
        library_paths=("{{root}}/extern/SDL2/lib",),
        libraries=("SDL2.lib", "SDL2main.lib"),
        files=(f"{BACKENDS}/imgui_impl_sdl2.cpp",),
    ),
    Platform.SDL3: Contribution(
        defines=("IM_CONFIG_PLATFORM=IM_PLATFORM_SDL3",),
        include_paths=("{{root}}/extern/SDL3/include",),
        library_paths=("{{root}}/extern/SDL3/lib",),
        libraries=("SDL3.lib",),
        files=(f"{BACKENDS}/imgui_impl_sdl3.cpp",),
    ),
}

GRAPHICS_BACKENDS: Dict[Graphics, Contribution] = {
    Graphics.OPENGL3: Contribution(
        defines=("IM_CONFIG_GFX=IM_GFX_OPENGL3",),
        libraries=("opengl32.lib",),
        files=(f"{BACKENDS}/imgui_impl_opengl3.cpp",),
    ),
    Graphics.DIRECTX9: Contribution(
        defines=("IM_CONFIG_GFX=IM_GFX_DIRECTX9",),
        libraries=("d3d9.lib",),
        files=(f"{BACKENDS}/imgui_impl_dx9.cpp",),
    ),
    Graphics.DIRECTX10: Contribution(
        defines=("IM_CONFIG_GFX=IM_GFX_DIRECTX10",),
        libraries=("d3d10.lib", *DIRECTX_COMMON),
        files=(f"{BACKENDS}/imgui_impl_dx10.cpp",),
    ),
    Graphics.DIRECTX11: Contribution(
        defines=("IM_CONFIG_GFX=IM_GFX_DIRECTX11",),
        libraries=("d3d11.lib", *DIRECTX_COMMON),
        files=(f"{BACKENDS}/imgui_impl_dx11.cpp",),
    ),
    Graphics.DIRECTX12: Contribution(
        defines=("IM_CONFIG_GFX=IM_GFX_DIRECTX12",),
        libraries=("d3d12.lib", *DIRECTX_COMMON),
        files=(f"{BACKENDS}/imgui_impl_dx12.cpp",),
    ),
    Graphics.VULKAN: Contribution(
        defines=("IM_CONFIG_GFX=IM_GFX_VULKAN",),
        include_paths=("$(VULKAN_SDK)/Include",),
        library_paths=("$(VULKAN_SDK)/Lib",),
        libraries=("vulkan-1.lib",),
        files=(f"{BACKENDS}/imgui_impl_vulkan.cpp",),
    ),
}

IMGUI_CORE = tuple(
    f"{IMGUI}/{name}.cpp"
    for name in ("imgui", "imgui_demo", "imgui_draw", "imgui_tables", "imgui_widgets")
)

LAYOUT = PathLayout(
    configuration_name="{{target.name}}",
    project_file_name="{{project.name}}_{{var.dev_env}}_{{var.platform}}",
    project_path="{{root}}/projects/{{project.name}}",
    output_path="{{root}}/bin/{{target.name}}",
    intermediate_path="{{root}}/tmp/{{project.name}}/{{target.name}}",
    target_library_path="{{root}}/tmp/lib/{{var.platform}}_{{target.name}}",
    working_directory="{{root}}/working_dir",
)

SOLUTION_LAYOUT = SolutionLayout(
    configuration_name="{{target.name}}",
    file_name="{{solution.name}}_{{var.dev_env}}_{{var.platform}}",
    path="{{root}}",
)


def _selected(table: Mapping[Enum, Contribution], values: Iterable[Enum]) -> Dict[Enum, Contribution]:
    wanted = list(values)
    return {value: contribution for value, contribution in table.items() if value in wanted}


def _case_files(*tables: Mapping[Enum, Contribution]) -> List[str]:
    files: List[str] = []
    for table in tables:
        for contribution in table.values():
            files.extend(path for path in contribution.files if path not in files)
    return files


def imanim_library() -> Project:
    return Project(
        name="ImAnimLib",
        kind=OutputKind.LIB,
        source_root="{{root}}/src",
        files=("im_anim.h", "im_anim.cpp"),
        settings=Contribution(
            include_paths=(IMGUI,),
            exported_include_paths=("{{root}}/src",),
        ),
        steps=(COMMON.apply, STATIC_RUNTIME),
        layout=LAYOUT,
    )


def imanim_demo(
    platforms: Sequence[Platform] = tuple(Platform),
    graphics: Sequence[Graphics] = tuple(Graphics),
) -> Project:
    platform_table = _selected(PLATFORM_BACKENDS, platforms)
    graphics_table = _selected(GRAPHICS_BACKENDS, graphics)
    return Project(
        name="ImAnimDemo",
        kind=OutputKind.EXE,
        source_root="{{root}}/demo",
        files=(
            "demo_im_anim.cpp",
            "{{root}}/extern/ImPlatform/ImPlatform/ImPlatform.h",
            *IMGUI_CORE,
            *_case_files(platform_table, graphics_table),
        ),
        axes=("platform", "graphics"),
        settings=Contribution(
            include_paths=(
                "{{root}}/src",
                IMGUI,
                BACKENDS,
                "{{root}}/extern/ImPlatform/ImPlatform",
            ),
            libraries=("dwmapi.lib",),
        ),
        steps=(COMMON.apply, STATIC_RUNTIME, WINDOWS_APP.apply),
        switches=(
            AxisSwitch.on("platform", platform_table),
            AxisSwitch.on("graphics", graphics_table),
        ),
        dependencies=(ProjectDependency("ImAnimLib"),),
        layout=LAYOUT,
    )


def imanim_solution(
    *,
    root: str = ".",
    platforms: Sequence[Platform] = tuple(Platform),
    graphics: Sequence[Graphics] = tuple(Graphics),
    profiles: Sequence[str] = ("Debug", "Release"),
) -> Solution:
    """The library plus the demo application across platform and graphics backends."""

    return Solution(
        name="ImAnim",
        axes=(
            Axis(name="platform", values=tuple(platforms)),
            Axis(name="graphics", values=tuple(graphics)),
        ),
        projects=(imanim_library(), imanim_demo(platforms, graphics)),
        profiles=tuple(profiles),
        layout=SOLUTION_LAYOUT,
        variables=VARIABLES,
        root=root,
        description="ImAnim library and demo across platform/graphics backends",
    )


EXAMPLES = "{{root}}/examples"
EXAMPLE_BACKENDS = f"{EXAMPLES}/extern/imgui/backends"
EXAMPLE_MAINS = {example: f"{EXAMPLES}/{example.value.lower()}/main.cpp" for example in ExampleType}
IMPLATFORM_HEADER = f"{EXAMPLES}/extern/ImPlatform/ImPlatform/ImPlatform.h"


def _example_backends(*names: str) -> tuple[str, ...]:
    return tuple(f"{EXAMPLE_BACKENDS}/imgui_impl_{name}.cpp" for name in names)


EXAMPLE_CASES: Dict[ExampleType, Contribution] = {
    ExampleType.GLFW_OPENGL3: Contribution(
        include_paths=(f"{EXAMPLES}/extern/imgui/examples/libs/glfw/include",),
        library_paths=(f"{EXAMPLES}/extern/imgui/examples/libs/glfw/lib-vc2010-64",),
        libraries=("glfw3.lib", "opengl32.lib"),
        files=(EXAMPLE_MAINS[ExampleType.GLFW_OPENGL3], *_example_backends("glfw", "opengl3")),
    ),
    ExampleType.SDL2_OPENGL3: Contribution(
        include_paths=(f"{EXAMPLES}/extern/SDL2/include",),
        library_paths=(f"{EXAMPLES}/extern/SDL2/lib",),
        libraries=("SDL2.lib", "SDL2main.lib", "opengl32.lib"),
        files=(EXAMPLE_MAINS[ExampleType.SDL2_OPENGL3], *_example_backends("sdl2", "opengl3")),
    ),
    ExampleType.WIN32_DIRECTX11: Contribution(
        libraries=("d3d11.lib", *DIRECTX_COMMON),
        files=(EXAMPLE_MAINS[ExampleType.WIN32_DIRECTX11], *_example_backends("win32", "dx11")),
    ),
    ExampleType.IMPLATFORM: Contribution(
        defines=("IM_CONFIG_PLATFORM=IM_PLATFORM_WIN32", "IM_CONFIG_GFX=IM_GFX_DIRECTX11"),
        include_paths=(f"{EXAMPLES}/extern/ImPlatform/ImPlatform",),
        libraries=("d3d11.lib", *DIRECTX_COMMON, "dwmapi.lib"),
        files=(
            EXAMPLE_MAINS[ExampleType.IMPLATFORM],
            IMPLATFORM_HEADER,
            *_example_backends("win32", "dx11"),
        ),
    ),
}

SHARPMAKE = EXAMPLES + "/sharpmake"
EXAMPLE_OUTPUT = SHARPMAKE + "/bin/{{target.slug}}/{{target.profile}}"

EXAMPLES_LAYOUT = PathLayout(
    configuration_name="{{target.profile}}_{{target.slug}}",
    project_file_name="{{project.name}}_{{var.dev_env}}_{{var.platform}}",
    project_path=SHARPMAKE + "/projects/{{project.name}}",
    output_path=EXAMPLE_OUTPUT,
    intermediate_path=SHARPMAKE + "/tmp/{{project.name}}/{{target.slug}}/{{target.profile}}",
    target_library_path=SHARPMAKE + "/tmp/lib/{{target.slug}}_{{target.profile}}",
    working_directory=EXAMPLE_OUTPUT,
)


def imanim_examples_demo(examples: Sequence[ExampleType] = tuple(ExampleType)) -> Project:
    cases = _selected(EXAMPLE_CASES, examples)
    return Project(
        name="ImAnimDemo",
        kind=OutputKind.EXE,
        source_root=EXAMPLES,
        files=(
            "{{root}}/im_anim.h",
            "{{root}}/im_anim.cpp",
            "{{root}}/im_anim_demo.cpp",
            "{{root}}/im_anim_doc.cpp",
            *(path.replace(IMGUI, EXAMPLES + "/extern/imgui") for path in IMGUI_CORE),
            *_case_files(cases),
        ),
        axes=("example",),
        settings=Contribution(
            include_paths=("{{root}}", EXAMPLES + "/extern/imgui", EXAMPLE_BACKENDS),
        ),
        steps=(COMMON.apply, DLL_RUNTIME, WINDOWS_APP.apply),
        switches=(AxisSwitch.on("example", cases),),
        layout=EXAMPLES_LAYOUT,
    )


def imanim_examples_solution(
    *,
    root: str = ".",
    examples: Sequence[ExampleType] = tuple(ExampleType),
    profiles: Sequence[str] = ("Debug", "Release"),
) -> Solution:
    """The demo built once per backend example, each with its own main.cpp."""

    return Solution(
        name="ImAnimExamples",
        axes=(
            Axis(
                name="example",
                values=tuple(examples),
                labels=tuple(EXAMPLE_LABELS.items()),
            ),
        ),
        projects=(imanim_examples_demo(examples),),
        profiles=tuple(profiles),
        layout=SolutionLayout(
            configuration_name="{{target.profile}}_{{target.slug}}",
            file_name="{{solution.name}}_{{var.dev_env}}_{{var.platform}}",
            path=EXAMPLES,
        ),
        variables=VARIABLES,
        root=root,
        description="ImAnim demo per backend example",
    )


BUILTIN_SOLUTIONS: Dict[str, Callable[..., Solution]] = {
    "ImAnim": imanim_solution,
    "ImAnimExamples": imanim_examples_solution,
}


def builtin_solutions(root: str = ".") -> Dict[str, Solution]:
    return {name: factory(root=root) for name, factory in BUILTIN_SOLUTIONS.items()}


__all__ = [
    "BUILTIN_SOLUTIONS",
    "ExampleType",
    "Graphics",
    "Platform",
    "builtin_solutions",
    "imanim_demo",
    "imanim_examples_demo",
    "imanim_examples_solution",
    "imanim_library",
    "imanim_solution",
]
