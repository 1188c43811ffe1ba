from __future__ import annotations

import unittest

from core.template import TemplateError, TemplateResolver, extract_placeholders


class TemplateResolverTests(unittest.TestCase):
    def setUp(self) -> None:
        self.context = {
            "root": "/work",
            "project": {"name": "Demo", "source_root": "{{root}}/demo"},
            "target": {"name": "Debug_Win32", "profile": "Debug", "platform": "Win32"},
            "var": {"dev_env": "vs2022", "platform": "win64"},
        }
        self.resolver = TemplateResolver(self.context)

    def test_resolve_placeholder(self) -> None:
        result = self.resolver.resolve("{{project.name}}_{{var.dev_env}}_{{var.platform}}")
        self.assertEqual(result, "Demo_vs2022_win64")

    def test_nested_variable_resolution(self) -> None:
        self.assertEqual(self.resolver.resolve("{{project.source_root}}/main.cpp"), "/work/demo/main.cpp")

    def test_single_placeholder_returns_raw_value(self) -> None:
        resolver = TemplateResolver({"settings": {"workers": 4, "paths": ["a", "{{settings.workers}}"]}})
        self.assertEqual(resolver.resolve("{{settings.workers}}"), 4)
        self.assertEqual(resolver.resolve("{{settings.paths}}"), ["a", 4])

    def test_resolves_containers(self) -> None:
        result = self.resolver.resolve({"out": ["{{root}}/bin/{{target.name}}"], "kind": 3})
        self.assertEqual(result, {"out": ["/work/bin/Debug_Win32"], "kind": 3})

    def test_text_without_placeholders_is_untouched(self) -> None:
        self.assertEqual(self.resolver.resolve("$(VULKAN_SDK)/Include"), "$(VULKAN_SDK)/Include")

    def test_unknown_path(self) -> None:
        with self.assertRaises(TemplateError) as ctx:
            self.resolver.resolve("{{target.graphics}}")
        self.assertIn("target.graphics", str(ctx.exception))
        self.assertIsInstance(ctx.exception, ValueError)

    def test_cycle_detection(self) -> None:
        context = {
            "variables": {
                "alpha": "{{variables.beta}}",
                "beta": "{{variables.alpha}}",
            }
        }
        resolver = TemplateResolver(context)
        with self.assertRaises(TemplateError) as ctx:
            resolver.resolve("{{variables.alpha}}")
        self.assertIn("Circular dependency", str(ctx.exception))

    def test_cache_can_be_cleared(self) -> None:
        context = {"var": {"platform": "win64"}}
        resolver = TemplateResolver(context)
        self.assertEqual(resolver.resolve("{{var.platform}}"), "win64")
        context["var"]["platform"] = "arm64"
        self.assertEqual(resolver.resolve("{{var.platform}}"), "win64")
        resolver.clear_cache()
        self.assertEqual(resolver.resolve("{{var.platform}}"), "arm64")

    def test_extract_placeholders(self) -> None:
        found = extract_placeholders({"a": "{{root}}/x/{{ target.name }}", "b": ["{{var.platform}}", 1]})
        self.assertEqual(found, {"root", "target.name", "var.platform"})


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
