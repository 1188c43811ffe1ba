"""Command line interface for the solution generator."""
from __future__ import annotations

from argparse import ArgumentParser, Namespace
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Iterable, List
import json
import os
import sys

import yaml

from core.console import Console

from .config_loader import ConfigurationStore
from .errors import GenerationError
from .solution import GenerationRequest, Solution, assemble, build_order, validate_solution


CONFIG_DIR_ENV = "SLNGEN_CONFIG_DIR"


def _split_config_values(values: Iterable[str]) -> List[str]:
    parts: List[str] = []
    separator = os.pathsep
    for value in values:
        if not value:
            continue
        text = value.strip()
        if not text:
            continue
        segments = text.split(separator) if separator in text else [text]
        for segment in segments:
            trimmed = segment.strip()
            if trimmed:
                parts.append(trimmed)
    return parts


def _resolve_config_directories(workspace: Path, cli_values: Iterable[str]) -> tuple[List[Path], bool]:
    """Return the ordered config directories and whether any was requested explicitly."""

    config_dirs: List[Path] = [workspace / "config"]
    explicit: List[str] = []

    env_value = os.environ.get(CONFIG_DIR_ENV)
    if env_value:
        explicit.extend(_split_config_values([env_value]))
    explicit.extend(_split_config_values(cli_values))

    for entry in explicit:
        path = Path(entry)
        if not path.is_absolute():
            path = workspace / path
        config_dirs.append(path)

    ordered: List[Path] = []
    for path in config_dirs:
        if path in ordered:
            ordered.remove(path)
        ordered.append(path)
    return ordered, bool(explicit)


def _load_configuration_store(args: Namespace, workspace: Path) -> ConfigurationStore:
    cli_dirs: Iterable[str] = getattr(args, "config_dirs", [])
    directories, explicit = _resolve_config_directories(workspace, cli_dirs)
    if not explicit and not directories[0].exists():
        return ConfigurationStore.builtin(workspace)
    return ConfigurationStore.from_directories(workspace, directories)


def _make_console(args: Namespace, store: ConfigurationStore) -> Console:
    level = store.global_config.log_level
    if getattr(args, "log_level", None):
        level = args.log_level
    if getattr(args, "verbose", False):
        level = "debug"
    return Console(level, dry_run=bool(getattr(args, "dry_run", False)))


def _error_message(exc: BaseException) -> str:
    if isinstance(exc, KeyError) and exc.args:
        return str(exc.args[0])
    return str(exc)


def _parse_allow(values: Iterable[str]) -> List[Dict[str, Any]] | None:
    """Parse ``axis=value,axis=value[,profile=Name]`` entries into allow-list mappings."""

    entries: List[Dict[str, Any]] = []
    for raw in values:
        if not raw or not raw.strip():
            continue
        entry: Dict[str, Any] = {}
        for part in raw.split(","):
            key, separator, value = part.partition("=")
            if not separator or not key.strip() or not value.strip():
                raise ValueError(f"Invalid --allow entry '{raw}': expected axis=value pairs")
            entry[key.strip()] = value.strip()
        entries.append(entry)
    return entries or None


def _collect_profiles(values: List[str]) -> List[str]:
    profiles: List[str] = []
    for value in values:
        if not value:
            continue
        profiles.extend(part.strip() for part in value.split(",") if part.strip())
    return profiles


def _parse_arguments(argv: Iterable[str]) -> Namespace:
    parser = ArgumentParser(prog="slngen", description="Build matrix and solution configuration generator")
    parser.add_argument(
        "-C",
        "--config-dir",
        dest="config_dirs",
        action="append",
        default=[],
        metavar="PATH",
        help="Additional configuration directory (repeat or separate with PATH separator)",
    )
    parser.add_argument("--log-level", choices=list(Console.LEVELS), help="Console output level")
    parser.add_argument("--verbose", action="store_true", help="Enable debug output")
    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="List solutions, or the targets of one solution")
    list_parser.add_argument("solution", nargs="?", help="Solution to inspect")
    list_parser.add_argument("--projects", action="store_true", help="Show projects in build order")

    generate_parser = subparsers.add_parser("generate", help="Resolve every project configuration of a solution")
    generate_parser.add_argument("solution", help="Solution name")
    generate_parser.add_argument(
        "-a",
        "--allow",
        action="append",
        default=[],
        metavar="AXIS=VALUE,...",
        help="Restrict generation to a combination (repeatable; 'profile=' narrows profiles)",
    )
    generate_parser.add_argument("-p", "--profile", action="append", default=[], help="Profile(s) to generate (comma-separated)")
    generate_parser.add_argument("-j", "--workers", type=int, help="Resolve targets on this many threads")
    generate_parser.add_argument("--timeout", type=float, help="Abort when generation takes longer than this many seconds")
    generate_parser.add_argument("-o", "--output", help="Write the generation request to this file")
    generate_parser.add_argument("-f", "--format", choices=["json", "yaml"], default="json", help="Output format")
    generate_parser.add_argument("-n", "--dry-run", action="store_true", help="Show what would be generated without writing output")

    validate_parser = subparsers.add_parser("validate", help="Validate solution declarations")
    validate_parser.add_argument("solution", nargs="?", help="Validate a single solution by name")

    return parser.parse_args(list(argv))


def main(argv: Iterable[str] | None = None) -> int:
    args = _parse_arguments(sys.argv[1:] if argv is None else argv)
    workspace = Path.cwd()

    try:
        store = _load_configuration_store(args, workspace)
    except (FileNotFoundError, KeyError, TypeError, ValueError) as exc:
        print(f"Error: {_error_message(exc)}")
        return 2

    if args.command == "list":
        return _handle_list(args, store)
    if args.command == "generate":
        return _handle_generate(args, store)
    if args.command == "validate":
        return _handle_validate(args, store)
    raise ValueError(f"Unknown command: {args.command}")


def _handle_list(args: Namespace, store: ConfigurationStore) -> int:
    if not args.solution:
        names = sorted(store.list_solutions())
        if not names:
            print("No solutions found")
            return 0
        rows = [
            {
                "Solution": name,
                "Projects": str(len(store.solutions[name].projects)),
                "Source": store.sources.get(name, ""),
            }
            for name in names
        ]
        _print_table(["Solution", "Projects", "Source"], rows)
        return 0

    try:
        solution = store.get_solution(args.solution)
    except KeyError as exc:
        print(f"Error: {_error_message(exc)}")
        return 2

    try:
        if args.projects:
            for name in build_order(solution.projects):
                project = solution.get_project(name)
                axes = ", ".join(project.axes) or "-"
                print(f"{name} ({project.kind.value}; axes: {axes})")
            return 0
        for target in solution.targets():
            print(target.name)
    except KeyError as exc:
        print(f"Error: {_error_message(exc)}")
        return 2
    except (GenerationError, ValueError) as exc:
        print(f"Error: {exc}")
        return 1
    return 0


def _handle_generate(args: Namespace, store: ConfigurationStore) -> int:
    console = _make_console(args, store)
    try:
        solution = store.get_solution(args.solution)
    except KeyError as exc:
        print(f"Error: {_error_message(exc)}")
        return 2

    workers = args.workers if args.workers is not None else store.global_config.workers
    timeout = args.timeout if args.timeout is not None else store.global_config.timeout

    try:
        allow = _parse_allow(args.allow)
        profiles = _collect_profiles(args.profile)
        if profiles:
            solution = replace(solution, profiles=tuple(profiles))
        targets = solution.targets(allow=allow)
        request = assemble(
            solution,
            targets=targets,
            profiles=store.profiles,
            console=console,
            workers=workers,
            timeout=timeout,
        )
    except KeyError as exc:
        console.error(_error_message(exc))
        print(f"Error: {_error_message(exc)}")
        return 2
    except (GenerationError, ValueError) as exc:
        console.error(str(exc))
        print(f"Error: {exc}")
        return 1

    output = _output_path(args, store, solution)
    if console.dry_run:
        _emit_dry_run_output(console, request, output)
        return 0

    payload = _render(request, args.format)
    if output is None:
        print(payload)
    else:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(payload + "\n", encoding="utf-8")
        print(f"Generated {len(request)} target(s) for '{solution.name}' into {output}")
    return 0


def _output_path(args: Namespace, store: ConfigurationStore, solution: Solution) -> Path | None:
    if args.output:
        path = Path(args.output)
        return path if path.is_absolute() else store.root / path
    if store.global_config.output_dir:
        directory = Path(store.global_config.output_dir)
        if not directory.is_absolute():
            directory = store.root / directory
        return directory / f"{solution.name}.{args.format}"
    return None


def _render(request: GenerationRequest, fmt: str) -> str:
    data = request.to_mapping()
    if fmt == "yaml":
        return yaml.safe_dump(data, sort_keys=False).rstrip("\n")
    return json.dumps(data, indent=2)


def _emit_dry_run_output(console: Console, request: GenerationRequest, output: Path | None) -> None:
    for generation in request:
        console.dry(f"{generation.solution.file_name} [{generation.solution.name}]")
        for name, conf in generation.configurations:
            console.dry(f"  {name}: {conf.output_file} ({len(conf.source_files)} source file(s))")
    if output is not None:
        console.dry(f"would write {output}")


def _handle_validate(args: Namespace, store: ConfigurationStore) -> int:
    if args.solution:
        try:
            store.get_solution(args.solution)
        except KeyError as exc:
            print(f"Error: {_error_message(exc)}")
            return 2
        names = [args.solution]
    else:
        names = sorted(store.list_solutions())
        if not names:
            print("No solutions found")
            return 0

    errors: List[tuple[str, str]] = []
    for name in names:
        for message in validate_solution(store.solutions[name], profiles=store.profiles):
            errors.append((name, message))

    if errors:
        print("Validation failed:")
        for name, message in errors:
            print(f"  [{name}] {message}")
        return 1

    print("Validation successful")
    return 0


def _print_table(headers: List[str], rows: List[Dict[str, str]]) -> None:
    widths = {header: len(header) for header in headers}
    for row in rows:
        for header in headers:
            widths[header] = max(widths[header], len(row.get(header, "")))

    def _format(row: Dict[str, str]) -> str:
        return "  ".join(row.get(header, "").ljust(widths[header]) for header in headers).rstrip()

    print(_format({header: header for header in headers}))
    print("  ".join("-" * widths[header] for header in headers))
    for row in rows:
        print(_format(row))


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
