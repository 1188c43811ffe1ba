"""Shared core utilities for configuration loading, templating and console output."""

from .config_loader import (
    ConfigLoader,
    FILE_LOADERS,
    collect_config_files,
    load_config_file,
    merge_mappings,
    normalize_string_list,
    resolve_config_paths,
)
from .console import Console, ConsoleLike
from .template import TemplateError, TemplateResolver, extract_placeholders

__all__ = [
    "TemplateError",
    "TemplateResolver",
    "extract_placeholders",
    "Console",
    "ConsoleLike",
    "ConfigLoader",
    "FILE_LOADERS",
    "collect_config_files",
    "load_config_file",
    "merge_mappings",
    "normalize_string_list",
    "resolve_config_paths",
]
