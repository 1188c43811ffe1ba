"""Level-filtered console output shared by the command line tools."""
from __future__ import annotations

from typing import Protocol
import sys


class ConsoleLike(Protocol):
    """Minimal console interface accepted by library code."""

    def info(self, message: str) -> None:
        ...

    def error(self, message: str) -> None:
        ...

    def debug(self, message: str) -> None:
        ...


class Console:
    """Simple console output handler with configurable log level.

    Levels: none < error < info < debug
    Default: 'none' (no output)
    """

    LEVELS = {
        "none": 0,
        "error": 1,
        "info": 2,
        "debug": 3,
    }

    def __init__(self, level: str = "none", dry_run: bool = False) -> None:
        normalized = level.strip().lower()
        if normalized not in self.LEVELS:
            allowed = ", ".join(self.LEVELS)
            raise ValueError(f"Unknown log level '{level}' (allowed: {allowed})")
        self.level_name = normalized
        self.level = self.LEVELS[normalized]
        self.dry_run = dry_run

    def info(self, message: str) -> None:
        if self.level >= self.LEVELS["info"]:
            print(f"[INFO] {message}")

    def error(self, message: str) -> None:
        if self.level >= self.LEVELS["error"]:
            print(f"[ERROR] {message}", file=sys.stderr)

    def dry(self, message: str) -> None:
        if self.dry_run:
            print(f"[DRY] {message}")

    def debug(self, message: str) -> None:
        if self.level >= self.LEVELS["debug"]:
            print(f"[DEBUG] {message}")


__all__ = ["Console", "ConsoleLike"]
