"""Console progress for command-line imports and distributions.

Module-level singleton. Call configure() once at boot; silent until then.

Levels:
    0 (OFF)   — silent (default)
    1 (INFO)  — header, stage, progress
    2 (DEBUG) — + step
    3 (TRACE) — + outcome (one line per company write)
"""

from __future__ import annotations

from enum import IntEnum

_level: int = 0


class Level(IntEnum):
    """Verbosity levels."""

    OFF = 0
    INFO = 1
    DEBUG = 2
    TRACE = 3


def configure(level: int) -> None:
    """Set verbosity level. Called once at boot."""
    global _level
    _level = level


def enabled(level: Level) -> bool:
    return _level >= level


def header(text: str) -> None:
    """Run-level banner."""
    if enabled(Level.INFO):
        print(f"\n═══ {text} ═══\n")


def stage(name: str, description: str) -> None:
    if enabled(Level.INFO):
        print(f"── {name}: {description} ──")


def progress(current: int, total: int) -> None:
    """Batch progress, e.g. ``Progress: 200/250 (80%)``."""
    if enabled(Level.INFO):
        percentage = round(current / total * 100) if total else 100
        print(f"  Progress: {current}/{total} ({percentage}%)")


def step(text: str) -> None:
    if enabled(Level.DEBUG):
        print(f"  {text}")


def outcome(target: str, success: bool, note: str = "") -> None:
    """Per-target result line, marked ✓ or ✗."""
    if enabled(Level.TRACE):
        mark = "✓" if success else "✗"
        print(f"    {mark} {target}" + (f": {note}" if note else ""))
