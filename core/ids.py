"""Sequential identifier generation."""

from __future__ import annotations

import re
from collections.abc import Iterable

_SEQUENCE_RE = re.compile(r"^(?P<prefix>[A-Z]+)-(?P<number>\d+)$")


def next_sequential_id(prefix: str, existing: Iterable[str], width: int = 3) -> str:
    """Return the next ``PREFIX-NNN`` identifier after the highest existing one.

    Identifiers with a different prefix or shape are ignored.
    """
    highest = 0
    for identifier in existing:
        match = _SEQUENCE_RE.match(identifier.strip())
        if match and match.group("prefix") == prefix:
            highest = max(highest, int(match.group("number")))
    return f"{prefix}-{highest + 1:0{width}d}"


def generate_placement_id(existing: Iterable[str]) -> str:
    """Generate the next placement ID.

    Format: PL-<3+ digit sequence>
    """
    return next_sequential_id("PL", existing)
