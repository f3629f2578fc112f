"""Line identifiers, transit modes and line colors."""

import re
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Optional, Set, Tuple

_LINE_TOKEN = re.compile(r"\d+[A-Z]*")
_WHITESPACE = re.compile(r"\s+")

DEFAULT_COLOR = "#EB5757"


def normalize_line(raw: Optional[str]) -> Optional[str]:
    """
    Normalize a raw line identifier.

    Uppercases, strips whitespace and keeps the first "digits then letters"
    token, so "43 x" becomes "43X" and "Line 14" becomes "14". Text without
    digits is kept as-is (uppercased, whitespace removed).

    Returns:
        The normalized identifier, or None when nothing is left.
    """
    if raw is None:
        return None
    compact = _WHITESPACE.sub("", str(raw).upper())
    if not compact:
        return None
    match = _LINE_TOKEN.search(compact)
    if match:
        return match.group(0)
    return compact


@dataclass(frozen=True)
class TransitMode:
    """A family of lines sharing one color, e.g. a metro branch."""
    name: str
    color: str
    lines: FrozenSet[str]


def _mode(name: str, color: str, *lines: str) -> TransitMode:
    return TransitMode(name=name, color=color, lines=frozenset(normalize_line(line) for line in lines))


# Explicit per-mode line lists. Membership is never inferred from feed data.
DEFAULT_MODES: Tuple[TransitMode, ...] = (
    _mode("Metro (blue)", "#0089CA", "10", "11"),
    _mode("Metro (red)", "#D71D24", "13", "14"),
    _mode("Metro (green)", "#148541", "17", "18", "19"),
    _mode("Tram", "#878787", "7", "12", "21", "30", "31"),
    _mode("Light rail", "#A25AA6", "25", "26", "27", "28", "29"),
    _mode("Commuter rail", "#EC619F", "40", "41", "43", "43X", "44", "48"),
)


def defined_lines(modes: Iterable[TransitMode] = DEFAULT_MODES) -> Set[str]:
    """All lines named by any mode."""
    lines: Set[str] = set()
    for mode in modes:
        lines.update(mode.lines)
    return lines


def mode_for_line(line: Optional[str], modes: Iterable[TransitMode] = DEFAULT_MODES) -> Optional[TransitMode]:
    normalized = normalize_line(line)
    for mode in modes:
        if normalized in mode.lines:
            return mode
    return None


def color_for_line(line: Optional[str], modes: Iterable[TransitMode] = DEFAULT_MODES) -> str:
    """Marker color for a line; lines outside every mode get the default color."""
    mode = mode_for_line(line, modes)
    return mode.color if mode else DEFAULT_COLOR
