"""Line selection filter with a persisted show-all sentinel."""

import json
import logging
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Optional, Set, Union

from .lines import DEFAULT_MODES, TransitMode, defined_lines, normalize_line
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

SELECTION_KEY = "transittrack.selectedLines"


@dataclass(frozen=True)
class ShowAll:
    """No filtering: every line passes."""

    def includes(self, line: str) -> bool:
        return True

    def to_lines(self) -> Set[str]:
        # Persisted form of show-all is the empty set
        return set()


@dataclass(frozen=True)
class ShowOnly:
    """Only the listed lines pass. Never empty."""
    lines: FrozenSet[str]

    def includes(self, line: str) -> bool:
        return line in self.lines

    def to_lines(self) -> Set[str]:
        return set(self.lines)


Selection = Union[ShowAll, ShowOnly]

SHOW_ALL = ShowAll()


def make_selection(lines: Iterable[str], universe: Iterable[str] = ()) -> Selection:
    """
    Build a selection from a set of lines.

    An empty set, or one covering the whole universe, is show-all.
    """
    chosen = {normalize_line(line) for line in lines} - {None}
    if not chosen:
        return SHOW_ALL
    universe = set(universe)
    if universe and chosen >= universe:
        return SHOW_ALL
    return ShowOnly(frozenset(chosen))


class LineFilter:
    """
    Decides which lines are shown on the map.

    The universe of lines is every line defined by a transit mode plus every
    line seen in the feed so far.
    """

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        modes: Iterable[TransitMode] = DEFAULT_MODES,
        key: str = SELECTION_KEY,
    ):
        self.store = store
        self.key = key
        self._defined = defined_lines(modes)
        self._observed: Set[str] = set()
        self.selection: Selection = self._load()

    @property
    def universe(self) -> Set[str]:
        return self._defined | self._observed

    def observe(self, lines: Iterable[str]) -> None:
        """Add feed lines to the known universe."""
        for line in lines:
            normalized = normalize_line(line)
            if normalized:
                self._observed.add(normalized)

    def passes(self, line: Optional[str]) -> bool:
        if isinstance(self.selection, ShowAll):
            return True
        normalized = normalize_line(line)
        return normalized is not None and self.selection.includes(normalized)

    def is_selected(self, line: Optional[str]) -> bool:
        """Alias of passes() for UI chips."""
        return self.passes(line)

    def toggle(self, line: str) -> Selection:
        """
        Flip one line in or out of the selection.

        From show-all, the selection is first expanded to the full universe,
        so toggling a line means "everything except this line". A result
        that covers the universe again collapses back to show-all.

        Returns:
            The new selection (also persisted).
        """
        normalized = normalize_line(line)
        if normalized is None:
            logger.debug(f"Ignoring toggle of unparseable line {line!r}")
            return self.selection

        self._observed.add(normalized)
        universe = self.universe

        if isinstance(self.selection, ShowAll):
            current = set(universe)
        else:
            current = self.selection.to_lines()

        if normalized in current:
            current.discard(normalized)
        else:
            current.add(normalized)

        self.selection = make_selection(current, universe)
        logger.debug(f"Toggled line {normalized}; selection is now {self.selection}")
        self._save()
        return self.selection

    def reset(self) -> None:
        """Restore show-all."""
        self.selection = SHOW_ALL
        self._save()

    def _load(self) -> Selection:
        if self.store is None:
            return SHOW_ALL
        try:
            raw = self.store.load(self.key)
        except Exception as e:
            logger.warning(f"Failed to load line selection, showing all lines: {e}")
            return SHOW_ALL
        if not raw:
            return SHOW_ALL
        try:
            lines = json.loads(raw)
        except ValueError as e:
            logger.warning(f"Ignoring malformed line selection {raw!r}: {e}")
            return SHOW_ALL
        if not isinstance(lines, list) or not all(isinstance(line, str) for line in lines):
            logger.warning(f"Ignoring malformed line selection {raw!r}")
            return SHOW_ALL
        return make_selection(lines, self.universe)

    def _save(self) -> None:
        if self.store is None:
            return
        try:
            self.store.save(self.key, json.dumps(sorted(self.selection.to_lines())))
        except Exception as e:
            logger.warning(f"Failed to save line selection: {e}")
