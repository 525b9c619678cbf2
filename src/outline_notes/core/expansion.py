"""Expand/collapse state: explicit expanded-ID set plus level-based expansion."""

from loguru import logger

from outline_notes.core.tree.navigation import ids_at_depths_below, max_depth
from outline_notes.core.tree.store import TreeSnapshot, TreeStore


class ExpansionState:
    """Which notes show their children.

    The expanded-ID set is the source of truth for rendering. ``current_level``
    only remembers the last level-based expansion; toggling single notes does
    not touch it. :attr:`effective_level` answers whether the set still matches
    a canonical level by comparing it with that level's ID set.
    """

    def __init__(self, store: TreeStore) -> None:
        self._store = store
        self._expanded: frozenset[str] = frozenset()
        self._level = 0
        self._max_depth = max_depth(store.snapshot)
        store.subscribe(self._on_tree_changed)

    @property
    def expanded_ids(self) -> frozenset[str]:
        return self._expanded

    @property
    def current_level(self) -> int:
        return self._level

    @property
    def max_depth(self) -> int:
        return self._max_depth

    @property
    def effective_level(self) -> int | None:
        """Level whose canonical set equals the expanded set, or None if none does."""
        snapshot = self._store.snapshot
        for level in range(self._max_depth + 2):
            if ids_at_depths_below(snapshot, level) == self._expanded:
                return min(level, self._max_depth)
        return None

    def collapse_all(self) -> frozenset[str]:
        self._expanded = frozenset()
        self._level = 0
        return self._expanded

    def expand_all(self) -> frozenset[str]:
        self._expanded = frozenset(self._store.snapshot.records)
        self._level = self._max_depth
        return self._expanded

    def expand_to_level(self, level: int) -> frozenset[str]:
        """Expand every note above ``level`` so notes at that depth become visible.

        The set is rebuilt from scratch; manual toggles are discarded. ``level``
        is clamped to ``[0, max_depth]``.
        """
        level = max(0, min(level, self._max_depth))
        if level == 0:
            return self.collapse_all()
        self._expanded = ids_at_depths_below(self._store.snapshot, level)
        self._level = level
        logger.debug("Expanded to level {} ({} notes)", level, len(self._expanded))
        return self._expanded

    def expand_one_more(self) -> frozenset[str]:
        return self.expand_to_level(self._level + 1)

    def collapse_one(self) -> frozenset[str]:
        return self.expand_to_level(self._level - 1)

    def toggle(self, note_id: str) -> bool:
        """Flip one note's expansion; return whether it is now expanded."""
        self._store.snapshot.get(note_id)
        if note_id in self._expanded:
            self._expanded = self._expanded - {note_id}
            return False
        self._expanded = self._expanded | {note_id}
        return True

    def _on_tree_changed(self, _old: TreeSnapshot, new: TreeSnapshot) -> None:
        self._max_depth = max_depth(new)
        self._level = min(self._level, self._max_depth)
        live = self._expanded.intersection(new.records)
        if len(live) != len(self._expanded):
            self._expanded = frozenset(live)
