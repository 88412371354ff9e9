from __future__ import annotations
from typing import AbstractSet, Iterable


class Frontier:
    """Frontier and visited sets for one crawl.

    Only the engine thread calls these methods. ``visited`` only grows, except
    for ``release`` of a cancelled fetch, and after every ``merge_round`` the
    frontier and visited sets are disjoint.
    """

    def __init__(self) -> None:
        self._pending: set[str] = set()
        self._visited: set[str] = set()
        self._checked_out = False

    def seed(self, url: str) -> None:
        self._pending = {url}
        self._visited = set()
        self._checked_out = False

    def take_round(self) -> frozenset[str]:
        """Current frontier, frozen while the round is in flight."""
        self._checked_out = True
        return frozenset(self._pending)

    def mark_visited(self, url: str) -> None:
        self._visited.add(url)

    def release(self, url: str) -> None:
        """Undo ``mark_visited`` for a URL whose fetch never started."""
        self._visited.discard(url)

    def merge_round(self, discovered: Iterable[str]) -> frozenset[str]:
        """Replace the frontier with ``discovered - visited`` and return it."""
        self._pending = set(discovered) - self._visited
        self._checked_out = False
        return frozenset(self._pending)

    @property
    def in_flight(self) -> bool:
        return self._checked_out

    @property
    def visited(self) -> frozenset[str]:
        return frozenset(self._visited)

    @property
    def pending(self) -> frozenset[str]:
        return frozenset(self._pending)

    @property
    def visited_view(self) -> AbstractSet[str]:
        """Live visited set, for read-only membership checks on the engine thread."""
        return self._visited

    @property
    def is_done(self) -> bool:
        return not self._pending and not self._checked_out

    def __len__(self) -> int:
        return len(self._pending)
