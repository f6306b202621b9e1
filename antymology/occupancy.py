"""
Antymology Occupancy Index
===========================
Spatial index from grid position to the ants currently standing there.

The index holds non-owning references; the colony owns the ants. Every
position change an ant undergoes (move, build-up, drop, death) goes through
this index in the same state transition, so lookups are never stale.
"""

from typing import TYPE_CHECKING, Dict, Iterator, Set, Tuple

if TYPE_CHECKING:
    from .agent import Ant

Position = Tuple[int, int, int]


class OccupancyIndex:
    """Maps (x, y, z) -> set of ants. Empty positions are never stored."""

    def __init__(self):
        self._cells: Dict[Position, Set["Ant"]] = {}

    def add(self, ant: "Ant", position: Position):
        self._cells.setdefault(tuple(position), set()).add(ant)

    def remove(self, ant: "Ant", position: Position):
        """Remove an ant from a position (no-op if it is not there)"""
        key = tuple(position)
        occupants = self._cells.get(key)
        if occupants is None:
            return
        occupants.discard(ant)
        if not occupants:
            del self._cells[key]

    def move(self, ant: "Ant", old_position: Position, new_position: Position):
        self.remove(ant, old_position)
        self.add(ant, new_position)

    def query(self, position: Position) -> Set["Ant"]:
        """Copy of the set of ants at a position"""
        return set(self._cells.get(tuple(position), ()))

    def count(self, position: Position) -> int:
        return len(self._cells.get(tuple(position), ()))

    def positions(self) -> Iterator[Position]:
        return iter(list(self._cells))

    def clear(self):
        self._cells.clear()

    def __len__(self) -> int:
        """Total number of indexed ants"""
        return sum(len(occupants) for occupants in self._cells.values())

    def __contains__(self, ant: "Ant") -> bool:
        return any(ant in occupants for occupants in self._cells.values())
