"""
Encounter ages (time since the last direct contact with a node).

The clock starts when a link goes down, so an ongoing contact keeps the
age of the previous one until it ends.
"""

from __future__ import annotations

from typing import Dict, Hashable, Optional


class EncounterAgeTracker:
    def __init__(self) -> None:
        self._last_encounter: Dict[Hashable, float] = {}

    def record_disconnect(self, neighbor_id: Hashable, timestamp: float) -> None:
        self._last_encounter[neighbor_id] = float(timestamp)

    def last_seen(self, neighbor_id: Hashable) -> Optional[float]:
        return self._last_encounter.get(neighbor_id)

    def age(self, self_id: Hashable, neighbor_id: Hashable, now: float) -> float:
        """Return the encounter age of ``neighbor_id`` as seen by ``self_id``.

        A node is always fresh to itself. A node never met is reported as
        old as the simulation, which compares like an infinite age without
        leaving the float range.
        """
        if neighbor_id == self_id:
            return 0.0
        last = self._last_encounter.get(neighbor_id)
        if last is None:
            return float(now)
        return float(now) - last
