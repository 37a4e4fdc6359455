"""
Sliding-window contact log per neighbor.

Every contact-up event appends a timestamp for that neighbor. Entries
older than the window are discarded lazily, whenever the neighbor's log is
written or read. The frequency metric is simply the number of retained
contacts divided by the window length.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, Dict, Hashable, List

LOG = logging.getLogger(__name__)


class ContactHistoryTracker:
    def __init__(self, time_window: float) -> None:
        if not float(time_window) > 0.0:
            raise ValueError("time_window must be > 0")
        self._time_window = float(time_window)
        self._contacts: Dict[Hashable, Deque[float]] = {}

    @property
    def time_window(self) -> float:
        return self._time_window

    def record_contact(self, neighbor_id: Hashable, timestamp: float) -> None:
        """Log a contact with ``neighbor_id``; timestamps must not go backwards."""
        log = self._contacts.get(neighbor_id)
        if log is None:
            log = deque()
            self._contacts[neighbor_id] = log
        log.append(float(timestamp))
        self._prune(log, float(timestamp))

    def frequency(self, neighbor_id: Hashable, now: float) -> float:
        log = self._contacts.get(neighbor_id)
        if log is None:
            return 0.0
        self._prune(log, float(now))
        if not log:
            return 0.0
        return len(log) / self._time_window

    def contact_count(self, neighbor_id: Hashable, now: float) -> int:
        log = self._contacts.get(neighbor_id)
        if log is None:
            return 0
        self._prune(log, float(now))
        return len(log)

    def known_neighbors(self) -> List[Hashable]:
        return list(self._contacts.keys())

    def _prune(self, log: Deque[float], now: float) -> None:
        while log and now - log[0] > self._time_window:
            log.popleft()
