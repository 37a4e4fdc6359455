"""
Secondary message orderings ("queue modes").

A queue mode is a sort key over buffered messages. It decides the order of
candidates whose heuristic scores are equal, so every key ends with the
message id to keep the order total and sorting reproducible.
"""

from __future__ import annotations

import zlib
from enum import Enum
from typing import Any, Callable, Iterable, List, Tuple

SortKey = Callable[[Any], Tuple]


class QueueMode(str, Enum):
    FIFO = "fifo"
    TTL = "ttl"
    RANDOM = "random"


def _fifo_key(message: Any) -> Tuple:
    return (float(message.receive_time), str(message.id))


def _ttl_key(message: Any) -> Tuple:
    # Largest remaining TTL first; no TTL means it never expires.
    ttl = message.ttl
    if ttl is None:
        return (0, 0.0, str(message.id))
    return (1, -float(ttl), str(message.id))


def _random_key(seed: int) -> SortKey:
    def key(message: Any) -> Tuple:
        h = zlib.crc32(f"{seed}:{message.id}".encode("utf-8"))
        return (h, str(message.id))

    return key


def secondary_key(mode: str, seed: int = 0) -> SortKey:
    """Return the sort key implementing ``mode`` (fifo, ttl or random)."""
    try:
        qm = QueueMode(str(mode).strip().lower())
    except ValueError:
        raise ValueError(f"unknown queue mode: {mode!r}") from None

    if qm is QueueMode.FIFO:
        return _fifo_key
    if qm is QueueMode.TTL:
        return _ttl_key
    return _random_key(int(seed))


def sort_by_queue_mode(messages: Iterable[Any], key: SortKey) -> List[Any]:
    return sorted(messages, key=key)
