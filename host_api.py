"""
Interfaces the routing core expects from its host engine.

The engine owns time, links, the message buffer, node positions and the
actual movement of bytes. The core only reads these and proposes
transfers. Any object with matching attributes/methods will do; see
sim_engine.py for an in-memory implementation.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Hashable, Iterable, Optional, Protocol, Tuple

from geo import Position


class TransferResult(Enum):
    STARTED = "started"
    REJECTED = "rejected"


class Clock(Protocol):
    def now(self) -> float: ...


class RoutedMessage(Protocol):
    """A buffered message as seen by the router.

    ``properties`` holds routing metadata (the copy count lives there).
    ``receive_time`` and ``ttl`` (remaining, or None) feed the queue modes.
    """

    id: str
    to: Hashable
    size: int
    receive_time: float
    ttl: Optional[float]
    properties: Dict[str, Any]


class PeerView(Protocol):
    """Read-only face a node shows to the nodes it is in contact with."""

    node_id: Hashable

    def contact_frequency(self, node_id: Hashable, now: float) -> float: ...
    def encounter_age(self, node_id: Hashable, now: float) -> float: ...
    def is_transferring(self) -> bool: ...
    def has_message(self, message_id: str) -> bool: ...


class Connection(Protocol):
    """An active link from this node; ``peer`` is the other end's view."""

    peer_id: Hashable
    peer: PeerView


class MessageStore(Protocol):
    def messages(self) -> Iterable[RoutedMessage]: ...
    def get(self, message_id: str) -> Optional[RoutedMessage]: ...
    def __contains__(self, message_id: object) -> bool: ...


class PositionSource(Protocol):
    def position_of(self, node_id: Hashable) -> Position: ...


class TransferEngine(Protocol):
    """Per-node link/transfer primitives.

    ``attempt_transfer`` only starts a transfer; completion or abort is
    reported later through the router's callbacks.
    """

    def connections(self) -> Iterable[Connection]: ...
    def is_transferring(self) -> bool: ...
    def attempt_transfer(self, message: RoutedMessage, connection: Connection) -> TransferResult: ...
    def exchange_deliverable_messages(self) -> Optional[Tuple[RoutedMessage, Connection]]: ...
