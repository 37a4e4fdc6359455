from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Hashable, List, Optional, Set, Tuple

from host_api import TransferResult
from sim_engine import SimMessage
from snw_config import RouterConfig, SprayConfig


@dataclass
class FakePeer:
    node_id: Hashable
    held: Set[str] = field(default_factory=set)
    transferring: bool = False
    frequencies: Dict[Hashable, float] = field(default_factory=dict)
    ages: Dict[Hashable, float] = field(default_factory=dict)

    def contact_frequency(self, node_id: Hashable, now: float) -> float:
        return self.frequencies.get(node_id, 0.0)

    def encounter_age(self, node_id: Hashable, now: float) -> float:
        if node_id == self.node_id:
            return 0.0
        return self.ages.get(node_id, now)

    def is_transferring(self) -> bool:
        return self.transferring

    def has_message(self, message_id: str) -> bool:
        return message_id in self.held


@dataclass(frozen=True)
class FakeConnection:
    peer_id: Hashable
    peer: FakePeer = field(compare=False)


class FakeEngine:
    """Accepts transfers for (message id, peer id) pairs in ``accept``."""

    def __init__(self, accept: Optional[Set[Tuple[str, Hashable]]] = None) -> None:
        self.accept = set(accept or ())
        self.attempts: List[Tuple[str, Hashable]] = []

    def attempt_transfer(self, message, connection) -> TransferResult:
        self.attempts.append((message.id, connection.peer_id))
        if (message.id, connection.peer_id) in self.accept:
            return TransferResult.STARTED
        return TransferResult.REJECTED


class FakePositions:
    def __init__(self, positions) -> None:
        self._positions = dict(positions)

    def position_of(self, node_id):
        return self._positions[node_id]


def make_message(msg_id: str, to: Hashable = "dest", copies: Optional[int] = None, receive_time: float = 0.0, ttl=None) -> SimMessage:
    m = SimMessage(id=msg_id, src="src", to=to, receive_time=receive_time, ttl=ttl)
    if copies is not None:
        m.properties["SprayAndWaitRouter.copies"] = copies
    return m


def node_config(node_id: str, strategy: str = "spray", copies: int = 6, binary: bool = True, **kw) -> RouterConfig:
    return RouterConfig(
        node_id=node_id,
        strategy=strategy,
        spray=SprayConfig(initial_copies=copies, binary_mode=binary),
        **kw,
    )


