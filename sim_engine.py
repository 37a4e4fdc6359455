#!/usr/bin/env python3
"""
sim_engine.py: in-memory host engine for the spray-and-wait router

Provides everything the router treats as external: a simulation clock,
per-node message buffers, links between nodes, node positions and timed
transfers. Single-threaded; time only moves when the caller advances it.

Transfers:
    duration = message.size / bandwidth
    one transfer per link, and a node busy on any link accepts nothing else
    link-down aborts the transfer in flight, copy counts stay untouched

Scenario replay (YAML):

    world:   {bandwidth: 100.0, tick: 1.0, end_time: 120.0}
    router:  {strategy: distance, queue_mode: fifo}
    spray:   {initial_copies: 6, binary_mode: true}
    nodes:
      - {id: a, position: [0, 0]}
    messages:
      - {at: 0, id: m1, src: a, dst: c, size: 10, ttl: 300}
    contacts:
      - {at: 5, up: [a, b]}
      - {at: 9, down: [a, b]}
    moves:
      - {at: 5, node: b, position: [1, 2]}
"""

from __future__ import annotations

import argparse
import copy
import logging
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, Iterable, List, Optional, Tuple

from config_loader import load_router_config, load_yaml_mapping
from geo import Position
from host_api import TransferResult
from queue_modes import sort_by_queue_mode
from routing_strategy import RoutingStrategy, StrategyPeerView
from snw_config import RouterConfig

LOG = logging.getLogger(__name__)


# ----------------------------------------------------------------------
# Clock / messages / buffers
# ----------------------------------------------------------------------

class SimClock:
    def __init__(self, start: float = 0.0) -> None:
        self._now = float(start)

    def now(self) -> float:
        return self._now

    def advance_to(self, t: float) -> None:
        if t < self._now:
            raise ValueError(f"clock cannot go backwards ({t} < {self._now})")
        self._now = float(t)


@dataclass
class SimMessage:
    id: str
    src: Hashable
    to: Hashable
    size: int = 1
    created: float = 0.0
    receive_time: float = 0.0
    expires_at: Optional[float] = None
    ttl: Optional[float] = None
    hops: List[Hashable] = field(default_factory=list)
    properties: Dict[str, Any] = field(default_factory=dict)

    def replicate(self) -> "SimMessage":
        dup = copy.copy(self)
        dup.hops = list(self.hops)
        dup.properties = dict(self.properties)
        return dup


class MessageBuffer:
    def __init__(self) -> None:
        self._messages: Dict[str, SimMessage] = {}

    def messages(self) -> List[SimMessage]:
        return list(self._messages.values())

    def get(self, message_id: str) -> Optional[SimMessage]:
        return self._messages.get(message_id)

    def add(self, message: SimMessage) -> None:
        self._messages[message.id] = message

    def remove(self, message_id: str) -> Optional[SimMessage]:
        return self._messages.pop(message_id, None)

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._messages

    def __len__(self) -> int:
        return len(self._messages)


# ----------------------------------------------------------------------
# Links and transfers
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class SimConnection:
    peer_id: Hashable
    peer: StrategyPeerView
    link: "SimLink" = field(compare=False, repr=False)


@dataclass
class SimTransfer:
    message: SimMessage  # receiver's copy, taken when the transfer starts
    sender: "SimNode"
    receiver: "SimNode"
    finish_time: float


class SimLink:
    def __init__(self, a: "SimNode", b: "SimNode") -> None:
        self.a = a
        self.b = b
        self.transfer: Optional[SimTransfer] = None
        self._connections: Dict[Hashable, SimConnection] = {}

    def connection_for(self, node: "SimNode") -> SimConnection:
        con = self._connections.get(node.node_id)
        if con is None:
            other = self.other(node)
            con = SimConnection(peer_id=other.node_id, peer=other.router.peer_view(), link=self)
            self._connections[node.node_id] = con
        return con

    def other(self, node: "SimNode") -> "SimNode":
        return self.b if node is self.a else self.a


# ----------------------------------------------------------------------
# Nodes
# ----------------------------------------------------------------------

class SimNode:
    """One simulated host; implements the router's TransferEngine."""

    def __init__(self, world: "SimWorld", config: RouterConfig) -> None:
        self.node_id = config.node_id
        self.world = world
        self.buffer = MessageBuffer()
        self.delivered: Dict[str, float] = {}
        self.links: Dict[Hashable, SimLink] = {}
        self.router = RoutingStrategy(
            config,
            clock=world.clock,
            store=self.buffer,
            engine=self,
            positions=world,
        )

    # TransferEngine -------------------------------------------------------

    def connections(self) -> List[SimConnection]:
        return [link.connection_for(self) for link in self.links.values()]

    def is_transferring(self) -> bool:
        return any(link.transfer is not None for link in self.links.values())

    def attempt_transfer(self, message: SimMessage, connection: SimConnection) -> TransferResult:
        link = connection.link
        receiver = link.other(self)
        if self.links.get(receiver.node_id) is not link:
            LOG.debug("%s -> %s: rejected %s (link down)", self.node_id, receiver.node_id, message.id)
            return TransferResult.REJECTED
        if link.transfer is not None or receiver.is_transferring():
            LOG.debug("%s -> %s: rejected %s (busy)", self.node_id, receiver.node_id, message.id)
            return TransferResult.REJECTED
        if message.id in receiver.buffer or message.id in receiver.delivered:
            LOG.debug("%s -> %s: rejected %s (already held)", self.node_id, receiver.node_id, message.id)
            return TransferResult.REJECTED

        duration = float(message.size) / self.world.bandwidth
        link.transfer = SimTransfer(
            message=message.replicate(),
            sender=self,
            receiver=receiver,
            finish_time=self.world.clock.now() + duration,
        )
        self.world.stats["started"] += 1
        LOG.debug("%s -> %s: started %s", self.node_id, receiver.node_id, message.id)
        return TransferResult.STARTED

    def exchange_deliverable_messages(self) -> Optional[Tuple[SimMessage, SimConnection]]:
        for con in self.connections():
            for m in sort_by_queue_mode(self.buffer.messages(), self.router.queue_key):
                if m.to != con.peer_id:
                    continue
                if self.attempt_transfer(m, con) is TransferResult.STARTED:
                    return m, con
        return None


# ----------------------------------------------------------------------
# World
# ----------------------------------------------------------------------

class SimWorld:
    """Holds the nodes, links and clock; also the routers' PositionSource."""

    def __init__(self, bandwidth: float = 1.0, start_time: float = 0.0) -> None:
        if bandwidth <= 0.0:
            raise ValueError("bandwidth must be > 0")
        self.bandwidth = float(bandwidth)
        self.clock = SimClock(start_time)
        self.nodes: Dict[Hashable, SimNode] = {}
        self._positions: Dict[Hashable, Position] = {}
        self._links: Dict[frozenset, SimLink] = {}
        self.stats: Dict[str, int] = {
            "created": 0,
            "started": 0,
            "relayed": 0,
            "delivered": 0,
            "aborted": 0,
            "expired": 0,
        }

    # Nodes / positions ------------------------------------------------------

    def add_node(self, config: RouterConfig, position: Position = (0.0, 0.0)) -> SimNode:
        if config.node_id in self.nodes:
            raise ValueError(f"duplicate node id {config.node_id!r}")
        self._positions[config.node_id] = (float(position[0]), float(position[1]))
        node = SimNode(self, config)
        self.nodes[config.node_id] = node
        return node

    def position_of(self, node_id: Hashable) -> Position:
        return self._positions[node_id]

    def set_position(self, node_id: Hashable, position: Position) -> None:
        self._positions[node_id] = (float(position[0]), float(position[1]))

    # Messages ---------------------------------------------------------------

    def create_message(
        self,
        src: Hashable,
        dst: Hashable,
        message_id: str,
        size: int = 1,
        ttl: Optional[float] = None,
    ) -> SimMessage:
        for node_id in (src, dst):
            if node_id not in self.nodes:
                raise ValueError(f"unknown node {node_id!r}")
        now = self.clock.now()
        msg = SimMessage(
            id=message_id,
            src=src,
            to=dst,
            size=int(size),
            created=now,
            receive_time=now,
            expires_at=None if ttl is None else now + float(ttl),
            ttl=None if ttl is None else float(ttl),
            hops=[src],
        )
        node = self.nodes[src]
        node.router.on_message_created(msg)
        node.buffer.add(msg)
        self.stats["created"] += 1
        return msg

    # Links ------------------------------------------------------------------

    def link_up(self, a: Hashable, b: Hashable) -> SimLink:
        key = frozenset((a, b))
        link = self._links.get(key)
        if link is not None:
            return link
        na, nb = self.nodes[a], self.nodes[b]
        link = SimLink(na, nb)
        self._links[key] = link
        na.links[b] = link
        nb.links[a] = link
        na.router.on_contact_up(link.connection_for(na))
        nb.router.on_contact_up(link.connection_for(nb))
        return link

    def link_down(self, a: Hashable, b: Hashable) -> None:
        link = self._links.pop(frozenset((a, b)), None)
        if link is None:
            return
        if link.transfer is not None:
            t = link.transfer
            link.transfer = None
            self.stats["aborted"] += 1
            t.sender.router.on_transfer_aborted(t.message.id)
            LOG.debug("%s -> %s: aborted %s", t.sender.node_id, t.receiver.node_id, t.message.id)
        na, nb = link.a, link.b
        na.links.pop(nb.node_id, None)
        nb.links.pop(na.node_id, None)
        na.router.on_contact_down(link.connection_for(na))
        nb.router.on_contact_down(link.connection_for(nb))

    # Time -------------------------------------------------------------------

    def advance_to(self, t: float) -> None:
        """Move the clock to ``t``, finishing transfers and expiring messages."""
        self.clock.advance_to(t)
        done = [link for link in self._links.values()
                if link.transfer is not None and link.transfer.finish_time <= t]
        done.sort(key=lambda link: (link.transfer.finish_time, str(link.transfer.message.id)))
        for link in done:
            transfer = link.transfer
            link.transfer = None
            self._finish_transfer(transfer)
        self._expire_messages()

    def tick(self) -> List[Tuple[Hashable, SimMessage, SimConnection]]:
        started = []
        for node in self.nodes.values():
            res = node.router.update()
            if res is not None:
                started.append((node.node_id, res[0], res[1]))
        return started

    def step(self, dt: float) -> List[Tuple[Hashable, SimMessage, SimConnection]]:
        self.advance_to(self.clock.now() + dt)
        return self.tick()

    def _finish_transfer(self, transfer: SimTransfer) -> None:
        msg = transfer.message
        sender, receiver = transfer.sender, transfer.receiver
        now = self.clock.now()
        msg.hops.append(receiver.node_id)
        msg.receive_time = now

        receiver.router.on_message_transferred(msg)
        if msg.to == receiver.node_id:
            if msg.id not in receiver.delivered:
                receiver.delivered[msg.id] = now
                self.stats["delivered"] += 1
                LOG.info("%s delivered to %s at %.2f (hops=%d)", msg.id, receiver.node_id, now, len(msg.hops) - 1)
            sender.buffer.remove(msg.id)
        else:
            receiver.buffer.add(msg)
            self.stats["relayed"] += 1
        sender.router.on_transfer_done(msg.id)

    def _expire_messages(self) -> None:
        now = self.clock.now()
        for node in self.nodes.values():
            for m in node.buffer.messages():
                if m.expires_at is None:
                    continue
                m.ttl = m.expires_at - now
                if m.ttl <= 0.0:
                    node.buffer.remove(m.id)
                    self.stats["expired"] += 1

    # Introspection ----------------------------------------------------------

    def live_copies(self, message_id: str) -> int:
        """Sum of remaining copy counts over every buffered copy.

        A copy in flight is still counted in full at its sender until the
        transfer commits, so this never double counts.
        """
        total = 0
        for node in self.nodes.values():
            m = node.buffer.get(message_id)
            if m is not None:
                total += node.router.ledger.copies(m)
        return total


# ----------------------------------------------------------------------
# Scenario replay
# ----------------------------------------------------------------------

def _node_config(root: Dict[str, Any], node_id: str, overrides: Dict[str, Any]) -> RouterConfig:
    merged = dict(root)
    router_any = root.get("router", {})
    router = dict(router_any) if isinstance(router_any, dict) else {}
    router.update(overrides)
    router["node_id"] = node_id
    merged["router"] = router
    return load_router_config(merged)


def build_world_from_scenario(root: Dict[str, Any], strategy: str = "") -> SimWorld:
    world_any = root.get("world", {})
    world_cfg = world_any if isinstance(world_any, dict) else {}
    world = SimWorld(bandwidth=float(world_cfg.get("bandwidth", 1.0)))

    nodes_any = root.get("nodes", [])
    if not isinstance(nodes_any, list) or not nodes_any:
        raise ValueError("scenario must define a non-empty `nodes` list")

    overrides: Dict[str, Any] = {}
    if strategy:
        overrides["strategy"] = strategy

    for entry in nodes_any:
        if not isinstance(entry, dict) or "id" not in entry:
            raise ValueError("Each nodes entry must be a mapping with an `id`")
        pos = entry.get("position", [0.0, 0.0])
        world.add_node(_node_config(root, str(entry["id"]), overrides), (float(pos[0]), float(pos[1])))

    return world


def _scenario_events(root: Dict[str, Any]) -> List[Tuple[float, int, Dict[str, Any]]]:
    events: List[Tuple[float, int, Dict[str, Any]]] = []
    # moves before contacts before messages at the same instant
    for prio, name in enumerate(("moves", "contacts", "messages")):
        items = root.get(name, [])
        if not isinstance(items, list):
            raise ValueError(f"`{name}` must be a list")
        for ev in items:
            if not isinstance(ev, dict):
                raise ValueError(f"Each `{name}` entry must be a mapping")
            ev = dict(ev)
            ev["_kind"] = name
            events.append((float(ev.get("at", 0.0)), prio, ev))
    events.sort(key=lambda e: (e[0], e[1]))
    return events


def _apply_event(world: SimWorld, ev: Dict[str, Any]) -> None:
    kind = ev["_kind"]
    if kind == "moves":
        pos = ev["position"]
        world.set_position(str(ev["node"]), (float(pos[0]), float(pos[1])))
    elif kind == "contacts":
        if "up" in ev:
            a, b = ev["up"]
            world.link_up(str(a), str(b))
        if "down" in ev:
            a, b = ev["down"]
            world.link_down(str(a), str(b))
    else:
        ttl = ev.get("ttl")
        world.create_message(
            str(ev["src"]),
            str(ev["dst"]),
            str(ev["id"]),
            size=int(ev.get("size", 1)),
            ttl=None if ttl is None else float(ttl),
        )


def run_scenario(root: Dict[str, Any], strategy: str = "") -> SimWorld:
    world = build_world_from_scenario(root, strategy)
    world_any = root.get("world", {})
    world_cfg = world_any if isinstance(world_any, dict) else {}
    tick = float(world_cfg.get("tick", 1.0))
    end_time = float(world_cfg.get("end_time", 100.0))
    if tick <= 0.0:
        raise ValueError("world.tick must be > 0")

    events = _scenario_events(root)
    idx = 0
    t = 0.0
    while t <= end_time:
        world.advance_to(t)
        while idx < len(events) and events[idx][0] <= t:
            _apply_event(world, events[idx][2])
            idx += 1
        world.tick()
        t += tick

    return world


def _configure_stdout_logging(verbosity: int) -> None:
    level = logging.INFO
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity <= 0:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stdout,
    )


def main(argv: Optional[Iterable[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Replay a contact scenario through the spray-and-wait routers")
    ap.add_argument("scenario", help="Path to scenario YAML")
    ap.add_argument(
        "--strategy",
        choices=["spray", "frequency", "encounter_age", "distance"],
        default="",
        help="Override router.strategy for every node",
    )
    ap.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase logging verbosity (use -vv for DEBUG)",
    )
    args = ap.parse_args(None if argv is None else list(argv))
    _configure_stdout_logging(int(args.verbose))

    world = run_scenario(load_yaml_mapping(args.scenario), strategy=args.strategy)

    print(f"[sim] t={world.clock.now():.2f}")
    for key in ("created", "started", "relayed", "delivered", "aborted", "expired"):
        print(f"[sim] {key}: {world.stats[key]}")
    created = world.stats["created"]
    if created:
        print(f"[sim] delivery ratio: {world.stats['delivered'] / created:.3f}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
