"""
Per-node spray-and-wait router.

- One class for all variants; the heuristic picked in RouterConfig decides
  how candidate pairs are filtered and ranked.
- Owns the node's copy ledger, contact history and encounter ages.
- Driven by the host engine: contact events, periodic ticks and transfer
  completion callbacks, all on one thread in simulation-time order.
- Peers only ever see a StrategyPeerView, never the router itself.
"""

from __future__ import annotations

import logging
from typing import Any, Hashable, List, Optional, Tuple

from contact_history import ContactHistoryTracker
from copy_ledger import CopyCountLedger
from encounter_age import EncounterAgeTracker
from forwarding_ranker import ForwardingRanker
from heuristics import Heuristic, ScoringContext, get_heuristic
from host_api import Clock, Connection, MessageStore, PositionSource, TransferEngine
from queue_modes import SortKey, secondary_key, sort_by_queue_mode
from snw_config import RouterConfig

LOG = logging.getLogger(__name__)


# ----------------------------------------------------------------------
# Read-only view exposed to peers
# ----------------------------------------------------------------------

class StrategyPeerView:
    """What a neighbor may ask about this node during candidate evaluation."""

    def __init__(self, strategy: "RoutingStrategy") -> None:
        self._strategy = strategy

    @property
    def node_id(self) -> Hashable:
        return self._strategy.node_id

    def contact_frequency(self, node_id: Hashable, now: float) -> float:
        return self._strategy.contacts.frequency(node_id, now)

    def encounter_age(self, node_id: Hashable, now: float) -> float:
        return self._strategy.encounters.age(self._strategy.node_id, node_id, now)

    def is_transferring(self) -> bool:
        return self._strategy.is_transferring()

    def has_message(self, message_id: str) -> bool:
        return self._strategy.has_message(message_id)


# ----------------------------------------------------------------------
# Router
# ----------------------------------------------------------------------

class RoutingStrategy:
    def __init__(
        self,
        config: RouterConfig,
        clock: Clock,
        store: MessageStore,
        engine: TransferEngine,
        positions: Optional[PositionSource] = None,
    ) -> None:
        heuristic: Heuristic = get_heuristic(config.strategy)
        if heuristic.needs_positions and positions is None:
            raise ValueError(f"strategy {heuristic.name!r} requires a position source")

        self._config = config
        self._node_id = config.node_id
        self._heuristic = heuristic
        self._clock = clock
        self._store = store
        self._engine = engine
        self._positions = positions

        self._ledger = CopyCountLedger(
            config.spray.initial_copies,
            config.spray.binary_mode,
        )
        self._contacts = ContactHistoryTracker(config.frequency.time_window)
        self._encounters = EncounterAgeTracker()

        self._queue_key = secondary_key(config.queue_mode, config.queue_seed)
        self._ranker = ForwardingRanker(heuristic, self._ledger, self._queue_key)
        self._view = StrategyPeerView(self)

        LOG.info(
            "router %s: strategy=%s copies=%d binary=%s queue=%s",
            self._node_id,
            heuristic.name,
            self._ledger.initial_copies,
            self._ledger.binary_mode,
            config.queue_mode,
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def node_id(self) -> Hashable:
        return self._node_id

    @property
    def heuristic(self) -> Heuristic:
        return self._heuristic

    @property
    def ledger(self) -> CopyCountLedger:
        return self._ledger

    @property
    def queue_key(self) -> SortKey:
        return self._queue_key

    @property
    def contacts(self) -> ContactHistoryTracker:
        return self._contacts

    @property
    def encounters(self) -> EncounterAgeTracker:
        return self._encounters

    def peer_view(self) -> StrategyPeerView:
        return self._view

    def is_transferring(self) -> bool:
        return self._engine.is_transferring()

    def has_message(self, message_id: str) -> bool:
        return message_id in self._store

    # ------------------------------------------------------------------
    # Message lifecycle
    # ------------------------------------------------------------------

    def on_message_created(self, message: Any) -> None:
        self._ledger.initialize(message)

    def on_message_transferred(self, message: Any) -> Any:
        """Receiver side of a completed transfer; returns the message to store."""
        self._ledger.on_receive(message)
        return message

    def on_transfer_done(self, message_id: str) -> None:
        """Sender side of a completed transfer."""
        self._ledger.on_send_commit(self._store.get(message_id))

    def on_transfer_aborted(self, message_id: str) -> None:
        # Copies are only accounted on completion.
        LOG.debug("router %s: transfer of %s aborted", self._node_id, message_id)

    # ------------------------------------------------------------------
    # Contact events
    # ------------------------------------------------------------------

    def on_contact_up(self, connection: Connection) -> None:
        if self._heuristic.records_contacts:
            self._contacts.record_contact(connection.peer_id, self._clock.now())

    def on_contact_down(self, connection: Connection) -> None:
        if self._heuristic.records_encounters:
            self._encounters.record_disconnect(connection.peer_id, self._clock.now())

    # ------------------------------------------------------------------
    # Periodic tick
    # ------------------------------------------------------------------

    def messages_with_copies_left(self) -> List[Any]:
        msgs = [m for m in self._store.messages() if self._ledger.eligible_for_replication(m)]
        return sort_by_queue_mode(msgs, self._queue_key)

    def update(self) -> Optional[Tuple[Any, Connection]]:
        """Run one scheduling round; returns the (message, connection) started, if any."""
        if self._engine.is_transferring() or not self._can_start_transfer():
            return None

        # Final recipients first
        delivered = self._engine.exchange_deliverable_messages()
        if delivered is not None:
            return delivered

        ctx = ScoringContext(
            local=self._view,
            now=self._clock.now(),
            positions=self._positions,
        )
        chosen = self._ranker.run(
            ctx,
            self.messages_with_copies_left(),
            list(self._engine.connections()),
            self._engine,
        )
        if chosen is None:
            return None
        return chosen.message, chosen.connection

    def _can_start_transfer(self) -> bool:
        if not any(True for _ in self._engine.connections()):
            return False
        return any(True for _ in self._store.messages())
