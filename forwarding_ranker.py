"""
Candidate filtering, scoring and ordering for one decision round.

Given the locally buffered messages and the active connections, the
ranker builds (message, connection) pairs, drops the ones that cannot or
should not be tried, scores the rest with the selected heuristic, sorts
them and walks the list until the engine accepts one transfer.

Ordering is by score first and by the queue-mode key on equal scores.
Python's sort is stable, so two runs over the same input give the same
order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional

from copy_ledger import CopyCountLedger
from heuristics import Heuristic, ScoringContext
from host_api import Connection, TransferEngine, TransferResult
from queue_modes import SortKey

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class Candidate:
    message: Any
    connection: Connection
    score: float


class ForwardingRanker:
    def __init__(
        self,
        heuristic: Heuristic,
        ledger: CopyCountLedger,
        secondary_key: SortKey,
    ) -> None:
        self._heuristic = heuristic
        self._ledger = ledger
        self._secondary_key = secondary_key

    @property
    def heuristic(self) -> Heuristic:
        return self._heuristic

    # ------------------------------------------------------------------
    # Filter + score
    # ------------------------------------------------------------------

    def build_candidates(
        self,
        ctx: ScoringContext,
        messages: Iterable[Any],
        connections: Iterable[Connection],
    ) -> List[Candidate]:
        msgs = [m for m in messages if self._ledger.eligible_for_replication(m)]
        out: List[Candidate] = []

        for con in connections:
            peer = con.peer
            if peer.is_transferring():
                continue  # peer can't accept anything right now

            for m in msgs:
                if peer.has_message(m.id):
                    continue

                score = self._heuristic.score(ctx, peer, m)
                if score is None:
                    continue
                out.append(Candidate(message=m, connection=con, score=float(score)))

        return out

    # ------------------------------------------------------------------
    # Sort
    # ------------------------------------------------------------------

    def rank(self, candidates: Iterable[Candidate]) -> List[Candidate]:
        sign = -1.0 if self._heuristic.higher_is_better else 1.0
        key = self._secondary_key
        return sorted(candidates, key=lambda c: (sign * c.score, key(c.message)))

    # ------------------------------------------------------------------
    # Attempt
    # ------------------------------------------------------------------

    def attempt(
        self,
        ranked: Iterable[Candidate],
        engine: TransferEngine,
    ) -> Optional[Candidate]:
        for cand in ranked:
            result = engine.attempt_transfer(cand.message, cand.connection)
            if result is TransferResult.STARTED:
                return cand
        return None

    def run(
        self,
        ctx: ScoringContext,
        messages: Iterable[Any],
        connections: Iterable[Connection],
        engine: TransferEngine,
    ) -> Optional[Candidate]:
        ranked = self.rank(self.build_candidates(ctx, messages, connections))
        if not ranked:
            return None

        chosen = self.attempt(ranked, engine)
        if chosen is None:
            LOG.debug("%s: %d candidate(s), none accepted", self._heuristic.name, len(ranked))
        else:
            LOG.debug(
                "%s: started %s -> %s (score %.3f, %d candidate(s))",
                self._heuristic.name,
                chosen.message.id,
                chosen.connection.peer_id,
                chosen.score,
                len(ranked),
            )
        return chosen
