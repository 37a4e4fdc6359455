"""
Scoring heuristics that bias which (message, peer) pairs are tried first.

A heuristic scores one candidate pair from a snapshot of the local node
and the peer's read-only view. Returning None drops the pair. Scores are
compared descending when ``higher_is_better`` is set, ascending otherwise.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from geo import distance
from host_api import PeerView, PositionSource


@dataclass(frozen=True)
class ScoringContext:
    local: PeerView
    now: float
    positions: Optional[PositionSource] = None


ScoreFn = Callable[[ScoringContext, PeerView, Any], Optional[float]]


@dataclass(frozen=True)
class Heuristic:
    name: str
    higher_is_better: bool
    score: ScoreFn
    records_contacts: bool = False
    records_encounters: bool = False
    needs_positions: bool = False


# ----------------------------------------------------------------------
# Score functions
# ----------------------------------------------------------------------

def score_spray(ctx: ScoringContext, peer: PeerView, message: Any) -> Optional[float]:
    # Plain spray-and-wait: every pair ties, queue mode decides.
    return 0.0


def score_frequency(ctx: ScoringContext, peer: PeerView, message: Any) -> Optional[float]:
    # Ranking only; a peer that rarely meets the destination still qualifies.
    return peer.contact_frequency(message.to, ctx.now)


def score_encounter_age(ctx: ScoringContext, peer: PeerView, message: Any) -> Optional[float]:
    mine = ctx.local.encounter_age(message.to, ctx.now)
    theirs = peer.encounter_age(message.to, ctx.now)
    if theirs < mine:
        return theirs
    return None


def score_distance(ctx: ScoringContext, peer: PeerView, message: Any) -> Optional[float]:
    if ctx.positions is None:
        raise ValueError("distance heuristic requires a position source")
    dest = ctx.positions.position_of(message.to)
    mine = distance(ctx.positions.position_of(ctx.local.node_id), dest)
    theirs = distance(ctx.positions.position_of(peer.node_id), dest)
    if theirs < mine:
        return theirs
    return None


SPRAY = Heuristic(name="spray", higher_is_better=False, score=score_spray)
FREQUENCY = Heuristic(
    name="frequency",
    higher_is_better=True,
    score=score_frequency,
    records_contacts=True,
)
ENCOUNTER_AGE = Heuristic(
    name="encounter_age",
    higher_is_better=False,
    score=score_encounter_age,
    records_encounters=True,
)
DISTANCE = Heuristic(
    name="distance",
    higher_is_better=False,
    score=score_distance,
    needs_positions=True,
)

HEURISTICS: Dict[str, Heuristic] = {
    h.name: h for h in (SPRAY, FREQUENCY, ENCOUNTER_AGE, DISTANCE)
}


def get_heuristic(name: str) -> Heuristic:
    h = HEURISTICS.get(str(name).strip().lower())
    if h is None:
        raise ValueError(
            f"unknown strategy {name!r}; expected one of: {', '.join(HEURISTICS)}"
        )
    return h
