from copy_ledger import CopyCountLedger
from forwarding_ranker import ForwardingRanker
from heuristics import ScoringContext, get_heuristic
from helpers import FakeConnection, FakeEngine, FakePeer, FakePositions, make_message
from queue_modes import secondary_key


def _ranker(strategy, mode="fifo"):
    return ForwardingRanker(
        get_heuristic(strategy),
        CopyCountLedger(8, binary_mode=True),
        secondary_key(mode),
    )


def _pairs(ranked):
    return [(c.message.id, c.connection.peer_id) for c in ranked]


def test_filter_drops_busy_peers_known_messages_and_exhausted_copies():
    ranker = _ranker("spray")
    ctx = ScoringContext(local=FakePeer("me"), now=0.0)
    msgs = [
        make_message("fresh", copies=4),
        make_message("known", copies=4),
        make_message("spent", copies=1),
    ]
    cons = [
        FakeConnection("p", FakePeer("p", held={"known"})),
        FakeConnection("busy", FakePeer("busy", transferring=True)),
    ]

    cands = ranker.build_candidates(ctx, msgs, cons)
    assert _pairs(cands) == [("fresh", "p")]


def test_distance_ties_fall_back_to_queue_order():
    ranker = _ranker("distance")
    positions = FakePositions({"me": (0.0, 0.0), "p": (5.0, 0.0), "d": (10.0, 0.0)})
    ctx = ScoringContext(local=FakePeer("me"), now=0.0, positions=positions)
    msgs = [
        make_message("late", to="d", copies=4, receive_time=9.0),
        make_message("early", to="d", copies=4, receive_time=2.0),
    ]
    cons = [FakeConnection("p", FakePeer("p"))]

    first = ranker.rank(ranker.build_candidates(ctx, msgs, cons))
    second = ranker.rank(ranker.build_candidates(ctx, msgs, cons))
    assert _pairs(first) == [("early", "p"), ("late", "p")]
    assert _pairs(first) == _pairs(second)
    assert first[0].score == first[1].score


def test_lower_distance_ranks_first():
    ranker = _ranker("distance")
    positions = FakePositions({"me": (0.0, 0.0), "near": (8.0, 0.0), "mid": (4.0, 0.0), "d": (10.0, 0.0)})
    ctx = ScoringContext(local=FakePeer("me"), now=0.0, positions=positions)
    msgs = [make_message("m", to="d", copies=4)]
    cons = [FakeConnection("mid", FakePeer("mid")), FakeConnection("near", FakePeer("near"))]

    assert _pairs(ranker.rank(ranker.build_candidates(ctx, msgs, cons))) == [("m", "near"), ("m", "mid")]


def test_higher_frequency_ranks_first():
    ranker = _ranker("frequency")
    ctx = ScoringContext(local=FakePeer("me"), now=0.0)
    msgs = [make_message("m", to="d", copies=4)]
    cons = [
        FakeConnection("rare", FakePeer("rare", frequencies={"d": 0.1})),
        FakeConnection("often", FakePeer("often", frequencies={"d": 0.5})),
    ]

    ranked = ranker.rank(ranker.build_candidates(ctx, msgs, cons))
    assert _pairs(ranked) == [("m", "often"), ("m", "rare")]


def test_attempt_stops_at_first_started_transfer():
    ranker = _ranker("spray")
    ctx = ScoringContext(local=FakePeer("me"), now=0.0)
    msgs = [make_message(f"m{i}", copies=4, receive_time=float(i)) for i in range(3)]
    cons = [FakeConnection("p", FakePeer("p"))]
    engine = FakeEngine(accept={("m1", "p"), ("m2", "p")})

    chosen = ranker.run(ctx, msgs, cons, engine)
    assert (chosen.message.id, chosen.connection.peer_id) == ("m1", "p")
    assert engine.attempts == [("m0", "p"), ("m1", "p")]


def test_nothing_accepted_returns_none():
    ranker = _ranker("spray")
    ctx = ScoringContext(local=FakePeer("me"), now=0.0)
    msgs = [make_message("m", copies=4)]
    cons = [FakeConnection("p", FakePeer("p"))]
    engine = FakeEngine()

    assert ranker.run(ctx, msgs, cons, engine) is None
    assert engine.attempts == [("m", "p")]


def test_no_candidates_means_no_attempts():
    ranker = _ranker("encounter_age")
    ctx = ScoringContext(local=FakePeer("me"), now=10.0)
    engine = FakeEngine(accept={("m", "p")})

    assert ranker.run(ctx, [make_message("m", copies=4)], [FakeConnection("p", FakePeer("p"))], engine) is None
    assert engine.attempts == []
