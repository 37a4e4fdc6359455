import pytest

from contact_history import ContactHistoryTracker


def test_window_prunes_old_contacts():
    tracker = ContactHistoryTracker(10.0)
    for t in (1.0, 5.0, 12.0):
        tracker.record_contact("x", t)

    assert tracker.contact_count("x", 12.0) == 2
    assert tracker.frequency("x", 12.0) == pytest.approx(0.2)


def test_contact_exactly_window_old_is_kept():
    tracker = ContactHistoryTracker(10.0)
    tracker.record_contact("x", 2.0)
    assert tracker.contact_count("x", 12.0) == 1
    assert tracker.contact_count("x", 12.5) == 0


def test_unknown_neighbor_has_zero_frequency():
    tracker = ContactHistoryTracker(10.0)
    assert tracker.frequency("nobody", 100.0) == 0.0


def test_fully_pruned_record_reports_zero():
    tracker = ContactHistoryTracker(5.0)
    tracker.record_contact("x", 0.0)
    assert tracker.frequency("x", 100.0) == 0.0
    assert "x" in tracker.known_neighbors()


def test_frequency_grows_with_recent_contacts():
    tracker = ContactHistoryTracker(100.0)
    previous = 0.0
    for t in range(1, 8):
        tracker.record_contact("x", float(t))
        current = tracker.frequency("x", float(t))
        assert current >= previous
        previous = current
    assert previous == pytest.approx(7 / 100.0)


def test_neighbors_are_tracked_independently():
    tracker = ContactHistoryTracker(10.0)
    tracker.record_contact("x", 1.0)
    tracker.record_contact("x", 2.0)
    tracker.record_contact("y", 2.0)
    assert tracker.contact_count("x", 3.0) == 2
    assert tracker.contact_count("y", 3.0) == 1


@pytest.mark.parametrize("window", [0.0, -1.0, float("nan")])
def test_non_positive_or_nan_window_rejected(window):
    with pytest.raises(ValueError):
        ContactHistoryTracker(window)
