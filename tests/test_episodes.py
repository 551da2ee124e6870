from conftest import make_log

from eldergrid.detection.anomaly import evaluate
from eldergrid.detection.episodes import AlertTracker
from eldergrid.detection.thresholds import build_threshold_map

THRESHOLDS = build_threshold_map({"geyser": 100, "heater": 100}, {})


def test_first_pass_emits_one_alert_per_appliance():
    tracker = AlertTracker()
    alerts = evaluate([make_log("Geyser", 150, 0), make_log("Geyser", 160, 5), make_log("Heater", 120, 1)], THRESHOLDS)

    new = tracker.filter_new(alerts)

    assert [a.appliance_name for a in new] == ["Geyser", "Heater"]
    assert set(tracker.open_episodes) == {"geyser", "heater"}


def test_repeated_polls_are_suppressed_while_episode_is_open():
    tracker = AlertTracker()
    logs = [make_log("Geyser", 150, 0)]
    assert len(tracker.filter_new(evaluate(logs, THRESHOLDS))) == 1

    logs.append(make_log("Geyser", 170, 10))
    assert tracker.filter_new(evaluate(logs, THRESHOLDS)) == []


def test_new_episode_after_condition_clears():
    tracker = AlertTracker()
    assert len(tracker.filter_new(evaluate([make_log("Geyser", 150, 0)], THRESHOLDS))) == 1

    # condition clears
    assert tracker.filter_new(evaluate([make_log("Geyser", 50, 30)], THRESHOLDS)) == []
    assert tracker.open_episodes == {}

    new = tracker.filter_new(evaluate([make_log("Geyser", 200, 60)], THRESHOLDS))
    assert len(new) == 1
    assert new[0].usage_minutes == 200


def test_same_episode_identity_is_not_reemitted():
    tracker = AlertTracker()
    alerts = evaluate([make_log("Geyser", 150, 0)], THRESHOLDS)
    assert len(tracker.filter_new(alerts)) == 1
    tracker.filter_new([])
    assert tracker.filter_new(alerts) == []


def test_capacity_evicts_oldest_keys():
    tracker = AlertTracker(capacity=1)
    a1 = evaluate([make_log("Geyser", 150, 0)], THRESHOLDS)
    a2 = evaluate([make_log("Heater", 150, 5)], THRESHOLDS)
    tracker.filter_new(a1)
    tracker.filter_new([])
    tracker.filter_new(a2)
    tracker.filter_new([])
    # a1's key was evicted, so it counts as new again
    assert len(tracker.filter_new(a1)) == 1
