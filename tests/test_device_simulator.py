import random
from datetime import datetime

from eldergrid.simulation.device_simulator import (
    Device,
    DeviceAlert,
    acknowledge,
    check_device_alerts,
    default_devices,
    derive_carbon_savings,
    derive_green_score,
    format_runtime,
    tick,
    toggle_device,
)


def dev(id=1, status=True, runtime=0, base="Low", threshold=100, usual=60):
    return Device(
        id=id,
        name=f"D{id}",
        status=status,
        runtime_minutes=runtime,
        base_usage=base,
        threshold_minutes=threshold,
        usual_average_minutes=usual,
        usage_level=base if status else "Off",
    )


def test_tick_increments_on_devices_within_bounds():
    rng = random.Random(42)
    devices = [dev(runtime=10)]
    for _ in range(50):
        before = devices[0].runtime_minutes
        devices = tick(devices, rng)
        assert 1 <= devices[0].runtime_minutes - before <= 3


def test_tick_classifies_usage_levels():
    rng = random.Random(0)
    assert tick([dev(runtime=200, threshold=100)], rng)[0].usage_level == "High"
    assert tick([dev(runtime=110, threshold=100)], rng)[0].usage_level == "Medium"
    assert tick([dev(runtime=10, threshold=100, base="Medium")], rng)[0].usage_level == "Medium"
    assert tick([dev(runtime=10, threshold=100, base="Low")], rng)[0].usage_level == "Low"


def test_tick_resets_off_devices_and_returns_new_objects():
    original = [dev(status=False, runtime=55)]
    out = tick(original, random.Random(1))
    assert out[0].runtime_minutes == 0
    assert out[0].usage_level == "Off"
    assert original[0].runtime_minutes == 55


def test_toggle_device():
    devices = toggle_device([dev(id=1, runtime=40), dev(id=2, status=False)], 1)
    assert devices[0].status is False and devices[0].runtime_minutes == 0 and devices[0].usage_level == "Off"
    devices = toggle_device(devices, 2)
    assert devices[1].status is True and devices[1].usage_level == "Low"


def test_carbon_savings_example():
    devices = [dev(id=1, status=False, base="High"), dev(id=2, runtime=150, threshold=100)]
    assert derive_carbon_savings(devices) == 15.7


def test_carbon_savings_floor_at_zero():
    devices = [dev(id=i, runtime=500, threshold=1) for i in range(100)]
    assert derive_carbon_savings(devices) == 0.0


def test_green_score_clamped_at_100():
    devices = [dev(id=1, status=False, base="High"), dev(id=2, status=False, base="Low")]
    assert derive_green_score(devices, []) == 100


def test_green_score_penalties():
    devices = [dev(id=1, runtime=150, threshold=100)]  # -7.5
    alerts = [
        DeviceAlert("a", 1, "D1", "t", "2h 30m", "r", "c", "warning", acknowledged=False),
        DeviceAlert("b", 1, "D1", "t", "2h 30m", "r", "c", "warning", acknowledged=True),
    ]
    # 100 - 7.5 - 5 = 87.5 -> 88
    assert derive_green_score(devices, alerts) == 88


def test_green_score_overage_penalty_capped():
    devices = [dev(id=1, runtime=1000, threshold=100)]
    assert derive_green_score(devices, []) == 80


def test_check_device_alerts_warning_and_critical():
    now = datetime(2024, 1, 15, 14, 30)
    devices = [dev(id=1, runtime=150, threshold=100, usual=60), dev(id=2, runtime=250, threshold=100, usual=300)]
    alerts = check_device_alerts(devices, [], now=now)

    assert [a.type for a in alerts] == ["warning", "critical"]
    assert alerts[0].comparison == "1.5 hrs above usual average"
    assert alerts[0].duration == "2h 30m"
    assert alerts[0].reason == "Running longer than usual (1 hr average)"
    assert alerts[1].comparison == "within normal range"


def test_check_device_alerts_skips_devices_with_open_alert():
    now = datetime(2024, 1, 15, 14, 30)
    devices = [dev(id=1, runtime=150, threshold=100)]
    first = check_device_alerts(devices, [], now=now)
    assert check_device_alerts(devices, first, now=now) == first

    acked = acknowledge(first, first[0].id)
    assert len(check_device_alerts(devices, acked, now=now)) == 2


def test_format_runtime():
    assert format_runtime(45) == "45 min"
    assert format_runtime(60) == "1 hr"
    assert format_runtime(120) == "2 hrs"
    assert format_runtime(90) == "1h 30m"


def test_default_devices_round_trip_through_dict():
    devices = default_devices()
    assert [Device.from_dict(d.to_dict()) for d in devices] == devices
