import random
from datetime import datetime, timedelta, timezone

from eldergrid.scripts.seed_logs import generate_logs, seed_if_empty
from eldergrid.sources.usage_store import SQLiteUsageStore
from eldergrid.utils.constants import SEED_RANGES

NOW = datetime(2024, 1, 15, 23, 0, tzinfo=timezone.utc)


def test_generated_logs_stay_in_ranges():
    logs = generate_logs("u1", random.Random(7), NOW)
    ranges = {name: (lo, hi) for name, lo, hi in SEED_RANGES}

    assert 15 <= len(logs) <= 20
    for log in logs:
        lo, hi = ranges[log.appliance_name]
        assert lo <= log.usage_minutes <= hi
        assert NOW - timedelta(days=8) < log.timestamp <= NOW


def test_seed_only_when_empty(tmp_path):
    store = SQLiteUsageStore(tmp_path / "seed.db")
    written = seed_if_empty(store, "u1", random.Random(1))
    assert written >= 15
    assert seed_if_empty(store, "u1", random.Random(2)) == 0
