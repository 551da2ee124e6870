import pytest
from conftest import FakeResp, make_log

from eldergrid.sources.usage_store import SQLiteUsageStore, StoreError, SupabaseUsageStore, build_usage_store
from eldergrid.utils.env import Settings
from eldergrid.utils.schema_validator import CustomThreshold


def test_sqlite_logs_newest_first_with_limit(tmp_path):
    store = SQLiteUsageStore(tmp_path / "t.db")
    assert store.has_logs("u1") is False

    store.insert_logs([make_log("Fan", 10, 0), make_log("TV", 20, 30), make_log("Geyser", 30, 60)])
    store.insert_logs([make_log("Fan", 99, 90, user_id="other")])

    logs = store.fetch_recent_logs("u1", 2)
    assert [l.appliance_name for l in logs] == ["Geyser", "TV"]
    assert all(l.id is not None for l in logs)
    assert store.has_logs("u1") is True


def test_sqlite_threshold_upsert_one_row_per_appliance(tmp_path):
    store = SQLiteUsageStore(tmp_path / "t.db")
    store.upsert_custom_threshold(CustomThreshold(user_id="u1", appliance_name="Geyser", minutes=100))
    store.upsert_custom_threshold(CustomThreshold(user_id="u1", appliance_name="geyser", minutes=130))
    store.upsert_custom_threshold(CustomThreshold(user_id="u2", appliance_name="geyser", minutes=5))

    assert store.fetch_custom_thresholds("u1") == {"geyser": 130}
    assert store.fetch_custom_thresholds("u2") == {"geyser": 5}


class FakeSession:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        return self.responses.pop(0)


def test_supabase_fetch_logs_builds_postgrest_query():
    session = FakeSession([
        FakeResp(payload=[{"id": 5, "user_id": "u1", "appliance": "Heater", "usage_minutes": 310,
                           "timestamp": "2024-01-15T10:00:00Z"}])
    ])
    store = SupabaseUsageStore("https://abc.supabase.co/", "key", session=session)

    logs = store.fetch_recent_logs("u1", 10)

    method, url, kwargs = session.calls[0]
    assert method == "GET"
    assert url == "https://abc.supabase.co/rest/v1/appliance_logs"
    assert kwargs["params"]["user_id"] == "eq.u1"
    assert kwargs["params"]["order"] == "timestamp.desc"
    assert kwargs["headers"]["apikey"] == "key"
    assert logs[0].appliance_name == "Heater"
    assert logs[0].usage_minutes == 310


def test_supabase_upsert_uses_merge_duplicates():
    session = FakeSession([FakeResp(201)])
    store = SupabaseUsageStore("https://abc.supabase.co", "key", session=session)

    store.upsert_custom_threshold(CustomThreshold(user_id="u1", appliance_name="TV", minutes=200))

    method, url, kwargs = session.calls[0]
    assert method == "POST"
    assert kwargs["params"] == {"on_conflict": "user_id,appliance"}
    assert "resolution=merge-duplicates" in kwargs["headers"]["Prefer"]
    assert kwargs["json"] == [{"user_id": "u1", "appliance": "tv", "minutes": 200}]


def test_supabase_thresholds_and_errors():
    session = FakeSession([
        FakeResp(payload=[{"appliance": "Geyser", "minutes": 100}]),
        FakeResp(401, text="bad key"),
    ])
    store = SupabaseUsageStore("https://abc.supabase.co", "key", session=session)

    assert store.fetch_custom_thresholds("u1") == {"geyser": 100}
    with pytest.raises(StoreError, match="401"):
        store.has_logs("u1")


def test_build_usage_store_defaults_to_sqlite(tmp_path):
    store = build_usage_store(Settings(db_path=str(tmp_path / "x.db")))
    assert isinstance(store, SQLiteUsageStore)


def test_supabase_malformed_payloads_raise_store_error():
    session = FakeSession([
        FakeResp(payload=[{"appliance": "Geyser", "minutes": "abc"}]),
        FakeResp(payload={"message": "not a list"}),
        FakeResp(payload=["Heater"]),
    ])
    store = SupabaseUsageStore("https://abc.supabase.co", "key", session=session)

    with pytest.raises(StoreError, match="geyser"):
        store.fetch_custom_thresholds("u1")
    with pytest.raises(StoreError, match="unexpected payload"):
        store.fetch_recent_logs("u1", 10)
    with pytest.raises(StoreError, match="unexpected payload"):
        store.has_logs("u1")
