import json

import pytest
import requests
from conftest import make_log

from eldergrid.detection.anomaly import evaluate
from eldergrid.detection.thresholds import build_threshold_map
from eldergrid.sources import gov_data
from eldergrid.sources.gov_data import (
    FallbackGovernmentSource,
    GovDataError,
    MockGovernmentSource,
    RemoteGovernmentSource,
    averages_map,
    build_government_source,
    data_source_info,
    get_government_average,
)
from eldergrid.utils.env import Settings


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


def test_mock_source_reads_bundled_json():
    records = MockGovernmentSource().fetch()
    assert {r.source for r in records} == {"mock"}
    assert averages_map(records) == {"geyser": 90, "heater": 150, "fan": 240, "tv": 180}


def test_mock_source_missing_file(tmp_path):
    with pytest.raises(GovDataError):
        MockGovernmentSource(str(tmp_path / "missing.json")).fetch()


def test_mock_source_drops_unparseable_averages(tmp_path):
    path = tmp_path / "gov.json"
    path.write_text(json.dumps([{"appliance": "Fan", "avg_usage_minutes": "abc"}, {"appliance": "TV", "avg_usage_minutes": "75"}]))
    records = MockGovernmentSource(str(path)).fetch()
    assert [r.appliance_name for r in records] == ["TV"]
    assert records[0].avg_usage_minutes == 75
    assert records[0].region == "Default"


def test_remote_record_without_average_gives_no_threshold(monkeypatch):
    payload = [{"appliance_name": "Geyser", "region": "X"}, {"appliance_name": "Fan", "avg_usage_minutes": 240}]
    monkeypatch.setattr(gov_data.requests, "get", lambda *a, **k: FakeResponse(payload=payload))

    averages = averages_map(RemoteGovernmentSource("https://gov.example/api").fetch())
    thresholds = build_threshold_map({}, averages)

    assert averages == {"fan": 240}
    assert "geyser" not in thresholds
    assert evaluate([make_log("Geyser", 1)], thresholds) == []


def test_remote_source_maps_payload(monkeypatch):
    seen = {}

    def fake_get(url, headers=None, timeout=None):
        seen["url"] = url
        seen["headers"] = headers
        return FakeResponse(payload=[{"appliance_name": "Geyser", "average_usage_minutes": 95, "region": "X"}])

    monkeypatch.setattr(gov_data.requests, "get", fake_get)
    records = RemoteGovernmentSource("https://gov.example/api", "secret").fetch()

    assert seen["headers"]["Authorization"] == "Bearer secret"
    assert records[0].appliance_name == "Geyser"
    assert records[0].avg_usage_minutes == 95
    assert records[0].source == "api"


def test_remote_source_errors(monkeypatch):
    monkeypatch.setattr(gov_data.requests, "get", lambda *a, **k: FakeResponse(503, text="down"))
    with pytest.raises(GovDataError, match="503"):
        RemoteGovernmentSource("https://gov.example/api").fetch()

    def boom(*a, **k):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(gov_data.requests, "get", boom)
    with pytest.raises(GovDataError, match="ConnectionError"):
        RemoteGovernmentSource("https://gov.example/api").fetch()

    with pytest.raises(GovDataError, match="not configured"):
        RemoteGovernmentSource(None).fetch()


def test_fallback_decorator_uses_mock_on_failure():
    source = FallbackGovernmentSource(RemoteGovernmentSource(None), MockGovernmentSource())
    records = source.fetch()
    assert source.source == "api"
    assert averages_map(records)["heater"] == 150


def test_build_source_respects_fallback_flag():
    with_fallback = build_government_source(Settings(gov_source="api", gov_api_endpoint="https://x"))
    assert isinstance(with_fallback, FallbackGovernmentSource)

    strict = build_government_source(
        Settings(gov_source="api", gov_api_endpoint="https://x", gov_fallback_to_mock=False)
    )
    assert isinstance(strict, RemoteGovernmentSource)

    assert isinstance(build_government_source(Settings()), MockGovernmentSource)


def test_without_fallback_error_propagates(monkeypatch):
    monkeypatch.setattr(gov_data.requests, "get", lambda *a, **k: FakeResponse(500, text="err"))
    strict = build_government_source(
        Settings(gov_source="api", gov_api_endpoint="https://x", gov_fallback_to_mock=False)
    )
    with pytest.raises(GovDataError):
        strict.fetch()


def test_single_average_lookup_and_info():
    source = MockGovernmentSource()
    assert get_government_average(source, "GEYSER") == 90
    assert get_government_average(source, "kettle") == 0
    assert data_source_info(Settings())["source"] == "mock"
