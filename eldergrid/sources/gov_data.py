# eldergrid/sources/gov_data.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol

import requests

from eldergrid.utils.data_loader import GOV_MOCK_PATH, load_gov_records
from eldergrid.utils.env import Settings
from eldergrid.utils.schema_validator import GovernmentAverage, ValidationError, normalize_appliance

logger = logging.getLogger(__name__)


class GovDataError(RuntimeError):
    pass


class GovernmentDataSource(Protocol):
    source: str

    def fetch(self) -> List[GovernmentAverage]:
        ...


def _to_average(item: Dict[str, Any], source: str) -> GovernmentAverage:
    name = item.get("appliance") or item.get("appliance_name")
    avg = item.get("avg_usage_minutes", item.get("average_usage_minutes"))
    payload = {
        "appliance_name": str(name or "").strip(),
        "avg_usage_minutes": avg,
        "region": item.get("region") or "Default",
        "source": source,
    }
    if item.get("last_updated"):
        payload["last_updated"] = str(item["last_updated"])
    return GovernmentAverage.parse_obj(payload)


def _usable(records: List[GovernmentAverage], source: str) -> List[GovernmentAverage]:
    out = []
    for a in records:
        if not a.appliance_name:
            continue
        if a.avg_usage_minutes is None:
            logger.warning("Dropping %s government record for %s: no usable average", source, a.appliance_name)
            continue
        out.append(a)
    return out


class MockGovernmentSource:
    """Static JSON bundled with the package."""

    source = "mock"

    def __init__(self, path: str = GOV_MOCK_PATH):
        self.path = path

    def fetch(self) -> List[GovernmentAverage]:
        try:
            records = load_gov_records(self.path)
            out = [_to_average(r, "mock") for r in records if isinstance(r, dict)]
        except (OSError, ValueError, ValidationError) as e:
            raise GovDataError(f"Failed to load mock government data: {e}")
        return _usable(out, "mock")


class RemoteGovernmentSource:
    source = "api"

    def __init__(self, endpoint: Optional[str], api_key: Optional[str] = None, timeout: float = 15):
        self.endpoint = endpoint
        self.api_key = api_key
        self.timeout = timeout

    def fetch(self) -> List[GovernmentAverage]:
        if not self.endpoint:
            raise GovDataError("Government API endpoint not configured")

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            r = requests.get(self.endpoint, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise GovDataError(f"Government API request failed: {type(e).__name__}: {e}") from e
        if r.status_code != 200:
            raise GovDataError(f"Government API error ({r.status_code}): {r.text}")

        try:
            data = r.json()
        except ValueError:
            raise GovDataError("Government API returned invalid JSON")
        if isinstance(data, dict):
            data = data.get("data") or data.get("results") or []
        if not isinstance(data, list):
            raise GovDataError("Government API returned an unexpected payload")

        try:
            out = [_to_average(item, "api") for item in data if isinstance(item, dict)]
        except ValidationError as e:
            raise GovDataError(f"Government API payload failed validation: {e}")
        return _usable(out, "api")


class FallbackGovernmentSource:
    """Wrap a source; any GovDataError is logged and answered by the fallback."""

    def __init__(self, primary: GovernmentDataSource, fallback: GovernmentDataSource):
        self.primary = primary
        self.fallback = fallback

    @property
    def source(self) -> str:
        return self.primary.source

    def fetch(self) -> List[GovernmentAverage]:
        try:
            return self.primary.fetch()
        except GovDataError as e:
            logger.warning("Government data fetch failed (%s); falling back to %s data", e, self.fallback.source)
            return self.fallback.fetch()


def build_government_source(settings: Settings) -> GovernmentDataSource:
    if settings.gov_source == "mock":
        primary: GovernmentDataSource = MockGovernmentSource()
    else:
        primary = RemoteGovernmentSource(settings.gov_api_endpoint, settings.gov_api_key)

    if settings.gov_fallback_to_mock and primary.source != "mock":
        return FallbackGovernmentSource(primary, MockGovernmentSource())
    return primary


def averages_map(records: List[GovernmentAverage]) -> Dict[str, float]:
    return {
        normalize_appliance(a.appliance_name): a.avg_usage_minutes
        for a in records
        if a.avg_usage_minutes is not None
    }


def get_government_average(source: GovernmentDataSource, appliance: str) -> float:
    """0 when the appliance is unknown."""
    return averages_map(source.fetch()).get(normalize_appliance(appliance), 0.0)


def data_source_info(settings: Settings) -> Dict[str, str]:
    if settings.gov_source == "mock":
        return {"source": "mock", "description": "Using seeded mock government data for demonstration"}
    return {"source": "api", "description": "Using real government API data"}
