from datetime import datetime, timedelta, timezone

import pytest

from eldergrid.utils.schema_validator import ApplianceLog

BASE_TIME = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


def make_log(name, minutes, offset_min=0, log_id=None, user_id="u1"):
    return ApplianceLog(
        id=log_id,
        user_id=user_id,
        appliance_name=name,
        usage_minutes=minutes,
        timestamp=BASE_TIME + timedelta(minutes=offset_min),
    )


@pytest.fixture
def clean_env(monkeypatch):
    for key in (
        "SUPABASE_URL",
        "NEXT_PUBLIC_SUPABASE_URL",
        "SUPABASE_ANON_KEY",
        "NEXT_PUBLIC_SUPABASE_ANON_KEY",
        "SUPABASE_SERVICE_ROLE_KEY",
        "ELDERGRID_USER_ID",
        "ELDERGRID_STORE",
        "ELDERGRID_DB_PATH",
        "ELDERGRID_GOV_SOURCE",
        "GOV_ENERGY_API_ENDPOINT",
        "GOV_ENERGY_API_KEY",
        "ELDERGRID_GOV_FALLBACK",
        "ELDERGRID_LOG_LIMIT",
        "OPENAI_API_KEY",
    ):
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


class FakeResp:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text
        self.content = b"" if payload is None else b"x"

    def json(self):
        return self._payload
