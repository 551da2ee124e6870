# eldergrid/scripts/seed_logs.py
import logging
import random
import sys
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from eldergrid.sources.usage_store import StoreError, UsageStore, build_usage_store
from eldergrid.utils.constants import DEMO_USER_ID, SEED_DAYS_BACK, SEED_LOG_COUNT, SEED_RANGES
from eldergrid.utils.env import ConfigError, configure_logging, get_env, load_env, load_settings
from eldergrid.utils.schema_validator import ApplianceLog

logger = logging.getLogger(__name__)


def _past_time_within(rng: random.Random, days: int, now: datetime) -> datetime:
    d = now - timedelta(days=rng.randint(0, days))
    return d.replace(hour=rng.randint(6, 22), minute=rng.randint(0, 59), second=0, microsecond=0)


def generate_logs(user_id: str, rng: Optional[random.Random] = None, now: Optional[datetime] = None) -> List[ApplianceLog]:
    rng = rng or random.Random()
    now = now or datetime.now(timezone.utc)
    logs = []
    for _ in range(rng.randint(*SEED_LOG_COUNT)):
        name, lo, hi = SEED_RANGES[rng.randint(0, len(SEED_RANGES) - 1)]
        logs.append(
            ApplianceLog(
                user_id=user_id,
                appliance_name=name,
                usage_minutes=rng.randint(lo, hi),
                timestamp=_past_time_within(rng, SEED_DAYS_BACK, now),
            )
        )
    return logs


def seed_if_empty(store: UsageStore, user_id: str, rng: Optional[random.Random] = None) -> int:
    """Insert a week of random logs when the user has none. Returns rows written."""
    if store.has_logs(user_id):
        return 0
    return store.insert_logs(generate_logs(user_id, rng))


def main() -> int:
    load_env()
    configure_logging()
    try:
        settings = load_settings()
    except ConfigError as e:
        logger.error("%s", e)
        return 1

    user_id = get_env("SUPABASE_TARGET_USER_ID") or settings.user_id or DEMO_USER_ID
    store = build_usage_store(settings)
    try:
        count = seed_if_empty(store, user_id)
    except StoreError as e:
        logger.error("Failed to seed logs: %s", e)
        return 1

    if count:
        logger.info("Seeded %d appliance logs for user %s", count, user_id)
    else:
        logger.info("User %s already has appliance logs; nothing to seed", user_id)
    return 0


if __name__ == "__main__":
    sys.exit(main())
