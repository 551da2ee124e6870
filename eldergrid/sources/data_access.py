# eldergrid/sources/data_access.py
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List

from eldergrid.sources.gov_data import (
    GovernmentDataSource,
    averages_map,
    build_government_source,
)
from eldergrid.sources.usage_store import UsageStore, build_usage_store
from eldergrid.utils.env import Settings
from eldergrid.utils.schema_validator import ApplianceLog, GovernmentAverage

logger = logging.getLogger(__name__)


@dataclass
class DashboardInputs:
    gov_averages: Dict[str, float] = field(default_factory=dict)
    custom_thresholds: Dict[str, int] = field(default_factory=dict)
    logs: List[ApplianceLog] = field(default_factory=list)
    gov_records: List[GovernmentAverage] = field(default_factory=list)


class DataAccess:
    """Flat records from government reference data and the usage store."""

    def __init__(self, gov_source: GovernmentDataSource, store: UsageStore):
        self.gov_source = gov_source
        self.store = store

    @classmethod
    def from_settings(cls, settings: Settings) -> "DataAccess":
        return cls(build_government_source(settings), build_usage_store(settings))

    def fetch_government_records(self) -> List[GovernmentAverage]:
        return self.gov_source.fetch()

    def fetch_government_averages(self) -> Dict[str, float]:
        return averages_map(self.fetch_government_records())

    def fetch_custom_thresholds(self, user_id: str) -> Dict[str, int]:
        return self.store.fetch_custom_thresholds(user_id)

    def fetch_recent_logs(self, user_id: str, limit: int) -> List[ApplianceLog]:
        return self.store.fetch_recent_logs(user_id, limit)

    def fetch_dashboard_inputs(self, user_id: str, limit: int) -> DashboardInputs:
        """
        Run the three fetches concurrently and join all of them.
        The first failure (in gov, thresholds, logs order) propagates.
        """
        with ThreadPoolExecutor(max_workers=3, thread_name_prefix="eldergrid-fetch") as pool:
            gov_f = pool.submit(self.fetch_government_records)
            custom_f = pool.submit(self.fetch_custom_thresholds, user_id)
            logs_f = pool.submit(self.fetch_recent_logs, user_id, limit)

            gov_records = gov_f.result()
            custom = custom_f.result()
            logs = logs_f.result()

        logger.debug(
            "Fetched %d gov averages, %d custom thresholds, %d logs for %s",
            len(gov_records), len(custom), len(logs), user_id,
        )
        return DashboardInputs(
            gov_averages=averages_map(gov_records),
            custom_thresholds=custom,
            logs=logs,
            gov_records=gov_records,
        )
