# eldergrid/detection/episodes.py
from __future__ import annotations

from collections import OrderedDict
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from eldergrid.detection.anomaly import Alert
from eldergrid.utils.constants import ALERT_TRACKER_CAPACITY
from eldergrid.utils.schema_validator import normalize_appliance

EpisodeKey = Tuple[str, Optional[datetime]]


class AlertTracker:
    """
    Notify once per anomalous episode instead of once per poll.

    An episode is identified by (appliance, episode-start timestamp). It stays
    open while every evaluation pass still yields an alert for the appliance
    and closes on the first pass that does not.
    """

    def __init__(self, capacity: int = ALERT_TRACKER_CAPACITY):
        self.capacity = max(int(capacity), 1)
        self._open: Dict[str, EpisodeKey] = {}
        self._seen: "OrderedDict[EpisodeKey, None]" = OrderedDict()

    @property
    def open_episodes(self) -> Dict[str, EpisodeKey]:
        return dict(self._open)

    def _remember(self, key: EpisodeKey) -> None:
        self._seen[key] = None
        self._seen.move_to_end(key)
        while len(self._seen) > self.capacity:
            self._seen.popitem(last=False)

    def filter_new(self, alerts: List[Alert]) -> List[Alert]:
        grouped: "OrderedDict[str, List[Alert]]" = OrderedDict()
        for a in alerts:
            grouped.setdefault(normalize_appliance(a.appliance_name), []).append(a)

        emitted: List[Alert] = []
        for appliance, group in grouped.items():
            if appliance in self._open:
                continue
            stamps = [a.timestamp for a in group if a.timestamp is not None]
            key: EpisodeKey = (appliance, min(stamps) if stamps else None)
            self._open[appliance] = key
            if key in self._seen:
                continue
            self._remember(key)
            emitted.append(group[0])

        for appliance in list(self._open):
            if appliance not in grouped:
                del self._open[appliance]
        return emitted
