# eldergrid/controller.py
from __future__ import annotations

import logging
import random
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import requests

from eldergrid.care import medications as meds_ops
from eldergrid.detection.anomaly import Alert, evaluate
from eldergrid.detection.episodes import AlertTracker
from eldergrid.detection.thresholds import EffectiveThreshold, build_threshold_map
from eldergrid.simulation import device_simulator as sim
from eldergrid.sources.data_access import DashboardInputs, DataAccess
from eldergrid.sources.gov_data import GovDataError
from eldergrid.sources.usage_store import StoreError
from eldergrid.utils import snapshot_store
from eldergrid.utils.constants import DEMO_USER_ID
from eldergrid.utils.env import Settings
from eldergrid.utils.messages import senior_friendly_error_message
from eldergrid.utils.schema_validator import (
    ApplianceLog,
    CustomThreshold,
    GovernmentAverage,
    Medication,
    OfflineSnapshot,
    ValidationError,
)

logger = logging.getLogger(__name__)


@dataclass
class DashboardState:
    user_id: str
    devices: List[sim.Device] = field(default_factory=sim.default_devices)
    device_alerts: List[sim.DeviceAlert] = field(default_factory=list)
    anomaly_alerts: List[Alert] = field(default_factory=list)
    new_anomaly_alerts: List[Alert] = field(default_factory=list)
    thresholds: Dict[str, EffectiveThreshold] = field(default_factory=dict)
    custom_thresholds: Dict[str, int] = field(default_factory=dict)
    gov_averages: Dict[str, float] = field(default_factory=dict)
    gov_records: List[GovernmentAverage] = field(default_factory=list)
    logs: List[ApplianceLog] = field(default_factory=list)
    medications: List[Medication] = field(default_factory=meds_ops.default_medications)
    carbon_saved: float = 0.0
    green_score: int = 100
    last_sync: Optional[str] = None
    has_api_error: bool = False
    is_offline: bool = False
    generation: int = 0

    @property
    def error_message(self) -> str:
        return senior_friendly_error_message(self.is_offline, self.has_api_error, self.last_sync)


class DashboardController:
    """
    Owns the single DashboardState. Resolver, evaluator and simulator stay
    pure; this class feeds them and stores what they return.
    """

    def __init__(
        self,
        settings: Settings,
        data: Optional[DataAccess] = None,
        tracker: Optional[AlertTracker] = None,
        snapshot_db: Optional[Path] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.settings = settings
        self.data = data or DataAccess.from_settings(settings)
        self.tracker = tracker or AlertTracker()
        self.snapshot_db = Path(snapshot_db or settings.db_path or snapshot_store.DB_PATH)
        self.rng = rng
        self.clock = clock
        self.state = DashboardState(user_id=settings.user_id or DEMO_USER_ID)
        self._generation = 0
        self._last_tick: Optional[datetime] = None
        self._recompute_metrics()

    # ---------- loading ----------
    def begin_load(self) -> int:
        self._generation += 1
        return self._generation

    def apply_inputs(self, generation: int, inputs: DashboardInputs) -> bool:
        """Install fetched inputs unless a newer load has started since."""
        if generation != self._generation:
            logger.info("Ignoring stale fetch (generation %d, current %d)", generation, self._generation)
            return False

        s = self.state
        s.gov_averages = inputs.gov_averages
        s.gov_records = inputs.gov_records
        s.custom_thresholds = inputs.custom_thresholds
        s.logs = inputs.logs
        s.generation = generation
        s.has_api_error = False
        s.is_offline = False
        s.last_sync = self.clock().isoformat()
        self._reevaluate()
        return True

    def refresh(self) -> bool:
        gen = self.begin_load()
        try:
            inputs = self.data.fetch_dashboard_inputs(self.state.user_id, self.settings.log_limit)
        except (GovDataError, StoreError) as e:
            logger.warning("Dashboard refresh failed: %s", e)
            if gen == self._generation:
                self.state.has_api_error = True
                self.state.is_offline = isinstance(e.__cause__, requests.ConnectionError)
                self._restore_offline()
            return False
        return self.apply_inputs(gen, inputs)

    def _reevaluate(self) -> None:
        s = self.state
        s.thresholds = build_threshold_map(s.custom_thresholds, s.gov_averages)
        s.anomaly_alerts = evaluate(s.logs, s.thresholds)
        s.new_anomaly_alerts = self.tracker.filter_new(s.anomaly_alerts)

    def _restore_offline(self) -> None:
        try:
            snap = snapshot_store.load_offline_snapshot(self.snapshot_db)
        except sqlite3.Error as e:
            logger.warning("Offline cache unavailable: %s", e)
            return
        if snap is None:
            return
        self.restore_snapshot(snap)

    def restore_snapshot(self, snap: OfflineSnapshot) -> None:
        s = self.state
        s.devices = [sim.Device.from_dict(d) for d in snap.devices] or s.devices
        s.device_alerts = [sim.DeviceAlert.from_dict(a) for a in snap.alerts]
        s.carbon_saved = snap.carbon_saved
        s.green_score = snap.green_score
        s.last_sync = snap.last_updated

    # ---------- simulation ----------
    def _recompute_metrics(self) -> None:
        s = self.state
        s.carbon_saved = sim.derive_carbon_savings(s.devices)
        s.green_score = sim.derive_green_score(s.devices, s.device_alerts)

    def snapshot(self) -> Dict:
        s = self.state
        return {
            "devices": [d.to_dict() for d in s.devices],
            "carbon_saved": s.carbon_saved,
            "green_score": s.green_score,
            "alerts": [a.to_dict() for a in s.device_alerts],
        }

    def _persist(self) -> None:
        try:
            snapshot_store.save_offline_snapshot(self.snapshot(), self.snapshot_db)
        except sqlite3.Error as e:
            logger.warning("Failed to save offline data: %s", e)

    def tick(self) -> DashboardState:
        s = self.state
        s.devices = sim.tick(s.devices, self.rng)
        now = self.clock()
        self._last_tick = now
        s.device_alerts = sim.check_device_alerts(s.devices, s.device_alerts, now=now)
        self._recompute_metrics()
        self._persist()
        return s

    def tick_if_due(self, interval_seconds: float) -> bool:
        """Tick unless the last tick was less than interval_seconds ago."""
        now = self.clock()
        if self._last_tick is not None and (now - self._last_tick).total_seconds() < interval_seconds:
            return False
        self.tick()
        return True

    def toggle_device(self, device_id: int) -> None:
        self.state.devices = sim.toggle_device(self.state.devices, device_id)
        self._recompute_metrics()
        self._persist()

    def acknowledge_alert(self, alert_id: str) -> None:
        self.state.device_alerts = sim.acknowledge(self.state.device_alerts, alert_id)
        self._recompute_metrics()
        self._persist()

    # ---------- writes ----------
    def save_threshold(self, appliance: str, minutes: int) -> Tuple[bool, str]:
        """Persist one custom threshold; failures come back as a message, never retried."""
        try:
            th = CustomThreshold(user_id=self.state.user_id, appliance_name=appliance, minutes=minutes)
        except ValidationError as e:
            return False, f"Invalid threshold: {e.errors()[0]['msg']}"

        try:
            self.data.store.upsert_custom_threshold(th)
        except StoreError as e:
            logger.warning("Threshold save failed for %s: %s", th.appliance_name, e)
            return False, f"Could not save the limit for {appliance}. Please try again."

        self.state.custom_thresholds = {**self.state.custom_thresholds, th.appliance_name: th.minutes}
        self._reevaluate()
        return True, f"Saved: {appliance} limit is now {minutes} min."

    # ---------- medications ----------
    def add_medication(self, name: str, time: str, dosage: str = "") -> Tuple[bool, str]:
        try:
            self.state.medications = meds_ops.add_medication(self.state.medications, name, time, dosage)
        except ValidationError as e:
            return False, f"Could not add medication: {e.errors()[0]['msg']}"
        return True, f"Added {name.strip()} at {self.state.medications[-1].time}."

    def toggle_medication(self, med_id: str) -> None:
        self.state.medications = meds_ops.toggle_taken(self.state.medications, med_id)

    def remove_medication(self, med_id: str) -> None:
        self.state.medications = meds_ops.remove_medication(self.state.medications, med_id)
