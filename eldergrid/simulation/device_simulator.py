# eldergrid/simulation/device_simulator.py
from __future__ import annotations

import math
import random
from dataclasses import dataclass, asdict, replace
from datetime import datetime
from typing import Any, Dict, Iterable, List, Literal, Optional, Sequence

from eldergrid.utils.constants import (
    CARBON_BASELINE,
    CRITICAL_ALERT_FACTOR,
    DEFAULT_DEVICES,
    GREEN_SCORE_ALERT_PENALTY,
    GREEN_SCORE_MAX_OVERAGE_PENALTY,
    GREEN_SCORE_OFF_BONUS,
    GREEN_SCORE_OVERAGE_WEIGHT,
    GREEN_SCORE_START,
    HIGH_USAGE_FACTOR,
    OFF_DEVICE_BONUS,
    OVER_THRESHOLD_PENALTY,
    RUNTIME_INCREMENT_RANGE,
)

UsageLevel = Literal["Low", "Medium", "High", "Off"]
BaseUsage = Literal["Low", "Medium", "High"]


def _round_half_up(x: float, ndigits: int = 0) -> float:
    factor = 10 ** ndigits
    return math.floor(x * factor + 0.5) / factor


@dataclass(frozen=True)
class Device:
    id: int
    name: str
    status: bool  # True = on
    runtime_minutes: int
    base_usage: BaseUsage
    threshold_minutes: int
    usual_average_minutes: int
    usage_level: UsageLevel = "Off"

    @property
    def over_threshold(self) -> bool:
        return self.status and self.runtime_minutes > self.threshold_minutes

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Device":
        status = bool(d.get("status", False))
        base = d.get("base_usage", "Low")
        return cls(
            id=int(d["id"]),
            name=str(d["name"]),
            status=status,
            runtime_minutes=int(d.get("runtime_minutes", 0)) if status else 0,
            base_usage=base,
            threshold_minutes=int(d.get("threshold_minutes", 0)),
            usual_average_minutes=int(d.get("usual_average_minutes", 0)),
            usage_level=d.get("usage_level") or (base if status else "Off"),
        )


@dataclass(frozen=True)
class DeviceAlert:
    id: str
    device_id: int
    device_name: str
    timestamp: str
    duration: str
    reason: str
    comparison: str
    type: Literal["warning", "critical"]
    acknowledged: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DeviceAlert":
        return cls(**{k: d[k] for k in cls.__dataclass_fields__ if k in d})


def default_devices() -> List[Device]:
    return [Device.from_dict(d) for d in DEFAULT_DEVICES]


def format_runtime(minutes: int) -> str:
    if minutes < 60:
        return f"{minutes} min"
    hours = minutes // 60
    remaining = minutes % 60
    if remaining == 0:
        return f"{hours} hr{'s' if hours > 1 else ''}"
    return f"{hours}h {remaining}m"


def _classify(runtime: int, threshold: int, base: BaseUsage) -> UsageLevel:
    if runtime > threshold * HIGH_USAGE_FACTOR:
        return "High"
    if runtime > threshold:
        return "Medium"
    return base


def tick(devices: Sequence[Device], rng: Optional[random.Random] = None) -> List[Device]:
    """Advance every device by one simulation step and return the new list."""
    r = rng or random
    lo, hi = RUNTIME_INCREMENT_RANGE
    out: List[Device] = []
    for d in devices:
        if d.status:
            runtime = d.runtime_minutes + r.randint(lo, hi)
            out.append(replace(d, runtime_minutes=runtime,
                               usage_level=_classify(runtime, d.threshold_minutes, d.base_usage)))
        else:
            out.append(replace(d, runtime_minutes=0, usage_level="Off"))
    return out


def toggle_device(devices: Sequence[Device], device_id: int) -> List[Device]:
    out: List[Device] = []
    for d in devices:
        if d.id != device_id:
            out.append(d)
        elif d.status:
            out.append(replace(d, status=False, runtime_minutes=0, usage_level="Off"))
        else:
            out.append(replace(d, status=True, runtime_minutes=0, usage_level=d.base_usage))
    return out


def check_device_alerts(
    devices: Iterable[Device],
    existing: Sequence[DeviceAlert],
    now: Optional[datetime] = None,
) -> List[DeviceAlert]:
    """Append an alert for each over-threshold device that has no unacknowledged one yet."""
    now = now or datetime.now()
    new_alerts: List[DeviceAlert] = []

    for d in devices:
        if not d.over_threshold:
            continue
        if any(a.device_id == d.id and not a.acknowledged for a in existing):
            continue

        kind = "critical" if d.runtime_minutes > d.threshold_minutes * CRITICAL_ALERT_FACTOR else "warning"
        if d.runtime_minutes > d.usual_average_minutes:
            hrs = _round_half_up((d.runtime_minutes - d.usual_average_minutes) / 60, 1)
            comparison = f"{hrs:g} hrs above usual average"
        else:
            comparison = "within normal range"

        new_alerts.append(
            DeviceAlert(
                id=f"alert-{d.id}-{int(now.timestamp() * 1000)}",
                device_id=d.id,
                device_name=d.name,
                timestamp=now.strftime("%Y-%m-%d %H:%M:%S"),
                duration=format_runtime(d.runtime_minutes),
                reason=f"Running longer than usual ({format_runtime(d.usual_average_minutes)} average)",
                comparison=comparison,
                type=kind,
            )
        )

    return list(existing) + new_alerts


def acknowledge(alerts: Sequence[DeviceAlert], alert_id: str) -> List[DeviceAlert]:
    return [replace(a, acknowledged=True) if a.id == alert_id else a for a in alerts]


def derive_carbon_savings(devices: Iterable[Device]) -> float:
    total = CARBON_BASELINE
    for d in devices:
        if not d.status:
            total += OFF_DEVICE_BONUS.get(d.base_usage, 0.0)
        elif d.runtime_minutes > d.threshold_minutes:
            total -= OVER_THRESHOLD_PENALTY
    return max(0.0, _round_half_up(total, 1))


def derive_green_score(devices: Sequence[Device], alerts: Iterable[DeviceAlert]) -> int:
    score = float(GREEN_SCORE_START)

    for d in devices:
        if d.over_threshold:
            ratio = d.runtime_minutes / d.threshold_minutes if d.threshold_minutes > 0 else math.inf
            score -= min(GREEN_SCORE_MAX_OVERAGE_PENALTY, ratio * GREEN_SCORE_OVERAGE_WEIGHT)

    score -= sum(1 for a in alerts if not a.acknowledged) * GREEN_SCORE_ALERT_PENALTY
    score += sum(1 for d in devices if not d.status) * GREEN_SCORE_OFF_BONUS

    return int(max(0, min(100, _round_half_up(score))))
