# eldergrid/detection/thresholds.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Literal, Mapping, Optional

from eldergrid.utils.constants import GOV_THRESHOLD_MULTIPLIER
from eldergrid.utils.schema_validator import normalize_appliance

Origin = Literal["custom", "gov"]


@dataclass(frozen=True)
class EffectiveThreshold:
    threshold_minutes: float
    origin: Origin


def resolve(
    custom_minutes: Optional[float],
    gov_avg_minutes: Optional[float],
) -> Optional[EffectiveThreshold]:
    """
    Pick the minutes used for alerting:
      custom (if > 0)  ->  2 x government average  ->  None
    A custom value wins even when it is more permissive than the baseline.
    """
    if custom_minutes is not None and custom_minutes > 0:
        return EffectiveThreshold(threshold_minutes=custom_minutes, origin="custom")
    if gov_avg_minutes is not None:
        return EffectiveThreshold(threshold_minutes=gov_avg_minutes * GOV_THRESHOLD_MULTIPLIER, origin="gov")
    return None


def build_threshold_map(
    custom: Mapping[str, float] | None,
    gov_averages: Mapping[str, float] | None,
) -> Dict[str, EffectiveThreshold]:
    custom_lc = {normalize_appliance(k): v for k, v in (custom or {}).items()}
    gov_lc = {normalize_appliance(k): v for k, v in (gov_averages or {}).items()}

    resolved: Dict[str, EffectiveThreshold] = {}
    for name in sorted(set(custom_lc) | set(gov_lc)):
        if not name:
            continue
        eff = resolve(custom_lc.get(name), gov_lc.get(name))
        if eff is not None:
            resolved[name] = eff
    return resolved
