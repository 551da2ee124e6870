# eldergrid/utils/schema_validator.py
from pydantic import BaseModel, Field, validator, ValidationError
from typing import Any, Dict, List, Optional, Literal, Union
from datetime import datetime, timezone


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def normalize_appliance(name: Any) -> str:
    return str(name or "").strip().lower()


class ApplianceLog(BaseModel):
    id: Optional[Union[int, str]] = None
    user_id: str
    appliance_name: str
    usage_minutes: int
    timestamp: datetime

    @validator("appliance_name")
    def validate_name(cls, v):
        if not v or not str(v).strip():
            raise ValueError("appliance_name must not be empty")
        return str(v).strip()

    @validator("usage_minutes")
    def validate_usage(cls, v):
        if v < 0:
            raise ValueError("usage_minutes must be non-negative")
        return v

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "ApplianceLog":
        """Rows from `appliance_logs` use `appliance`; older seeds use `appliance_name`."""
        return cls(
            id=row.get("id"),
            user_id=str(row.get("user_id", "")),
            appliance_name=row.get("appliance_name") or row.get("appliance") or "",
            usage_minutes=int(row.get("usage_minutes") or 0),
            timestamp=row.get("timestamp") or row.get("created_at"),
        )

    def to_row(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "appliance": self.appliance_name,
            "usage_minutes": self.usage_minutes,
            "timestamp": self.timestamp.isoformat(),
        }


class CustomThreshold(BaseModel):
    user_id: str
    appliance_name: str
    minutes: int

    @validator("appliance_name")
    def validate_name(cls, v):
        name = normalize_appliance(v)
        if not name:
            raise ValueError("appliance_name must not be empty")
        return name

    @validator("minutes")
    def validate_minutes(cls, v):
        if v < 0:
            raise ValueError("minutes must be non-negative")
        return v

    def to_row(self) -> Dict[str, Any]:
        return {"user_id": self.user_id, "appliance": self.appliance_name, "minutes": self.minutes}


class GovernmentAverage(BaseModel):
    appliance_name: str
    avg_usage_minutes: Optional[float] = None
    region: str = "Default"
    last_updated: str = Field(default_factory=_utc_now_iso)
    source: Literal["mock", "api"] = "mock"

    @validator("avg_usage_minutes", pre=True)
    def coerce_avg(cls, v):
        # unparseable means no average, never a zero baseline
        try:
            return max(float(v), 0.0)
        except (TypeError, ValueError):
            return None


class Medication(BaseModel):
    id: str
    name: str
    time: str  # "HH:MM"
    dosage: str = "1 tablet"
    taken: bool = False

    @validator("name")
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Medication name must not be empty.")
        return v.strip()

    @validator("time")
    def validate_time_format(cls, v):
        s = str(v)
        parts = s.split(":")
        if len(parts) != 2:
            raise ValueError("Time must be HH:MM")
        hh, mm = parts
        if not (hh.isdigit() and mm.isdigit()):
            raise ValueError("Time must be HH:MM numeric")
        h = int(hh)
        m = int(mm)
        if not (0 <= h <= 23 and 0 <= m <= 59):
            raise ValueError("Time must be valid 24h HH:MM")
        return f"{h:02d}:{m:02d}"

    @validator("dosage", pre=True)
    def default_dosage(cls, v):
        return (v or "").strip() or "1 tablet"


class OfflineSnapshot(BaseModel):
    devices: List[Dict[str, Any]] = Field(default_factory=list)
    carbon_saved: float = 0.0
    green_score: int = 0
    alerts: List[Dict[str, Any]] = Field(default_factory=list)
    last_updated: str = Field(default_factory=_utc_now_iso)

    @validator("green_score")
    def validate_score(cls, v):
        if not (0 <= v <= 100):
            raise ValueError("green_score must be within 0..100")
        return v


__all__ = [
    "ApplianceLog",
    "CustomThreshold",
    "GovernmentAverage",
    "Medication",
    "OfflineSnapshot",
    "ValidationError",
    "normalize_appliance",
]
