# eldergrid/care/medications.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from eldergrid.utils.schema_validator import Medication

DEFAULT_MEDICATIONS = [
    {"id": "1", "name": "Blood Pressure Medicine", "time": "08:00", "taken": False, "dosage": "1 tablet"},
    {"id": "2", "name": "Diabetes Medicine", "time": "12:00", "taken": True, "dosage": "1 tablet"},
    {"id": "3", "name": "Evening Medicine", "time": "18:00", "taken": False, "dosage": "1 tablet"},
]


def default_medications() -> List[Medication]:
    return [Medication.parse_obj(m) for m in DEFAULT_MEDICATIONS]


def add_medication(meds: Sequence[Medication], name: str, time: str, dosage: str = "") -> List[Medication]:
    """Raises ValidationError for an empty name or a bad HH:MM time."""
    med = Medication(id=uuid.uuid4().hex[:12], name=name, time=time, dosage=dosage)
    return list(meds) + [med]


def toggle_taken(meds: Sequence[Medication], med_id: str) -> List[Medication]:
    return [m.copy(update={"taken": not m.taken}) if m.id == med_id else m for m in meds]


def remove_medication(meds: Sequence[Medication], med_id: str) -> List[Medication]:
    return [m for m in meds if m.id != med_id]


def _minutes_of_day(hhmm: str) -> int:
    h, m = hhmm.split(":")
    return int(h) * 60 + int(m)


def next_reminder(meds: Sequence[Medication], now: Optional[datetime] = None) -> Optional[Tuple[Medication, int]]:
    """Earliest untaken medication still ahead today, with minutes until it is due."""
    now = now or datetime.now()
    current = now.hour * 60 + now.minute

    upcoming = [
        (m, _minutes_of_day(m.time) - current)
        for m in meds
        if not m.taken
    ]
    upcoming = [u for u in upcoming if u[1] > 0]
    if not upcoming:
        return None
    return min(upcoming, key=lambda u: u[1])
