from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Appointment:
    id: str
    customer_address: str
    start_time: datetime
    end_time: datetime
    external_event_id: str
    calendar_id: str
    created_at: float | None = None
