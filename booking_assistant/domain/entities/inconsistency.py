from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class InconsistencyKind(str, Enum):
    ORPHANED_EVENT = "orphaned_event"  # calendar event without a store row
    DANGLING_ROW = "dangling_row"  # store row whose calendar event is gone
    STALE_ROW = "stale_row"  # store row and calendar event disagree on the time


@dataclass(frozen=True)
class InconsistencyReport:
    kind: InconsistencyKind
    customer_address: str
    external_event_id: str
    start_time: datetime | None = None
    detail: str = ""
    rolled_back: bool = False
