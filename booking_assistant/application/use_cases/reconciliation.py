from __future__ import annotations

import logging
from typing import Callable

from booking_assistant.domain.entities.inconsistency import InconsistencyReport

InconsistencyHook = Callable[[InconsistencyReport], None]

logger = logging.getLogger(__name__)


def log_inconsistency(report: InconsistencyReport) -> None:
    """Default reconciliation hook: leave an operational trail, never heal automatically."""
    logger.error(
        "Calendar/store inconsistency",
        extra={
            "event": "inconsistency",
            "reason": report.kind.value,
            "sender": report.customer_address,
            "event_id": report.external_event_id,
            "start_time": report.start_time.isoformat() if report.start_time else None,
            "detail": report.detail,
            "rolled_back": report.rolled_back,
        },
    )


class InconsistencyCollector:
    """Hook that keeps reports in memory; handy for an admin endpoint or for tests."""

    def __init__(self, forward: InconsistencyHook | None = log_inconsistency) -> None:
        self.reports: list[InconsistencyReport] = []
        self._forward = forward

    def __call__(self, report: InconsistencyReport) -> None:
        self.reports.append(report)
        if self._forward is not None:
            self._forward(report)
