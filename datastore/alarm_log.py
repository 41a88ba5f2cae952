from __future__ import annotations

import logging
from datetime import datetime, timezone
from functools import lru_cache
from threading import Lock
from typing import Callable, Dict, List, Optional

from app.schemas import AlarmEvent

logger = logging.getLogger(__name__)


class AlarmLog:
    """In-memory alarm sink that keeps every raised event for the process lifetime."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
        self._alarms: Dict[str, AlarmEvent] = {}
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = Lock()

    def raise_alarm(self, alarm: AlarmEvent) -> None:
        with self._lock:
            self._alarms[alarm.id] = alarm.model_copy(deep=True)
        logger.info(
            "Alarm raised: %s",
            alarm.message,
            extra={"alarm_id": alarm.id, "severity": alarm.severity},
        )

    def clear_alarm(self, alarm_id: str) -> bool:
        """Set ``end_time`` on first clear; returns whether the alarm exists."""
        with self._lock:
            alarm = self._alarms.get(alarm_id)
            if alarm is None:
                logger.debug("Clear requested for unknown alarm", extra={"alarm_id": alarm_id})
                return False
            if alarm.end_time is None:
                alarm.end_time = self._clock()
        logger.info("Alarm cleared", extra={"alarm_id": alarm_id})
        return True

    def get_alarm(self, alarm_id: str) -> Optional[AlarmEvent]:
        with self._lock:
            alarm = self._alarms.get(alarm_id)
            if alarm is None:
                return None
            return alarm.model_copy(deep=True)

    def list_alarms(self, active_only: bool = False) -> List[AlarmEvent]:
        """Return deep copies of stored alarms, oldest first."""

        with self._lock:
            alarms = [
                alarm.model_copy(deep=True)
                for alarm in self._alarms.values()
                if not active_only or alarm.active
            ]
        return sorted(alarms, key=lambda alarm: alarm.start_time)


@lru_cache
def build_default_alarm_log() -> AlarmLog:
    return AlarmLog()
