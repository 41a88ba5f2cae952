from __future__ import annotations

from collections import deque
from functools import lru_cache
from threading import Lock
from typing import Deque, Dict, List, Optional, Tuple

from app.schemas import DeviceState, TelemetryPoint
from settings import get_settings


class TelemetryStore:
    """In-memory telemetry sink holding the latest values and a bounded history."""

    def __init__(self, history_size: int = 500) -> None:
        self._latest_points: Dict[Tuple[str, str], TelemetryPoint] = {}
        self._latest_states: Dict[str, DeviceState] = {}
        self._history: Deque[TelemetryPoint] = deque(maxlen=history_size)
        self._lock = Lock()

    @property
    def history_size(self) -> Optional[int]:
        return self._history.maxlen

    def publish_point(self, point: TelemetryPoint) -> None:
        stored = point.model_copy(deep=True)
        with self._lock:
            self._latest_points[(stored.device_id, stored.metric)] = stored
            self._history.append(stored)

    def publish_state(self, state: DeviceState) -> None:
        stored = state.model_copy(deep=True)
        with self._lock:
            self._latest_states[stored.device_id] = stored

    def latest_points(self) -> List[TelemetryPoint]:
        with self._lock:
            points = [point.model_copy(deep=True) for point in self._latest_points.values()]
        return sorted(points, key=lambda point: (point.device_id, point.metric))

    def latest_state(self, device_id: str) -> Optional[DeviceState]:
        with self._lock:
            state = self._latest_states.get(device_id)
            if state is None:
                return None
            return state.model_copy(deep=True)

    def latest_states(self) -> List[DeviceState]:
        with self._lock:
            states = [state.model_copy(deep=True) for state in self._latest_states.values()]
        return sorted(states, key=lambda state: state.device_id)

    def history(self, metric: Optional[str] = None, limit: Optional[int] = None) -> List[TelemetryPoint]:
        """Return recorded points oldest first, optionally filtered by metric."""

        with self._lock:
            items = [
                point.model_copy(deep=True)
                for point in self._history
                if metric is None or point.metric == metric
            ]
        if limit is not None:
            items = items[-limit:] if limit > 0 else []
        return items


@lru_cache
def build_default_telemetry_store(history_size: Optional[int] = None) -> TelemetryStore:
    settings = get_settings()
    size = settings.telemetry_history_size if history_size is None else history_size
    return TelemetryStore(history_size=size)
