"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import List, Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.schemas import (
    AlarmEvent,
    CommandAccepted,
    CommandRequest,
    DeviceState,
    MonitorSnapshot,
    TelemetryHistory,
    TelemetrySnapshot,
)
from datastore.alarm_log import AlarmLog, build_default_alarm_log
from services.commands import CommandRejected, parse_command
from services.monitor import EnvironmentMonitor, build_default_monitor
from storage.telemetry_store import TelemetryStore, build_default_telemetry_store

router = APIRouter()


def get_monitor() -> EnvironmentMonitor:
    return build_default_monitor()


def get_alarm_log() -> AlarmLog:
    return build_default_alarm_log()


def get_telemetry_store() -> TelemetryStore:
    return build_default_telemetry_store()


@router.get(
    "/state",
    response_model=MonitorSnapshot,
    summary="Current reading, comfort score and HVAC state of the room.",
)
async def get_state(
    monitor: EnvironmentMonitor = Depends(get_monitor),
) -> MonitorSnapshot:
    return monitor.snapshot()


@router.post(
    "/commands",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=CommandAccepted,
    summary="Submit an HVAC command such as SetTemperature or SetFanSpeed.",
)
async def submit_command(
    request: CommandRequest,
    monitor: EnvironmentMonitor = Depends(get_monitor),
) -> CommandAccepted:
    if request.target_id != monitor.hvac_device_id:
        return CommandAccepted(
            correlation_id=request.correlation_id or str(uuid4()),
            accepted=False,
        )
    try:
        command = parse_command(request.model_dump())
    except CommandRejected as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    accepted = monitor.process_command(command)
    return CommandAccepted(correlation_id=command.correlation_id, accepted=accepted)


@router.get(
    "/alarms",
    response_model=List[AlarmEvent],
    summary="Alarms raised since the service started, oldest first.",
)
async def list_alarms(
    active_only: bool = Query(False, description="Only return alarms that were not cleared."),
    alarm_log: AlarmLog = Depends(get_alarm_log),
) -> List[AlarmEvent]:
    return alarm_log.list_alarms(active_only=active_only)


@router.post(
    "/alarms/{alarm_id}/clear",
    response_model=AlarmEvent,
    summary="Mark an alarm as cleared.",
)
async def clear_alarm(
    alarm_id: str,
    alarm_log: AlarmLog = Depends(get_alarm_log),
) -> AlarmEvent:
    cleared = alarm_log.get_alarm(alarm_id) if alarm_log.clear_alarm(alarm_id) else None
    if cleared is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Alarm {alarm_id!r} not found.",
        )
    return cleared


@router.get(
    "/telemetry",
    response_model=TelemetrySnapshot,
    summary="Latest published telemetry points and device states.",
)
async def get_telemetry(
    store: TelemetryStore = Depends(get_telemetry_store),
) -> TelemetrySnapshot:
    return TelemetrySnapshot(points=store.latest_points(), states=store.latest_states())


@router.get(
    "/telemetry/history",
    response_model=TelemetryHistory,
    summary="Recently published telemetry points, oldest first.",
)
async def get_telemetry_history(
    metric: Optional[str] = Query(None, description="Only return points for this metric."),
    limit: Optional[int] = Query(None, ge=1, description="Return at most this many of the newest points."),
    store: TelemetryStore = Depends(get_telemetry_store),
) -> TelemetryHistory:
    return TelemetryHistory(
        history_size=store.history_size,
        points=store.history(metric=metric, limit=limit),
    )


@router.get(
    "/telemetry/states/{device_id}",
    response_model=DeviceState,
    summary="Latest published state of one device.",
)
async def get_device_state(
    device_id: str,
    store: TelemetryStore = Depends(get_telemetry_store),
) -> DeviceState:
    state = store.latest_state(device_id)
    if state is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No state published for device {device_id!r}.",
        )
    return state


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck(
    monitor: EnvironmentMonitor = Depends(get_monitor),
) -> dict[str, str]:
    return {"status": "ok", "monitor": "running" if monitor.is_running else "stopped"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
