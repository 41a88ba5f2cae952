"""Validation of untyped command payloads into typed commands."""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Type

from pydantic import ValidationError

from app.schemas import (
    Command,
    ControlCommand,
    GenericCommand,
    SetFanSpeedCommand,
    SetTemperatureCommand,
)

logger = logging.getLogger(__name__)

_COMMAND_MODELS: Dict[str, Type[ControlCommand]] = {
    "SetTemperature": SetTemperatureCommand,
    "SetFanSpeed": SetFanSpeedCommand,
}


class CommandRejected(ValueError):
    """A command payload whose shape or argument values cannot be accepted."""


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "command"
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts)


def parse_command(payload: Mapping[str, Any]) -> Command:
    """Build a typed command from ``{target_id, verb, args, correlation_id}``.

    Known verbs have their ``args`` lifted into typed fields and validated;
    unknown verbs become a ``GenericCommand`` carrying the raw arguments.
    """
    verb = payload.get("verb")
    args = payload.get("args") or {}
    if not isinstance(args, Mapping):
        reason = "args must be a mapping"
        logger.warning(
            "Rejected command: %s",
            reason,
            extra={"verb": verb, "target_id": payload.get("target_id"), "reason": reason},
        )
        raise CommandRejected(reason)

    data: Dict[str, Any] = {
        "target_id": payload.get("target_id"),
        "verb": verb,
    }
    if payload.get("correlation_id"):
        data["correlation_id"] = payload["correlation_id"]

    model = _COMMAND_MODELS.get(verb) if isinstance(verb, str) else None
    if model is None:
        data["args"] = dict(args)
        model = GenericCommand
    else:
        data = {**args, **data}

    try:
        return model.model_validate(data)  # type: ignore[return-value]
    except ValidationError as exc:
        reason = _describe(exc)
        logger.warning(
            "Rejected command: %s",
            reason,
            extra={"verb": verb, "target_id": payload.get("target_id"), "reason": reason},
        )
        raise CommandRejected(reason) from exc
