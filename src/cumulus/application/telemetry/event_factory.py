from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping

from cumulus.ports.telemetry import TelemetryEvent, TelemetryLevel


def make_event(
    *,
    run_id: str,
    name: str,
    level: str | TelemetryLevel,
    channel: str,
    scope: Mapping[str, Any] | None = None,
    payload: Mapping[str, Any] | None = None,
) -> TelemetryEvent:
    """Build an event stamped with the current UTC time; scope and payload are copied."""
    return TelemetryEvent(
        ts_utc=datetime.now(timezone.utc),
        run_id=str(run_id),
        name=str(name),
        level=TelemetryLevel.coerce(level),
        channel=str(channel),
        scope=dict(scope or {}),
        payload=dict(payload or {}),
    )
