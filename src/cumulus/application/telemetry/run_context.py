from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

from cumulus.application.telemetry.event_factory import make_event
from cumulus.ports.telemetry import TelemetryLevel, TelemetryPort


@dataclass(frozen=True, slots=True)
class RunContext:
    run_id: str
    reference_utc: datetime
    construction_model: str
    percent: float


@dataclass(slots=True)
class RunTelemetry:
    """Produces consistent events for a single run_id."""

    port: TelemetryPort | None
    run_id: str
    base_scope: Mapping[str, Any] | None = None

    def enabled(self, channel: str, level: str | TelemetryLevel) -> bool:
        if self.port is None:
            return False
        return self.port.enabled(channel, level)

    def emit(
        self,
        *,
        name: str,
        channel: str,
        level: str | TelemetryLevel = TelemetryLevel.INFO,
        scope: Mapping[str, Any] | None = None,
        payload: Mapping[str, Any] | None = None,
    ) -> None:
        if self.port is None:
            return

        merged_scope = dict(self.base_scope or {})
        if scope:
            merged_scope.update(dict(scope))

        try:
            self.port.emit(
                make_event(
                    run_id=self.run_id,
                    name=name,
                    level=level,
                    channel=channel,
                    scope=merged_scope,
                    payload=payload,
                )
            )
        except Exception:
            # never break the run due to telemetry
            return
