from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import Any

from cumulus.ports.telemetry import TelemetryEvent, TelemetryLevel, TelemetrySink

_SCOPE_KEYS = ("component", "symbol", "reason")
_PAYLOAD_KEYS = (
    "reference_utc",
    "weight",
    "quantity",
    "direction",
    "insights_count",
    "updates_count",
    "targets_count",
    "failed_count",
    "removed_count",
    "short_circuited",
    "duration_ms",
    "message",
)


def _short(v: Any, limit: int = 80) -> str:
    s = f"{v:.6g}" if isinstance(v, float) else str(v)
    return s if len(s) <= limit else (s[: limit - 1] + "…")


def _summarize(event: TelemetryEvent) -> str:
    scope = dict(event.scope or {})
    payload = dict(event.payload or {})

    parts: list[str] = []
    for k in _SCOPE_KEYS:
        if scope.get(k) not in (None, ""):
            parts.append(f"{k}={_short(scope[k], 40)}")
    for k in _PAYLOAD_KEYS:
        if k in payload:
            parts.append(f"{k}={_short(payload[k], 40)}")

    if not parts and payload:
        parts.append(f"payload_keys={list(payload.keys())[:8]}")

    return " ".join(parts)


@dataclass(slots=True)
class ConsoleTelemetrySink(TelemetrySink):
    """One grep-friendly line per event. Disabled unless configured."""

    enabled_flag: bool = False
    channels: set[str] = field(default_factory=lambda: {"ops"})
    min_level: TelemetryLevel = TelemetryLevel.INFO
    stream: Any = sys.stdout

    def enabled(self, channel: str, level: TelemetryLevel, name: str | None = None) -> bool:
        _ = name
        if not self.enabled_flag:
            return False
        if channel not in self.channels:
            return False
        return TelemetryLevel.coerce(level).rank() >= TelemetryLevel.coerce(self.min_level).rank()

    def emit(self, event: TelemetryEvent) -> None:
        msg = f"[{event.level.value}][{event.channel}][{event.run_id}] {event.name}"
        summary = _summarize(event)
        if summary:
            msg = f"{msg} {summary}"
        self.stream.write(msg + "\n")
        self.stream.flush()
