from __future__ import annotations

import logging
from dataclasses import dataclass

from cumulus.ports.telemetry import TelemetryEvent, TelemetryLevel, TelemetryPort, TelemetrySink

_log = logging.getLogger(__name__)


@dataclass(slots=True)
class TelemetryHub(TelemetryPort):
    """Fan-out hub.

    Forwards each event to every sink that accepts its channel and level.
    A failing sink is logged and skipped; telemetry never aborts a
    construction run.
    """

    sinks: list[TelemetrySink]

    def emit(self, event: TelemetryEvent) -> None:
        for s in list(self.sinks):
            try:
                if not s.enabled(event.channel, event.level, event.name):
                    continue
                s.emit(event)
            except Exception:
                _log.debug("telemetry sink %r failed on %s", s, event.name, exc_info=True)
                continue

    def enabled(self, channel: str, level: str | TelemetryLevel) -> bool:
        lv = TelemetryLevel.coerce(level)
        for s in list(self.sinks):
            try:
                if s.enabled(str(channel), lv, None):
                    return True
            except Exception:
                continue
        return False

    def flush(self) -> None:
        for s in list(self.sinks):
            flush = getattr(s, "flush", None)
            if callable(flush):
                try:
                    flush()
                except Exception:
                    _log.debug("telemetry sink %r failed to flush", s, exc_info=True)

    def close(self) -> None:
        for s in list(self.sinks):
            close = getattr(s, "close", None)
            if callable(close):
                try:
                    close()
                except Exception:
                    _log.debug("telemetry sink %r failed to close", s, exc_info=True)
