from __future__ import annotations

import time
import uuid
from datetime import datetime, timedelta
from typing import List

from cumulus.shared.clock import as_utc
from cumulus.shared.config import AppConfig
from cumulus.ports.insights import InsightSourcePort

from cumulus.application.construction.result import ConstructionRunResult
from cumulus.application.construction.service import TargetConstructionService
from cumulus.application.telemetry.run_context import RunTelemetry
from cumulus.ports.telemetry import TelemetryLevel, TelemetryPort


def build_time_grid(start: datetime, end: datetime, step_minutes: int) -> list[datetime]:
    """Ticks from start to end inclusive; end is always the last tick."""
    start, end = as_utc(start), as_utc(end)
    if end < start:
        raise ValueError(f"Replay end {end.isoformat()} is before start {start.isoformat()}")
    step = timedelta(minutes=max(1, int(step_minutes)))
    ticks: list[datetime] = []
    t = start
    while t < end:
        ticks.append(t)
        t += step
    ticks.append(end)
    return ticks


def run_replay(
    cfg: AppConfig,
    insight_source: InsightSourcePort,
    service: TargetConstructionService,
    telemetry: TelemetryPort | None = None,
) -> List[ConstructionRunResult]:
    """Replay runmode: steps the construction service over a fixed time grid.

    At each tick, universe removals scheduled in (previous, tick] are applied
    first, then the insights generated in the same window are handed to the
    service. Insights that already closed by the tick were never active at
    any tick and are dropped with an `insight.expired_before_tick` warning.
    Targets are reported through telemetry only; nothing is traded.
    """

    replay = cfg.application.replay
    if replay.start is None or replay.end is None:
        raise RuntimeError("Replay requires application.replay.start and application.replay.end")

    grid = build_time_grid(replay.start, replay.end, replay.step_minutes)
    removals = sorted(
        ((as_utc(r.at), r.symbol) for r in replay.removals),
        key=lambda item: item[0],
    )

    results: List[ConstructionRunResult] = []
    previous: datetime | None = None

    for tick in grid:
        run_id = str(uuid.uuid4())
        t = RunTelemetry(port=telemetry, run_id=run_id, base_scope={"component": "runmode"})
        start_t = time.perf_counter()

        t.emit(
            name="run.cycle_started",
            channel="ops",
            level=TelemetryLevel.DEBUG,
            scope={"run_mode": "replay"},
            payload={"reference_utc": tick.isoformat()},
        )

        due = [sym for at, sym in removals if at <= tick and (previous is None or at > previous)]
        service.on_universe_changed(due, run_id=run_id)

        insights = []
        for insight in insight_source.insights_between(previous, tick):
            # closed between two ticks
            if insight.is_expired(tick):
                t.emit(
                    name="insight.expired_before_tick",
                    channel="ops",
                    level=TelemetryLevel.WARN,
                    scope={"symbol": insight.symbol},
                    payload={
                        "reference_utc": tick.isoformat(),
                        "insight_id": insight.id,
                        "close_utc": insight.close_utc.isoformat(),
                    },
                )
                continue
            insights.append(insight)

        result = service.run(reference_utc=tick, insights=insights, run_id=run_id)
        results.append(result)

        for target in result.targets:
            t.emit(
                name="target.built",
                channel="ops",
                level=TelemetryLevel.INFO,
                scope={"symbol": target.symbol},
                payload={"weight": float(target.weight), "quantity": float(target.quantity)},
            )

        t.emit(
            name="run.cycle_finished",
            channel="ops",
            level=TelemetryLevel.DEBUG,
            scope={"run_mode": "replay"},
            payload={
                "reference_utc": tick.isoformat(),
                "insights_count": len(insights),
                "removed_count": len(due),
                "duration_ms": int((time.perf_counter() - start_t) * 1000),
            },
        )

        flush = getattr(telemetry, "flush", None)
        if callable(flush):
            flush()

        previous = tick

    return results
