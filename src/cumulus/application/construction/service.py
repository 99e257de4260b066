from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Sequence

from cumulus.application.construction.result import ConstructionRunResult
from cumulus.application.services.target_materializer import TargetMaterializer
from cumulus.application.telemetry.run_context import RunContext, RunTelemetry
from cumulus.domain.portfolio.accumulator import WeightTableInconsistencyError
from cumulus.domain.portfolio.construction.base import BaseConstructionModel
from cumulus.domain.portfolio.types import PortfolioSnapshot
from cumulus.domain.signals.entities import Insight
from cumulus.ports.account import AccountPort
from cumulus.ports.telemetry import TelemetryLevel, TelemetryPort


def build_portfolio_snapshot(account: AccountPort) -> PortfolioSnapshot:
    equity = float(account.equity())
    positions = {p.symbol: p for p in account.positions()}
    return PortfolioSnapshot(equity=equity, positions=positions)


@dataclass(slots=True)
class TargetConstructionService:
    """Runs the construction model for one reference time and sizes its output."""

    model: BaseConstructionModel
    materializer: TargetMaterializer
    account: AccountPort
    telemetry: TelemetryPort | None = None

    def on_universe_changed(self, removed: Iterable[str], run_id: str) -> None:
        removed = list(dict.fromkeys(removed or ()))
        if not removed:
            return
        self.model.on_universe_changed(removed)
        t = RunTelemetry(port=self.telemetry, run_id=str(run_id), base_scope={"component": "construction"})
        t.emit(
            name="universe.removed",
            channel="audit",
            level=TelemetryLevel.INFO,
            payload={"removed_count": len(removed), "symbols": removed},
        )

    def run(
        self,
        reference_utc: datetime,
        insights: Sequence[Insight],
        run_id: str,
    ) -> ConstructionRunResult:
        t = RunTelemetry(port=self.telemetry, run_id=str(run_id), base_scope={"component": "construction"})
        ctx = RunContext(
            run_id=str(run_id),
            reference_utc=reference_utc,
            construction_model=str(getattr(self.model, "name", "") or type(self.model).__name__),
            percent=float(getattr(self.model, "percent", 0.0)),
        )
        start_t = time.perf_counter()

        t.emit(
            name="construction.started",
            channel="ops",
            level=TelemetryLevel.DEBUG,
            payload={
                "reference_utc": reference_utc.isoformat(),
                "insights_count": len(insights),
                "construction_model": ctx.construction_model,
            },
        )

        try:
            batch = self.model.create_targets(reference_utc, insights)
        except WeightTableInconsistencyError as e:
            t.emit(
                name="error.exception",
                channel="ops",
                level=TelemetryLevel.ERROR,
                payload={"exception_type": type(e).__name__, "message": str(e), "stage": "create_targets"},
            )
            raise

        if batch.short_circuited:
            t.emit(
                name="construction.completed",
                channel="ops",
                level=TelemetryLevel.DEBUG,
                payload={"reference_utc": reference_utc.isoformat(), "short_circuited": True, "updates_count": 0},
            )
            return ConstructionRunResult(context=ctx, updates=[], targets=[], failures={}, short_circuited=True)

        updates = batch.take()
        portfolio = build_portfolio_snapshot(self.account)
        for upd in updates:
            t.emit(
                name="construction.weight_emitted",
                channel="audit",
                level=TelemetryLevel.INFO,
                scope={"symbol": upd.symbol, "reason": upd.reason},
                payload={
                    "weight": float(upd.weight),
                    "insight_id": upd.insight.id if upd.insight else None,
                    "direction": upd.insight.direction.name if upd.insight else None,
                    "held_weight": portfolio.weight_of(upd.symbol),
                },
            )

        sized = self.materializer.materialize(updates, portfolio, reference_utc)

        for symbol, reason in sized.failures.items():
            t.emit(
                name="construction.sizing_failed",
                channel="ops",
                level=TelemetryLevel.WARN,
                scope={"symbol": symbol},
                payload={"message": reason},
            )

        t.emit(
            name="construction.completed",
            channel="ops",
            level=TelemetryLevel.INFO,
            payload={
                "reference_utc": reference_utc.isoformat(),
                "short_circuited": False,
                "updates_count": len(updates),
                "targets_count": len(sized.targets),
                "failed_count": len(sized.failures),
                "duration_ms": int((time.perf_counter() - start_t) * 1000),
            },
        )

        return ConstructionRunResult(
            context=ctx,
            updates=updates,
            targets=sized.targets,
            failures=dict(sized.failures),
        )
