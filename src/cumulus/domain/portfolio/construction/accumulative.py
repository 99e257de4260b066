from __future__ import annotations

from datetime import datetime
from typing import Callable, Dict, Iterable, Optional, Sequence

from cumulus.application.plugins.registry import register_construction_model
from cumulus.domain.portfolio.accumulator import WeightAccumulator, WeightTableInconsistencyError
from cumulus.domain.portfolio.construction.base import BaseConstructionModel
from cumulus.domain.portfolio.ledger import SignalLedger
from cumulus.domain.portfolio.types import Symbol, TargetBatch, WeightUpdate
from cumulus.domain.signals.entities import Insight
from cumulus.shared.clock import as_utc


InsightFilter = Callable[[Insight], bool]


def accept_all(insight: Insight) -> bool:
    _ = insight
    return True


@register_construction_model(name="accumulative", tags={"default"})
class AccumulativeConstructionModel(BaseConstructionModel):
    """
    Allocates `percent` of the portfolio per insight and keeps the result
    across calls instead of rebalancing from scratch. A new insight or the
    expiry of an old one is what moves a position.

    Removed symbols are flattened first, then the latest active insight of
    each symbol is applied, then newly expired insights are undone.
    """

    def __init__(
        self,
        percent: float = 0.03,
        accept: InsightFilter | None = None,
        ledger: SignalLedger | None = None,
    ) -> None:
        self._accumulator = WeightAccumulator(percent)
        self._ledger = ledger if ledger is not None else SignalLedger()
        self._accept: InsightFilter = accept or accept_all
        self._removed: list[Symbol] = []
        self._next_expiry: Optional[datetime] = None

    @property
    def percent(self) -> float:
        return self._accumulator.percent

    @property
    def next_expiry(self) -> Optional[datetime]:
        return self._next_expiry

    def weight_of(self, symbol: Symbol) -> float:
        return self._accumulator.weight_of(symbol)

    def weights(self) -> Dict[Symbol, float]:
        return self._accumulator.weights()

    def evaluate(
        self,
        reference_utc: datetime,
        insights: Sequence[Insight],
        removed: Iterable[Symbol] | None = None,
    ) -> TargetBatch:
        """Record `removed` as a universe change, then run one pass."""
        if removed:
            self.on_universe_changed(removed)
        return self.create_targets(reference_utc, insights)

    def create_targets(self, reference_utc: datetime, insights: Sequence[Insight]) -> TargetBatch:
        reference_utc = as_utc(reference_utc)
        insights = list(insights or ())
        if (
            self._next_expiry is not None
            and reference_utc <= self._next_expiry
            and not insights
            and not self._removed
        ):
            return TargetBatch(short_circuited=True)

        accepted = [i for i in insights if self._accept(i)]
        self._check_expiries(reference_utc, accepted)
        self._ledger.track(accepted)

        updates: list[WeightUpdate] = []

        removed, self._removed = self._removed, []
        for symbol in removed:
            updates.append(self._accumulator.flatten(symbol))

        for insight in self._latest_per_symbol(self._ledger.active_as_of(reference_utc)):
            update = self._accumulator.apply_activation(insight)
            if update is not None:
                updates.append(update)

        for insight in self._ledger.expire_as_of(reference_utc):
            update = self._accumulator.apply_expiry(insight)
            if update is not None:
                updates.append(update)

        self._next_expiry = self._ledger.next_expiry()
        return TargetBatch(updates)

    def _check_expiries(self, reference_utc: datetime, accepted: list[Insight]) -> None:
        """Raise before anything is mutated if an expiry of this pass would hit
        a symbol that has no weight by the time expiries are applied."""
        fresh = [i for i in accepted if i not in self._ledger]
        weighted = set(self._accumulator.weights()) | set(self._removed)
        weighted.update(i.symbol for i in self._ledger.active_as_of(reference_utc))
        weighted.update(i.symbol for i in fresh if i.is_active(reference_utc))

        expiring = self._ledger.expiring_as_of(reference_utc)
        expiring += [i for i in fresh if i.is_expired(reference_utc)]
        for insight in expiring:
            if insight.symbol not in weighted and not self._accumulator.was_expired(insight):
                raise WeightTableInconsistencyError(
                    f"Insight {insight.id} expires for {insight.symbol!r} at "
                    f"{reference_utc.isoformat()}, which has no accumulated weight"
                )

    def on_universe_changed(self, removed: Iterable[Symbol]) -> None:
        removed = list(removed or ())
        for symbol in removed:
            if symbol not in self._removed:
                self._removed.append(symbol)
        self._ledger.untrack(removed)

    @staticmethod
    def _latest_per_symbol(active: Iterable[Insight]) -> list[Insight]:
        # later entries win ties on generated_utc
        latest: Dict[Symbol, Insight] = {}
        for insight in active:
            current = latest.get(insight.symbol)
            if current is None or insight.generated_utc >= current.generated_utc:
                latest[insight.symbol] = insight
        return list(latest.values())
