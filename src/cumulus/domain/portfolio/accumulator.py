from __future__ import annotations

from typing import Dict

from cumulus.domain.portfolio.types import Symbol, WeightUpdate
from cumulus.domain.signals.entities import Insight, InsightDirection


class WeightTableInconsistencyError(RuntimeError):
    """An insight expired for a symbol that never received a weight.

    The construction model checks for this before a pass mutates anything,
    so a caller that catches it keeps the ledger, weights and pending removals
    of the previous pass. Raised directly by `apply_expiry`, the accumulator
    itself is left unchanged."""


class WeightAccumulator:
    """
    Accumulated target weight per symbol, moved by a fixed step on insight
    activation and expiry.

    Rules:
      1. Up insight: weight += percent
      2. Down insight: weight -= percent
      3. Flat insight: move weight by percent towards 0 (snap to 0 when closer)
      4. Expiry: undo the step of the insight, snapping to 0 instead of
         crossing it. A Flat expiry leaves the weight untouched.

    Each insight is applied at most once on activation and at most once on
    expiry; repeated calls return None and change nothing.
    """

    def __init__(self, percent: float = 0.03) -> None:
        self._percent = abs(float(percent))
        self._weights: Dict[Symbol, float] = {}
        self._activated: set[Insight] = set()
        self._expired: set[Insight] = set()

    @property
    def percent(self) -> float:
        return self._percent

    def weight_of(self, symbol: Symbol) -> float:
        return float(self._weights.get(symbol, 0.0))

    def weights(self) -> Dict[Symbol, float]:
        return dict(self._weights)

    def was_activated(self, insight: Insight) -> bool:
        return insight in self._activated

    def was_expired(self, insight: Insight) -> bool:
        return insight in self._expired

    def apply_activation(self, insight: Insight) -> WeightUpdate | None:
        if insight in self._activated:
            return None
        self._activated.add(insight)

        step = self._percent
        direction = InsightDirection.coerce(insight.direction)
        target = self._weights.get(insight.symbol, 0.0) + step * int(direction)

        if direction == InsightDirection.FLAT:
            if abs(target) < step:
                target = 0.0
            elif target > 0:
                target -= step
            else:
                target += step

        self._weights[insight.symbol] = target
        return WeightUpdate(symbol=insight.symbol, weight=target, reason="activated", insight=insight)

    def apply_expiry(self, insight: Insight) -> WeightUpdate | None:
        if insight in self._expired:
            return None

        if insight.symbol not in self._weights:
            raise WeightTableInconsistencyError(
                f"Insight {insight.id} expired for {insight.symbol!r}, "
                "which has no accumulated weight"
            )
        self._expired.add(insight)

        step = self._percent
        direction = InsightDirection.coerce(insight.direction)
        target = self._weights[insight.symbol]
        if abs(target) < step and direction != InsightDirection.FLAT:
            target = 0.0
        else:
            target -= step * int(direction)

        self._weights[insight.symbol] = target
        return WeightUpdate(symbol=insight.symbol, weight=target, reason="expired", insight=insight)

    def flatten(self, symbol: Symbol) -> WeightUpdate:
        self._weights[symbol] = 0.0
        return WeightUpdate(symbol=symbol, weight=0.0, reason="removed")
