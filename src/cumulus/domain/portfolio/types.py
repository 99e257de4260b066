from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional

from cumulus.domain.signals.entities import Insight


Symbol = str

UpdateReason = Literal["removed", "activated", "expired"]


@dataclass(frozen=True, slots=True)
class WeightUpdate:
    """
    One emitted (symbol, weight) pair. `weight` is the accumulated target
    weight after the event, not a delta. Removals carry no insight.
    """
    symbol: Symbol
    weight: float
    reason: UpdateReason
    insight: Optional[Insight] = None


class TargetBatch:
    """
    Ordered result of one evaluation pass. The updates are computed eagerly
    but handed out once: a second `take()` raises, since the pass that
    produced them has already mutated the accumulator.
    """

    __slots__ = ("_updates", "_taken", "short_circuited")

    def __init__(self, updates: List[WeightUpdate] | None = None, short_circuited: bool = False) -> None:
        self._updates = tuple(updates or ())
        self._taken = False
        self.short_circuited = short_circuited

    def __len__(self) -> int:
        return len(self._updates)

    @property
    def is_empty(self) -> bool:
        return not self._updates

    @property
    def taken(self) -> bool:
        return self._taken

    def take(self) -> List[WeightUpdate]:
        if self._taken:
            raise RuntimeError("TargetBatch already consumed")
        self._taken = True
        return list(self._updates)


@dataclass
class PortfolioPosition:
    """
    Snapshot of a single position, in abstract units (shares, contracts, lots).
    """
    symbol: Symbol
    quantity: float
    price: float


@dataclass
class PortfolioSnapshot:
    """
    Account equity and open positions at a point in time.
    """
    equity: float
    positions: Dict[Symbol, PortfolioPosition] = field(default_factory=dict)

    def weight_of(self, symbol: Symbol) -> float:
        pos = self.positions.get(symbol)
        if not pos or self.equity <= 0:
            return 0.0
        return float(pos.quantity * pos.price) / float(self.equity)


@dataclass(frozen=True, slots=True)
class PortfolioTarget:
    """
    Executable target for one symbol: the weight it came from and the
    quantity (in volume units) that realises it at the pricing time.
    """
    symbol: Symbol
    weight: float
    quantity: float
