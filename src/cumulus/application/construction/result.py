from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

from cumulus.application.telemetry.run_context import RunContext
from cumulus.domain.portfolio.types import PortfolioTarget, WeightUpdate


@dataclass(frozen=True, slots=True)
class ConstructionRunResult:
    context: RunContext
    updates: List[WeightUpdate]
    targets: List[PortfolioTarget]
    failures: Dict[str, str]
    short_circuited: bool = False

    @property
    def failed_symbols(self) -> set[str]:
        return set(self.failures.keys())

    def final_weights(self) -> Dict[str, float]:
        """Last emitted weight per symbol in this run."""
        out: Dict[str, float] = {}
        for upd in self.updates:
            out[upd.symbol] = float(upd.weight)
        return out
