from __future__ import annotations
from typing import Iterable, List

from cumulus.domain.portfolio.types import PortfolioPosition
from cumulus.ports.account import AccountPort

class PaperAccount(AccountPort):
    """Fixed-equity account for replays; nothing is ever filled."""

    def __init__(self, equity: float, positions: Iterable[PortfolioPosition] | None = None) -> None:
        self._equity = float(equity)
        self._positions = list(positions or [])

    def equity(self) -> float:
        return self._equity

    def positions(self) -> List[PortfolioPosition]:
        return list(self._positions)
