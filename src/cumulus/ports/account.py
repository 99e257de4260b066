from __future__ import annotations
from typing import Protocol, List

from cumulus.domain.portfolio.types import PortfolioPosition

class AccountPort(Protocol):
    def equity(self) -> float: ...
    def positions(self) -> List[PortfolioPosition]: ...
