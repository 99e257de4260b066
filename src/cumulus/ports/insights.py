from __future__ import annotations
from datetime import datetime
from typing import Protocol, List

from cumulus.domain.signals.entities import Insight

class InsightSourcePort(Protocol):
    def insights_between(self, start: datetime | None, end: datetime) -> List[Insight]:
        """Insights generated in the half-open window (start, end]; start=None means unbounded."""
        ...
