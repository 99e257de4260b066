from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, Sequence

from cumulus.domain.portfolio.types import Symbol, TargetBatch
from cumulus.domain.signals.entities import Insight


class BaseConstructionModel(ABC):
    """Abstract base class for portfolio construction model plugins."""

    # Set by decorator
    name: str = ""
    tags: set[str] = set()

    @abstractmethod
    def create_targets(self, reference_utc: datetime, insights: Sequence[Insight]) -> TargetBatch:
        raise NotImplementedError

    @abstractmethod
    def on_universe_changed(self, removed: Iterable[Symbol]) -> None:
        raise NotImplementedError
