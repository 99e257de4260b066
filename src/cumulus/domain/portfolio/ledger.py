from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List, Optional

from cumulus.domain.signals.entities import Insight


class SignalLedger:
    """In-memory collection of tracked insights, grouped by symbol.

    Symbols and the insights under each symbol keep insertion order, so the
    query results are deterministic for a given input sequence.
    """

    def __init__(self) -> None:
        self._by_symbol: Dict[str, List[Insight]] = {}

    def __len__(self) -> int:
        return sum(len(v) for v in self._by_symbol.values())

    def __contains__(self, insight: object) -> bool:
        if not isinstance(insight, Insight):
            return False
        return insight in self._by_symbol.get(insight.symbol, ())

    def symbols(self) -> list[str]:
        return list(self._by_symbol.keys())

    def track(self, insights: Iterable[Insight]) -> None:
        for insight in insights:
            bucket = self._by_symbol.setdefault(insight.symbol, [])
            if insight not in bucket:
                bucket.append(insight)

    def active_as_of(self, utc: datetime) -> list[Insight]:
        return [
            insight
            for bucket in self._by_symbol.values()
            for insight in bucket
            if insight.is_active(utc)
        ]

    def expiring_as_of(self, utc: datetime) -> list[Insight]:
        """Insights `expire_as_of(utc)` would return, without removing them."""
        return [
            insight
            for bucket in self._by_symbol.values()
            for insight in bucket
            if insight.is_expired(utc)
        ]

    def expire_as_of(self, utc: datetime) -> list[Insight]:
        """Remove and return every insight whose close time is at or before `utc`."""
        expired: list[Insight] = []
        for symbol in list(self._by_symbol.keys()):
            bucket = self._by_symbol[symbol]
            keep: list[Insight] = []
            for insight in bucket:
                (expired if insight.is_expired(utc) else keep).append(insight)
            if keep:
                self._by_symbol[symbol] = keep
            else:
                del self._by_symbol[symbol]
        return expired

    def next_expiry(self) -> Optional[datetime]:
        closes = [i.close_utc for bucket in self._by_symbol.values() for i in bucket]
        return min(closes) if closes else None

    def untrack(self, symbols: Iterable[str]) -> None:
        for symbol in symbols:
            self._by_symbol.pop(symbol, None)
