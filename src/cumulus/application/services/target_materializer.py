from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Mapping

import pandas as pd

from cumulus.domain.market.entities import Instrument, Symbol
from cumulus.domain.portfolio.types import PortfolioSnapshot, PortfolioTarget, WeightUpdate
from cumulus.ports.market_data import MarketDataPort


class SizingError(Exception):
    """A weight could not be turned into a quantity for one symbol."""


@dataclass(slots=True)
class MaterializationResult:
    targets: List[PortfolioTarget] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)  # symbol -> reason

    @property
    def failed_symbols(self) -> set[str]:
        return set(self.failures.keys())


@dataclass(slots=True)
class TargetMaterializer:
    """
    Converts accumulated weights into holdings quantities:

        quantity = equity * weight / (price * lot_size)

    rounded toward zero to the instrument's volume step. A quantity below
    the instrument's minimum volume becomes 0. The price is the last close
    in the lookback window ending at the reference time.

    Failures are per symbol: the symbol is reported in `failures` and the
    remaining updates are still sized.
    """

    market_data: MarketDataPort
    instruments: Mapping[str, Instrument]
    timeframe: str
    lookback_days: int

    def materialize(
        self,
        updates: Iterable[WeightUpdate],
        portfolio: PortfolioSnapshot,
        reference_utc: datetime,
    ) -> MaterializationResult:
        result = MaterializationResult()
        for upd in updates:
            try:
                qty = self._quantity_for(upd.symbol, float(upd.weight), portfolio, reference_utc)
            except SizingError as e:
                result.failures[upd.symbol] = str(e)
                continue
            result.targets.append(PortfolioTarget(symbol=upd.symbol, weight=float(upd.weight), quantity=qty))
        return result

    def _quantity_for(
        self,
        symbol: str,
        weight: float,
        portfolio: PortfolioSnapshot,
        reference_utc: datetime,
    ) -> float:
        if weight == 0.0:
            return 0.0

        equity = float(portfolio.equity)
        if equity <= 0.0:
            raise SizingError(f"non_positive_equity: {equity}")

        price = self._last_close(symbol, reference_utc)
        inst = self.instruments.get(symbol) or Instrument(symbol=Symbol(symbol))
        lot = float(inst.lot_size) if inst.lot_size > 0 else 1.0

        raw = equity * weight / (price * lot)
        return _round_to_step(raw, float(inst.volume_step), float(inst.min_volume))

    def _last_close(self, symbol: str, reference_utc: datetime) -> float:
        start = reference_utc - timedelta(days=int(self.lookback_days))
        try:
            df = self.market_data.get_bars(symbol, self.timeframe, start, reference_utc)
        except Exception as e:
            raise SizingError(f"data_error: {type(e).__name__}: {e}") from e

        if df is None or df.empty or "close" not in df.columns:
            raise SizingError("no_market_data")
        if "time" in df.columns:
            df = df.sort_values("time")

        closes = pd.to_numeric(df["close"], errors="coerce").dropna()
        if closes.empty:
            raise SizingError("no_market_data")
        price = float(closes.iloc[-1])
        if not math.isfinite(price) or price <= 0.0:
            raise SizingError(f"invalid_price: {price}")
        return price


def _round_to_step(qty: float, step: float, min_volume: float) -> float:
    if step > 0:
        # small epsilon so 2.9999999 steps still counts as 3
        steps = math.floor(abs(qty) / step + 1e-9)
        qty = math.copysign(steps * step, qty)
    if abs(qty) < min_volume:
        return 0.0
    return qty
