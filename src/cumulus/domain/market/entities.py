from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import NewType

Symbol = NewType("Symbol", str)


class AssetClass(str, Enum):
    EQUITY = "equity"
    FUTURE = "future"
    FX = "fx"
    OTHER = "other"


@dataclass
class Instrument:
    """Sizing rules of a tradable instrument.

    lot_size converts one unit of volume into units of the priced asset
    (100000 for a standard FX lot, 1 for shares).
    """

    symbol: Symbol
    asset_class: AssetClass = AssetClass.EQUITY
    currency: str = "USD"
    lot_size: float = 1.0
    min_volume: float = 0.0
    volume_step: float = 1.0

