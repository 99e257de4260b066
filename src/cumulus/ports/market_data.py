from __future__ import annotations
from typing import Protocol
from datetime import datetime
import pandas as pd

class MarketDataPort(Protocol):
    """Source of the closes used to size targets.

    `get_bars` returns one row per bar with at least `time` (UTC) and
    `close`, for bars with `start <= time <= end`, oldest first. An empty
    frame means no data for the symbol in that window.
    """

    def get_bars(self, symbol: str, timeframe: str, start: datetime, end: datetime) -> pd.DataFrame: ...
