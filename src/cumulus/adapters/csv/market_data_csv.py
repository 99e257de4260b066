from __future__ import annotations
from datetime import datetime, timezone
from pathlib import Path
import pandas as pd

from cumulus.ports.market_data import MarketDataPort
from cumulus.shared.decorators import logged

_COLUMNS = ["time", "open", "high", "low", "close", "volume"]

class CsvMarketData(MarketDataPort):
    """Bars from one CSV with columns symbol,time,open,high,low,close,volume.

    Only `symbol`, `time` and `close` are required. The timeframe argument is
    accepted for port compatibility; the file is used at its own resolution.
    """

    def __init__(self, path: str | Path) -> None:
        self._frame = self._load(Path(path))

    @staticmethod
    @logged
    def _load(path: Path) -> pd.DataFrame:
        if not path.exists():
            raise FileNotFoundError(f"Price file not found: {path}")
        df = pd.read_csv(path)
        missing = {"symbol", "time", "close"} - set(df.columns)
        if missing:
            raise ValueError(f"Price file {path} is missing columns: {sorted(missing)}")
        df["time"] = pd.to_datetime(df["time"], utc=True)
        df["symbol"] = df["symbol"].astype(str)
        return df.sort_values(["symbol", "time"]).reset_index(drop=True)

    def symbols(self) -> list[str]:
        return sorted(self._frame["symbol"].unique().tolist())

    def get_bars(self, symbol: str, timeframe: str, start: datetime, end: datetime) -> pd.DataFrame:
        _ = timeframe
        start_ts = pd.Timestamp(start.astimezone(timezone.utc))
        end_ts = pd.Timestamp(end.astimezone(timezone.utc))
        df = self._frame
        mask = (df["symbol"] == symbol) & (df["time"] >= start_ts) & (df["time"] <= end_ts)
        out = df.loc[mask, [c for c in _COLUMNS if c in df.columns]]
        return out.reset_index(drop=True)
