from __future__ import annotations
from datetime import datetime
from pathlib import Path
import pandas as pd

from cumulus.domain.signals.entities import Insight, InsightDirection
from cumulus.ports.insights import InsightSourcePort
from cumulus.shared.clock import as_utc
from cumulus.shared.decorators import logged

class CsvInsightSource(InsightSourcePort):
    """Insights from a CSV with columns symbol,direction,generated_utc,close_utc
    and optional id,source_model. Rows are kept in file order."""

    def __init__(self, path: str | Path) -> None:
        self._insights = self._load(Path(path))

    @staticmethod
    @logged
    def _load(path: Path) -> list[Insight]:
        if not path.exists():
            raise FileNotFoundError(f"Insight file not found: {path}")
        df = pd.read_csv(path, dtype=str)
        missing = {"symbol", "direction", "generated_utc", "close_utc"} - set(df.columns)
        if missing:
            raise ValueError(f"Insight file {path} is missing columns: {sorted(missing)}")
        df["generated_utc"] = pd.to_datetime(df["generated_utc"], utc=True)
        df["close_utc"] = pd.to_datetime(df["close_utc"], utc=True)

        out: list[Insight] = []
        for row in df.itertuples(index=False):
            kwargs = {}
            rid = getattr(row, "id", None)
            if isinstance(rid, str) and rid:
                kwargs["id"] = rid
            src = getattr(row, "source_model", None)
            out.append(
                Insight(
                    symbol=str(row.symbol),
                    direction=InsightDirection.coerce(row.direction),
                    generated_utc=row.generated_utc.to_pydatetime(),
                    close_utc=row.close_utc.to_pydatetime(),
                    source_model=src if isinstance(src, str) and src else None,
                    **kwargs,
                )
            )
        return out

    def __len__(self) -> int:
        return len(self._insights)

    def insights_between(self, start: datetime | None, end: datetime) -> list[Insight]:
        end = as_utc(end)
        lo = as_utc(start) if start is not None else None
        return [
            i for i in self._insights
            if i.generated_utc <= end and (lo is None or i.generated_utc > lo)
        ]
