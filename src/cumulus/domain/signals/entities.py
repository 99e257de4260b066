from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum


class InsightDirection(IntEnum):
    """Direction of an insight. The integer value is the sign applied to weight steps."""

    DOWN = -1
    FLAT = 0
    UP = 1

    @classmethod
    def coerce(cls, value: str | int | "InsightDirection") -> "InsightDirection":
        if isinstance(value, InsightDirection):
            return value
        if isinstance(value, int):
            return cls(value)
        v = str(value or "").strip().upper()
        if v in cls.__members__:
            return cls[v]
        try:
            return cls(int(v))
        except ValueError:
            raise ValueError(f"Unknown insight direction: {value!r}") from None


@dataclass(frozen=True, slots=True)
class Insight:
    """Directional recommendation for a single symbol.

    An insight is active while `close_utc > t` and expired once
    `close_utc <= t`. It is never mutated after creation; accumulation state
    lives in the portfolio layer.
    """

    symbol: str
    direction: InsightDirection
    generated_utc: datetime
    close_utc: datetime
    source_model: str | None = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __post_init__(self) -> None:
        if self.close_utc < self.generated_utc:
            raise ValueError(
                f"Insight for {self.symbol!r} closes before it is generated "
                f"({self.close_utc.isoformat()} < {self.generated_utc.isoformat()})"
            )

    def is_active(self, utc: datetime) -> bool:
        return self.close_utc > utc

    def is_expired(self, utc: datetime) -> bool:
        return self.close_utc <= utc
