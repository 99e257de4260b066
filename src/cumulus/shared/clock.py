from __future__ import annotations
from datetime import datetime, timezone

def as_utc(ts: datetime) -> datetime:
    """Naive timestamps are taken as UTC; aware ones are converted."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)
