from .event_factory import make_event
from .hub import TelemetryHub
from .run_context import RunContext, RunTelemetry

__all__ = [
    "make_event",
    "TelemetryHub",
    "RunContext",
    "RunTelemetry",
]
