from __future__ import annotations

import logging
from typing import Any, Dict, Type

from cumulus.domain.portfolio.construction.base import BaseConstructionModel
from cumulus.ports.telemetry import TelemetryLevel, TelemetryPort

_log = logging.getLogger(__name__)

CONSTRUCTION_MODELS: Dict[str, Type[BaseConstructionModel]] = {}


def register_construction_model(*, name: str, tags: set[str]):
    """
    Register a portfolio construction model class.

    Construction models keep state between runs, so the registry stores the
    class and `build_construction_model` creates a fresh instance per run.
    """
    def deco(cls):
        cls.name = name
        cls.tags = tags
        CONSTRUCTION_MODELS[name] = cls
        return cls
    return deco


def build_construction_model(name: str, **options: Any) -> BaseConstructionModel:
    cls = CONSTRUCTION_MODELS.get(name)
    if cls is None:
        available = ", ".join(sorted(CONSTRUCTION_MODELS.keys()))
        raise RuntimeError(f"Construction model not found: {name!r}. Available models: {available}")
    return cls(**options)


def auto_discover(telemetry: TelemetryPort | None = None) -> None:
    """
    Import all plugin modules so that their decorators run and fill the
    registry above. This is called once during application startup.
    """
    import importlib
    import pkgutil

    from cumulus.application.telemetry.run_context import RunTelemetry

    t = RunTelemetry(port=telemetry, run_id="bootstrap", base_scope={"component": "plugins"})

    bases = ("cumulus.domain.portfolio.construction",)

    for base in bases:
        try:
            pkg = importlib.import_module(base)
        except ImportError as e:
            _log.warning("plugin base import failed: %s -> %s", base, e)
            continue

        pkg_path = getattr(pkg, "__path__", None)
        if not pkg_path:
            continue

        for mod in pkgutil.walk_packages(pkg_path, pkg.__name__ + "."):
            try:
                importlib.import_module(mod.name)
            except ImportError as e:
                _log.warning("plugin import failed: %s -> %s", mod.name, e)
                t.emit(
                    name="plugins.import_failed",
                    channel="ops",
                    level=TelemetryLevel.WARN,
                    payload={"module": mod.name, "message": str(e)},
                )

    t.emit(
        name="plugins.discovered",
        channel="ops",
        level=TelemetryLevel.INFO,
        payload={"construction_models": sorted(CONSTRUCTION_MODELS.keys())},
    )
