from __future__ import annotations

import logging

from cumulus.shared.config import load_config, AppConfig
from cumulus.adapters.csv.insights_csv import CsvInsightSource
from cumulus.adapters.csv.market_data_csv import CsvMarketData
from cumulus.adapters.paper.account_paper import PaperAccount
from cumulus.adapters.telemetry.console import ConsoleTelemetrySink
from cumulus.application.telemetry.hub import TelemetryHub

from cumulus.application.plugins import registry as _registry
from cumulus.application.construction.result import ConstructionRunResult
from cumulus.application.construction.service import TargetConstructionService
from cumulus.application.runmodes.replay import run_replay
from cumulus.application.services.target_materializer import TargetMaterializer
from cumulus.domain.market.entities import AssetClass, Instrument, Symbol

_log = logging.getLogger(__name__)


def run_app(config_path: str) -> list[ConstructionRunResult]:
    cfg = load_config(config_path)

    # Telemetry must be available as early as possible (e.g. plugin discovery).
    telemetry = _build_telemetry(cfg)

    # Discover all construction models
    _registry.auto_discover(telemetry)

    try:
        replay = cfg.application.replay
        if not replay.insights_path or not replay.prices_path:
            raise SystemExit("Replay needs application.replay.insights_path and prices_path")

        market_data = CsvMarketData(replay.prices_path)
        insights = CsvInsightSource(replay.insights_path)
        account = PaperAccount(equity=cfg.application.account.equity)

        portfolio_cfg = cfg.application.portfolio
        model = _registry.build_construction_model(
            portfolio_cfg.construction_model,
            percent=portfolio_cfg.percent,
        )

        service = TargetConstructionService(
            model=model,
            materializer=TargetMaterializer(
                market_data=market_data,
                instruments=_build_instruments(cfg),
                timeframe=cfg.timeframe,
                lookback_days=cfg.lookback_days,
            ),
            account=account,
            telemetry=telemetry,
        )

        run_mode = (cfg.application.run_mode.name or "").lower()
        if run_mode == "replay":
            results = run_replay(cfg, insights, service, telemetry=telemetry)
        else:
            raise SystemExit(f"Unknown run_mode: {run_mode}")
        _log.info("replay finished: %d passes, %d insights", len(results), len(insights))
        return results
    finally:
        telemetry.close()


def _build_instruments(cfg: AppConfig) -> dict[str, Instrument]:
    out: dict[str, Instrument] = {}
    for ic in cfg.application.instruments:
        try:
            asset_class = AssetClass(ic.asset_class.lower())
        except ValueError:
            asset_class = AssetClass.OTHER
        out[ic.symbol] = Instrument(
            symbol=Symbol(ic.symbol),
            asset_class=asset_class,
            currency=ic.currency,
            lot_size=ic.lot_size,
            min_volume=ic.min_volume,
            volume_step=ic.volume_step,
        )
    return out


def _build_telemetry(cfg: AppConfig) -> TelemetryHub:
    sinks = []
    telemetry_cfg = cfg.telemetry

    if bool(telemetry_cfg.console_enabled):
        sinks.append(
            ConsoleTelemetrySink(
                enabled_flag=True,
                channels=set(telemetry_cfg.console_channels or ["ops"]),
                min_level=telemetry_cfg.console_min_level,
            )
        )

    return TelemetryHub(sinks=sinks)
