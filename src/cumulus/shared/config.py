from __future__ import annotations
from datetime import datetime
from pydantic import BaseModel
from typing import Optional
import os, yaml
from dotenv import load_dotenv

class PortfolioCfg(BaseModel):
    construction_model: str = "accumulative"   # plugin name
    percent: float = 0.03                      # step per insight; sign is ignored

class InstrumentCfg(BaseModel):
    symbol: str
    asset_class: str = "equity"    # 'equity' | 'future' | 'fx' | 'other'
    currency: str = "USD"
    lot_size: float = 1.0
    min_volume: float = 0.0
    volume_step: float = 1.0

class RemovalCfg(BaseModel):
    symbol: str
    at: datetime

class ReplayCfg(BaseModel):
    insights_path: Optional[str] = None
    prices_path: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    step_minutes: int = 60
    removals: list[RemovalCfg] = []

class AccountCfg(BaseModel):
    equity: float = 100_000.0

class RunMode(BaseModel):
    name: str = "replay"

class ApplicationCfg(BaseModel):
    run_mode: RunMode = RunMode()
    portfolio: PortfolioCfg = PortfolioCfg()
    replay: ReplayCfg = ReplayCfg()
    account: AccountCfg = AccountCfg()
    instruments: list[InstrumentCfg] = []

class TelemetryCfg(BaseModel):
    console_enabled: bool = True
    console_channels: list[str] = ["ops"]
    console_min_level: str = "INFO"

class AppConfig(BaseModel):
    timeframe: str = "H1"
    lookback_days: int = 5
    application: ApplicationCfg = ApplicationCfg()
    telemetry: TelemetryCfg = TelemetryCfg()

def load_config(path: str) -> AppConfig:
    load_dotenv(override=False)
    import pathlib
    p = pathlib.Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    app = raw.setdefault("application", {}) or {}
    raw["application"] = app
    replay = app.setdefault("replay", {}) or {}
    account = app.setdefault("account", {}) or {}

    def coalesce(yaml_val, env_val):
        return env_val if (yaml_val in (None, "", 0) and env_val not in (None, "")) else yaml_val

    env_insights = os.getenv("CUMULUS_INSIGHTS_PATH")
    env_prices   = os.getenv("CUMULUS_PRICES_PATH")
    env_equity   = os.getenv("CUMULUS_EQUITY")

    replay["insights_path"] = coalesce(replay.get("insights_path"), env_insights)
    replay["prices_path"]   = coalesce(replay.get("prices_path"),   env_prices)
    if env_equity:
        account["equity"]   = coalesce(account.get("equity"),       float(env_equity))

    # relative data paths resolve against the config file's directory
    for key in ("insights_path", "prices_path"):
        val = replay.get(key)
        if val and not pathlib.Path(val).is_absolute():
            replay[key] = str((p.parent / val).resolve())

    app["replay"] = replay
    app["account"] = account
    return AppConfig.model_validate(raw)
