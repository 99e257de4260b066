from __future__ import annotations

import os
import tempfile
import unittest
from datetime import datetime, timezone
from unittest import mock

import pathlib
import sys

ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from cumulus.adapters.csv.insights_csv import CsvInsightSource
from cumulus.adapters.csv.market_data_csv import CsvMarketData
from cumulus.adapters.paper.account_paper import PaperAccount
from cumulus.adapters.telemetry.memory import InMemoryTelemetrySink
from cumulus.application.construction.service import TargetConstructionService
from cumulus.application.runmodes.replay import build_time_grid, run_replay
from cumulus.application.services.target_materializer import TargetMaterializer
from cumulus.application.telemetry.hub import TelemetryHub
from cumulus.bootstrap.main import _build_instruments, run_app
from cumulus.domain.portfolio.construction.accumulative import AccumulativeConstructionModel
from cumulus.domain.signals.entities import InsightDirection
from cumulus.ports.telemetry import TelemetryLevel
from cumulus.shared.config import load_config

DEMO = ROOT / "configs" / "demo.yaml"


def _utc(hour: int, minute: int = 0) -> datetime:
    return datetime(2024, 1, 2, hour, minute, tzinfo=timezone.utc)


class TestTimeGrid(unittest.TestCase):
    def test_grid_includes_end(self) -> None:
        grid = build_time_grid(_utc(9), _utc(10, 30), 60)
        self.assertEqual([_utc(9), _utc(10), _utc(10, 30)], grid)

    def test_naive_times_are_utc(self) -> None:
        grid = build_time_grid(datetime(2024, 1, 2, 9), datetime(2024, 1, 2, 9), 15)
        self.assertEqual([_utc(9)], grid)

    def test_end_before_start(self) -> None:
        with self.assertRaises(ValueError):
            build_time_grid(_utc(10), _utc(9), 60)


class TestCsvAdapters(unittest.TestCase):
    def test_insights_window_is_half_open(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=True):
            cfg = load_config(str(DEMO))
        source = CsvInsightSource(cfg.application.replay.insights_path)
        self.assertEqual(5, len(source))

        first = source.insights_between(None, _utc(10))
        self.assertEqual(["aaa-1", "bbb-1", "ccc-1"], [i.id for i in first])
        self.assertIs(InsightDirection.UP, first[0].direction)
        self.assertEqual("momentum", first[0].source_model)
        self.assertEqual(["aaa-2"], [i.id for i in source.insights_between(_utc(10), _utc(11))])

    def test_market_data_filters_by_symbol_and_window(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=True):
            cfg = load_config(str(DEMO))
        md = CsvMarketData(cfg.application.replay.prices_path)
        self.assertEqual(["AAA", "BBB", "CCC"], md.symbols())
        bars = md.get_bars("BBB", "H1", _utc(10), _utc(12))
        self.assertEqual(3, len(bars))
        self.assertAlmostEqual(50.3, float(bars["close"].iloc[-1]))

    def test_missing_columns_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = pathlib.Path(tmp) / "bad.csv"
            path.write_text("symbol,direction\nAAA,up\n", encoding="utf-8")
            with self.assertRaises(ValueError):
                CsvInsightSource(path)


class TestReplay(unittest.TestCase):
    def setUp(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=True):
            self.cfg = load_config(str(DEMO))
        replay = self.cfg.application.replay
        self.sink = InMemoryTelemetrySink(channels={"audit", "ops"})
        self.hub = TelemetryHub(sinks=[self.sink])
        self.service = TargetConstructionService(
            model=AccumulativeConstructionModel(percent=self.cfg.application.portfolio.percent),
            materializer=TargetMaterializer(
                market_data=CsvMarketData(replay.prices_path),
                instruments=_build_instruments(self.cfg),
                timeframe=self.cfg.timeframe,
                lookback_days=self.cfg.lookback_days,
            ),
            account=PaperAccount(equity=self.cfg.application.account.equity),
            telemetry=self.hub,
        )
        self.source = CsvInsightSource(replay.insights_path)

    def test_demo_replay(self) -> None:
        results = run_replay(self.cfg, self.source, self.service, telemetry=self.hub)
        self.assertEqual(10, len(results))

        by_hour = {r.context.reference_utc.hour: r for r in results}
        self.assertEqual(
            [("AAA", 0.03), ("BBB", -0.03), ("CCC", 0.03)],
            [(u.symbol, round(u.weight, 10)) for u in by_hour[10].updates],
        )
        self.assertEqual(
            {"AAA": 29.0, "BBB": -59.0, "CCC": 140.0},
            {t.symbol: t.quantity for t in by_hour[10].targets},
        )
        self.assertAlmostEqual(0.06, by_hour[11].final_weights()["AAA"])

        # 12:00 is the next expiry itself, so nothing is evaluated there
        self.assertTrue(by_hour[12].short_circuited)
        self.assertEqual(
            [("CCC", "removed"), ("BBB", "expired")],
            [(u.symbol, u.reason) for u in by_hour[13].updates],
        )
        self.assertEqual({"CCC": 0.0, "BBB": 0.0}, by_hour[13].final_weights())
        self.assertTrue(by_hour[14].short_circuited)
        self.assertEqual([0.03, 0.0], [round(u.weight, 10) for u in by_hour[15].updates])
        self.assertEqual([("AAA", 0.0, "activated")], [(u.symbol, u.weight, u.reason) for u in by_hour[16].updates])
        self.assertEqual([("AAA", 0.0, "expired")], [(u.symbol, u.weight, u.reason) for u in by_hour[18].updates])

        removed = self.sink.named("universe.removed")
        self.assertEqual([["CCC"]], [e.payload["symbols"] for e in removed])
        self.assertEqual(0, sum(len(r.failures) for r in results))

    def test_insights_closed_before_their_tick_are_dropped(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = pathlib.Path(tmp) / "insights.csv"
            path.write_text(
                "id,symbol,direction,generated_utc,close_utc\n"
                "short-aaa,AAA,down,2024-01-02T09:10:00Z,2024-01-02T09:40:00Z\n"
                "short-bbb,BBB,up,2024-01-02T09:05:00Z,2024-01-02T09:35:00Z\n"
                "long-aaa,AAA,up,2024-01-02T09:20:00Z,2024-01-02T11:00:00Z\n",
                encoding="utf-8",
            )
            source = CsvInsightSource(path)

        replay = self.cfg.application.replay
        replay.end = _utc(11)
        replay.removals = []
        results = run_replay(self.cfg, source, self.service, telemetry=self.hub)

        self.assertEqual(3, len(results))
        self.assertEqual(
            [("AAA", 0.03, "activated")],
            [(u.symbol, round(u.weight, 10), u.reason) for u in results[1].updates],
        )
        self.assertTrue(results[2].short_circuited)
        self.assertEqual({"AAA": 0.03}, {k: round(v, 10) for k, v in self.service.model.weights().items()})

        dropped = self.sink.named("insight.expired_before_tick")
        self.assertEqual(["short-aaa", "short-bbb"], [e.payload["insight_id"] for e in dropped])
        self.assertTrue(all(e.level == TelemetryLevel.WARN and e.channel == "ops" for e in dropped))
        self.assertEqual(["AAA", "BBB"], [e.scope["symbol"] for e in dropped])

    def test_replay_requires_window(self) -> None:
        self.cfg.application.replay.start = None
        with self.assertRaises(RuntimeError):
            run_replay(self.cfg, self.source, self.service)


class TestBootstrap(unittest.TestCase):
    def test_run_app_on_demo_config(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            cfg_path = pathlib.Path(tmp) / "demo.yaml"
            text = DEMO.read_text(encoding="utf-8")
            text = text.replace("../data/demo/", str(ROOT / "data" / "demo") + "/")
            text = text.replace("console_enabled: true", "console_enabled: false")
            cfg_path.write_text(text, encoding="utf-8")

            with mock.patch.dict(os.environ, {}, clear=True):
                results = run_app(str(cfg_path))

        self.assertEqual(10, len(results))
        final: dict[str, float] = {}
        for r in results:
            final.update(r.final_weights())
        self.assertEqual({"AAA": 0.0, "BBB": 0.0, "CCC": 0.0}, {k: round(v, 10) for k, v in final.items()})


if __name__ == "__main__":
    unittest.main()
