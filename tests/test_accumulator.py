from __future__ import annotations

import unittest
from datetime import datetime, timedelta, timezone

import pathlib
import sys

ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from cumulus.domain.portfolio.accumulator import WeightAccumulator, WeightTableInconsistencyError
from cumulus.domain.signals.entities import Insight, InsightDirection

T0 = datetime(2024, 1, 2, 9, 0, tzinfo=timezone.utc)


def _insight(symbol: str, direction: InsightDirection, minutes: int = 0, ttl_minutes: int = 60) -> Insight:
    gen = T0 + timedelta(minutes=minutes)
    return Insight(symbol=symbol, direction=direction, generated_utc=gen, close_utc=gen + timedelta(minutes=ttl_minutes))


class TestActivation(unittest.TestCase):
    def test_up_then_up_accumulates_without_ceiling(self) -> None:
        acc = WeightAccumulator(0.03)
        first = acc.apply_activation(_insight("AAA", InsightDirection.UP))
        second = acc.apply_activation(_insight("AAA", InsightDirection.UP, minutes=5))

        self.assertAlmostEqual(0.03, first.weight)
        self.assertAlmostEqual(0.06, second.weight)
        self.assertEqual("activated", second.reason)

        for i in range(40):
            acc.apply_activation(_insight("AAA", InsightDirection.UP, minutes=10 + i))
        self.assertAlmostEqual(0.03 * 42, acc.weight_of("AAA"))

    def test_down_goes_negative(self) -> None:
        acc = WeightAccumulator(0.03)
        upd = acc.apply_activation(_insight("BBB", InsightDirection.DOWN))
        self.assertAlmostEqual(-0.03, upd.weight)

    def test_same_insight_applied_once(self) -> None:
        acc = WeightAccumulator(0.03)
        ins = _insight("AAA", InsightDirection.UP)

        self.assertIsNotNone(acc.apply_activation(ins))
        before = acc.weights()
        self.assertIsNone(acc.apply_activation(ins))
        self.assertIsNone(acc.apply_activation(ins))
        self.assertEqual(before, acc.weights())
        self.assertTrue(acc.was_activated(ins))

    def test_flat_snaps_to_zero_when_within_one_step(self) -> None:
        acc = WeightAccumulator(0.03)
        acc._weights["AAA"] = 0.02  # seed a partial weight
        upd = acc.apply_activation(_insight("AAA", InsightDirection.FLAT))
        self.assertEqual(0.0, upd.weight)

    def test_flat_moves_one_step_towards_zero(self) -> None:
        acc = WeightAccumulator(0.03)
        acc._weights["AAA"] = 0.05
        acc._weights["BBB"] = -0.05
        self.assertAlmostEqual(0.02, acc.apply_activation(_insight("AAA", InsightDirection.FLAT)).weight)
        self.assertAlmostEqual(-0.02, acc.apply_activation(_insight("BBB", InsightDirection.FLAT)).weight)

    def test_flat_on_unknown_symbol_stays_zero(self) -> None:
        acc = WeightAccumulator(0.03)
        upd = acc.apply_activation(_insight("ZZZ", InsightDirection.FLAT))
        self.assertEqual(0.0, upd.weight)
        self.assertEqual({"ZZZ": 0.0}, acc.weights())

    def test_negative_percent_is_normalised(self) -> None:
        acc = WeightAccumulator(-0.05)
        self.assertEqual(0.05, acc.percent)
        upd = acc.apply_activation(_insight("AAA", InsightDirection.UP))
        self.assertAlmostEqual(0.05, upd.weight)

    def test_untouched_symbol_has_zero_weight(self) -> None:
        acc = WeightAccumulator()
        self.assertEqual(0.03, acc.percent)
        self.assertEqual(0.0, acc.weight_of("NOPE"))
        self.assertEqual({}, acc.weights())


class TestExpiry(unittest.TestCase):
    def test_down_activation_then_expiry_restores_weight(self) -> None:
        acc = WeightAccumulator(0.03)
        ins = _insight("BBB", InsightDirection.DOWN)
        acc.apply_activation(ins)
        upd = acc.apply_expiry(ins)
        self.assertEqual(0.0, upd.weight)
        self.assertEqual("expired", upd.reason)
        self.assertIs(ins, upd.insight)

    def test_expiry_reverses_one_step(self) -> None:
        acc = WeightAccumulator(0.03)
        a = _insight("AAA", InsightDirection.UP)
        b = _insight("AAA", InsightDirection.UP, minutes=1)
        acc.apply_activation(a)
        acc.apply_activation(b)
        self.assertAlmostEqual(0.03, acc.apply_expiry(a).weight)

    def test_expiry_snaps_instead_of_crossing_zero(self) -> None:
        acc = WeightAccumulator(0.03)
        up = _insight("AAA", InsightDirection.UP)
        acc.apply_activation(up)
        acc._weights["AAA"] = 0.01
        self.assertEqual(0.0, acc.apply_expiry(up).weight)

    def test_flat_expiry_leaves_weight_unchanged(self) -> None:
        # Flat expiries do not decay the weight, unlike Flat activations.
        acc = WeightAccumulator(0.03)
        acc.apply_activation(_insight("AAA", InsightDirection.UP))
        acc.apply_activation(_insight("AAA", InsightDirection.UP, minutes=1))
        flat = _insight("AAA", InsightDirection.FLAT, minutes=2)
        acc.apply_activation(flat)
        self.assertAlmostEqual(0.03, acc.weight_of("AAA"))

        upd = acc.apply_expiry(flat)
        self.assertAlmostEqual(0.03, upd.weight)

    def test_flat_expiry_near_zero_is_not_snapped(self) -> None:
        acc = WeightAccumulator(0.03)
        flat = _insight("AAA", InsightDirection.FLAT)
        acc.apply_activation(flat)
        acc._weights["AAA"] = 0.01
        self.assertAlmostEqual(0.01, acc.apply_expiry(flat).weight)

    def test_expiry_applied_once(self) -> None:
        acc = WeightAccumulator(0.03)
        ins = _insight("AAA", InsightDirection.UP)
        acc.apply_activation(ins)
        acc.apply_activation(_insight("AAA", InsightDirection.UP, minutes=1))
        self.assertIsNotNone(acc.apply_expiry(ins))
        self.assertIsNone(acc.apply_expiry(ins))
        self.assertAlmostEqual(0.03, acc.weight_of("AAA"))
        self.assertTrue(acc.was_expired(ins))

    def test_expiry_without_weight_is_fatal(self) -> None:
        acc = WeightAccumulator(0.03)
        ins = _insight("GHOST", InsightDirection.UP)
        with self.assertRaises(WeightTableInconsistencyError):
            acc.apply_expiry(ins)
        self.assertFalse(acc.was_expired(ins))
        self.assertEqual({}, acc.weights())


class TestFlatten(unittest.TestCase):
    def test_flatten_forces_zero_and_keeps_entry(self) -> None:
        acc = WeightAccumulator(0.03)
        acc.apply_activation(_insight("AAA", InsightDirection.UP))
        upd = acc.flatten("AAA")
        self.assertEqual(("AAA", 0.0, "removed", None), (upd.symbol, upd.weight, upd.reason, upd.insight))
        self.assertEqual({"AAA": 0.0}, acc.weights())

    def test_weights_is_a_copy(self) -> None:
        acc = WeightAccumulator(0.03)
        acc.apply_activation(_insight("AAA", InsightDirection.UP))
        snapshot = acc.weights()
        snapshot["AAA"] = 9.0
        self.assertAlmostEqual(0.03, acc.weight_of("AAA"))


if __name__ == "__main__":
    unittest.main()
