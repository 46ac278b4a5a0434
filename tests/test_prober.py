"""prober モジュールのユニットテスト."""

import threading
import time

from min_price.models import Option, PriceQuote
from min_price.prober import MinimumSelector, fallback_probe, probe_combinations, with_baseline


class FakeClient:
    """VendorClient.quote の代用。呼び出しの開始・終了順を記録する."""

    def __init__(self, prices=None, delay=0.0):
        self.prices = prices or {}
        self.delay = delay
        self.calls = []
        self.events = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def quote(self, vendor_product_id, option_ids):
        options = tuple(option_ids)
        with self._lock:
            self.calls.append(options)
            self.events.append(("start", options))
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        time.sleep(self.delay)
        with self._lock:
            self.in_flight -= 1
            self.events.append(("end", options))
        price = self.prices.get(options)
        return PriceQuote(options, price) if price else None


class TestMinimumSelector:
    """MinimumSelector のテスト."""

    def test_initially_unresolved(self):
        selector = MinimumSelector()
        assert not selector.resolved
        assert selector.best is None

    def test_keeps_lowest(self):
        selector = MinimumSelector()
        selector.offer(PriceQuote((1, 2), 900))
        selector.offer(PriceQuote((1, 3), 450))
        selector.offer(PriceQuote((1, 4), 700))

        assert selector.best == PriceQuote((1, 3), 450)

    def test_tie_keeps_first(self):
        selector = MinimumSelector()
        assert selector.offer(PriceQuote((1, 2), 500))
        assert not selector.offer(PriceQuote((1, 3), 500))

        assert selector.best.combination == (1, 2)

    def test_ignores_none_and_zero(self):
        selector = MinimumSelector()
        selector.offer(None)
        selector.offer(PriceQuote((1,), 0))

        assert not selector.resolved


class TestProbeCombinations:
    """probe_combinations のテスト."""

    def test_prefixes_baseline_quantity(self):
        client = FakeClient(prices={(2, 11): 300, (2, 12): 250})
        selector = MinimumSelector()

        succeeded = probe_combinations(client, "101", 2, [(11,), (12,), (13,)], selector)

        assert sorted(client.calls) == [(2, 11), (2, 12), (2, 13)]
        assert succeeded == 2
        assert selector.best == PriceQuote((2, 12), 250)

    def test_without_baseline(self):
        client = FakeClient(prices={(11,): 300})
        selector = MinimumSelector()

        probe_combinations(client, "101", None, [(11,)], selector)

        assert client.calls == [(11,)]
        assert selector.best.combination == (11,)

    def test_waves_settle_before_next(self):
        """次のウェーブは前のウェーブが全て終わってから始まること."""
        combos = [(i,) for i in range(7)]
        client = FakeClient(delay=0.02)

        probe_combinations(client, "101", None, combos, MinimumSelector(), wave_size=3)

        assert client.max_in_flight <= 3
        waves = [set(combos[i:i + 3]) for i in range(0, len(combos), 3)]
        position = {event: idx for idx, event in enumerate(client.events)}
        for current, following in zip(waves, waves[1:]):
            last_end = max(position[("end", c)] for c in current)
            first_start = min(position[("start", c)] for c in following)
            assert last_end < first_start

    def test_tie_broken_by_input_order(self):
        client = FakeClient(prices={(5, 1): 100, (5, 2): 100}, delay=0.01)
        selector = MinimumSelector()

        probe_combinations(client, "101", 5, [(1,), (2,)], selector)

        assert selector.best.combination == (5, 1)

    def test_no_combinations(self):
        client = FakeClient()
        selector = MinimumSelector()

        assert probe_combinations(client, "101", 2, [], selector) == 0
        assert client.calls == []


class TestFallbackProbe:
    """fallback_probe のテスト."""

    def test_baseline_and_first_size(self):
        groups = {"size": [Option(11, "S"), Option(12, "M")], "color": [Option(21, "red")]}
        client = FakeClient(prices={(2, 11): 880})
        selector = MinimumSelector()

        assert fallback_probe(client, "101", 2, groups, selector)
        assert client.calls == [(2, 11)]
        assert selector.best == PriceQuote((2, 11), 880)

    def test_no_size_group_skips_fallback(self):
        """size グループが無ければ数量だけで問い合わせないこと."""
        client = FakeClient(prices={(2,): 1500})
        selector = MinimumSelector()

        assert not fallback_probe(client, "101", 2, {"qty": [Option(2, "10")]}, selector)
        assert client.calls == []
        assert not selector.resolved

    def test_no_quantity_skips_fallback(self):
        client = FakeClient(prices={(11,): 700})
        selector = MinimumSelector()

        assert not fallback_probe(client, "101", None, {"size": [Option(11, "S")]}, selector)
        assert client.calls == []

    def test_probes_exactly_once(self):
        groups = {"size": [Option(11, "S"), Option(12, "M")]}
        client = FakeClient()
        selector = MinimumSelector()

        assert not fallback_probe(client, "101", 2, groups, selector)
        assert client.calls == [(2, 11)]
        assert not selector.resolved

    def test_nothing_to_probe(self):
        client = FakeClient()

        assert not fallback_probe(client, "101", None, {"color": [Option(21, "red")]}, MinimumSelector())
        assert client.calls == []


class TestWithBaseline:
    def test_prefix(self):
        assert with_baseline(7, (1, 2)) == (7, 1, 2)
        assert with_baseline(None, (1, 2)) == (1, 2)
