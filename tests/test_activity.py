"""Tests for the activity scanner."""

import pytest

from arbscout.arb.activity import ActivityScanner, format_volume
from arbscout.core.errors import ConfigurationError
from arbscout.domain.models import AdmissionReason, VolumeSample
from conftest import FakeVenue, make_market

NO_DELAY = {"scanner": {"batch_delay_seconds": 0}}


def sample(symbol, current, average, venue_volumes=None):
    return VolumeSample(
        symbol=symbol,
        current_volume=current,
        rolling_average_volume=average,
        spike_ratio=current / average,
        observed_at=0.0,
        venue_volumes=venue_volumes or {},
    )


class TestClassification:
    """Tests for anomaly classification."""

    @pytest.fixture
    def scanner(self, settings, clock):
        return ActivityScanner(make_market([]), settings, NO_DELAY, clock=clock)

    def test_volume_spike(self, scanner):
        """avg 100k, current 350k, threshold 3, min 200k: spike."""
        s = sample("PEPE", 350_000, 100_000)
        assert scanner.is_volume_spike(s)
        proposals = scanner.classify([s])
        assert [(p.symbol, p.reason) for p in proposals] == [("PEPE", AdmissionReason.VOLUME_SPIKE)]

    def test_spike_below_min_volume(self, scanner):
        s = sample("DUST", 150_000, 10_000)
        assert not scanner.is_volume_spike(s)
        assert scanner.classify([s]) == []

    def test_high_volume(self, scanner):
        """current >= 2 x min volume without a spike."""
        s = sample("BTC", 400_000, 400_000)
        proposals = scanner.classify([s])
        assert [p.reason for p in proposals] == [AdmissionReason.HIGH_VOLUME]

    def test_disparity(self, scanner):
        s = sample("ABC", 100_000, 100_000, {"binance": 90_000, "okx": 10_000})
        proposals = scanner.classify([s])
        assert [p.reason for p in proposals] == [AdmissionReason.CROSS_VENUE_DISPARITY]

    def test_disparity_needs_two_venues(self, scanner):
        s = sample("ABC", 100_000, 100_000, {"binance": 100_000})
        assert scanner.disparity_ratio(s) is None
        assert scanner.classify([s]) == []

    def test_classification_order(self, scanner):
        """Spike proposals come before high-volume ones for the same symbol."""
        s = sample("PEPE", 900_000, 100_000)
        reasons = [p.reason for p in scanner.classify([s])]
        assert reasons == [AdmissionReason.VOLUME_SPIKE, AdmissionReason.HIGH_VOLUME]


class TestSampling:
    """Tests for volume sampling and the rolling window."""

    @pytest.mark.asyncio
    async def test_sums_volume_across_venues(self, settings, clock):
        market = make_market([
            FakeVenue("binance", {"BTC/USDT": (100.0, 300_000)}),
            FakeVenue("okx", {"BTC/USDT": (100.0, 100_000)}),
        ])
        scanner = ActivityScanner(market, settings, NO_DELAY, clock=clock)

        result = await scanner.sample_symbol("BTC")

        assert result.current_volume == 400_000
        assert result.venue_volumes == {"binance": 300_000, "okx": 100_000}
        assert result.spike_ratio == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_failed_venue_contributes_nothing(self, settings, clock):
        market = make_market([
            FakeVenue("binance", {"BTC/USDT": (100.0, 300_000)}),
            FakeVenue("okx", failing=True),
        ])
        scanner = ActivityScanner(market, settings, NO_DELAY, clock=clock)

        result = await scanner.sample_symbol("BTC")

        assert result.current_volume == 300_000

    @pytest.mark.asyncio
    async def test_zero_volume_yields_no_sample(self, settings, clock):
        market = make_market([FakeVenue("binance", failing=True)])
        scanner = ActivityScanner(market, settings, NO_DELAY, clock=clock)
        assert await scanner.scan(["BTC", "ETH"]) == []

    @pytest.mark.asyncio
    async def test_rolling_window_includes_current(self, settings, clock):
        venue = FakeVenue("binance", {"X/USDT": (1.0, 100_000)})
        market = make_market([venue], clock=clock)
        scanner = ActivityScanner(market, settings, NO_DELAY, clock=clock)

        await scanner.sample_symbol("X")
        clock.advance(60)
        venue.book["X/USDT"] = (1.0, 500_000)
        result = await scanner.sample_symbol("X")

        assert scanner.history("X") == [100_000, 500_000]
        assert result.rolling_average_volume == pytest.approx(300_000)
        assert result.spike_ratio == pytest.approx(500_000 / 300_000)

    @pytest.mark.asyncio
    async def test_window_is_bounded(self, settings, clock):
        venue = FakeVenue("binance", {"X/USDT": (1.0, 1_000)})
        market = make_market([venue], clock=clock)
        config = {"scanner": {"batch_delay_seconds": 0, "history_window": 3}}
        scanner = ActivityScanner(market, settings, config, clock=clock)

        for _ in range(5):
            await scanner.sample_symbol("X")
            clock.advance(60)

        assert len(scanner.history("X")) == 3

    @pytest.mark.asyncio
    async def test_scan_batches_all_symbols(self, settings, clock):
        book = {f"S{i}/USDT": (1.0, 10_000) for i in range(7)}
        market = make_market([FakeVenue("binance", book)])
        config = {"scanner": {"batch_size": 3, "batch_delay_seconds": 0}}
        scanner = ActivityScanner(market, settings, config, clock=clock)

        samples = await scanner.scan([f"S{i}" for i in range(7)])

        assert sorted(s.symbol for s in samples) == sorted(f"S{i}" for i in range(7))

    def test_invalid_batch_size(self, settings):
        with pytest.raises(ConfigurationError):
            ActivityScanner(make_market([]), settings, {"scanner": {"batch_size": 0}})

    @pytest.mark.parametrize("scanner_config", [
        {"history_window": 0},
        {"history_window": -3},
        {"batch_delay_seconds": -1},
        {"volume_venues": "all"},
    ])
    def test_invalid_scanner_values(self, settings, scanner_config):
        with pytest.raises(ConfigurationError):
            ActivityScanner(make_market([]), settings, {"scanner": scanner_config})

    @pytest.mark.asyncio
    async def test_zero_batch_delay_allowed(self, settings, clock):
        market = make_market([FakeVenue("binance", {"BTC/USDT": (100.0, 1_000_000)})])
        scanner = ActivityScanner(market, settings, NO_DELAY, clock=clock)

        assert scanner.batch_delay == 0
        assert len(await scanner.scan(["BTC"])) == 1


def test_format_volume():
    assert format_volume(1_250_000) == "$1.25M"
    assert format_volume(2_500) == "$2.50K"
    assert format_volume(12) == "$12.00"
