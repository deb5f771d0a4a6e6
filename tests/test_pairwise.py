"""Tests for the pairwise arbitrage engine."""

import pytest

from arbscout.arb.active_set import ActiveSetManager
from arbscout.arb.pairwise import (
    PairwiseArbitrageEngine,
    best_opportunity,
    evaluate_pair,
    order_pair,
)
from arbscout.core.config import load_settings
from arbscout.domain.models import OpportunityKind, Quote, VenueKind
from arbscout.providers.base import NoTransferRestrictions
from conftest import BlockList, FakeVenue, make_market


def quote(venue, price, kind=VenueKind.CENTRALIZED):
    return Quote(venue=venue, symbol="ABC/USDT", price=price, volume=1_000_000, observed_at=0.0, venue_kind=kind)


class TestEvaluatePair:
    """Tests for the pairwise economics."""

    def test_reference_arithmetic(self):
        """100 / 105, A=100, rates 0.001: gross 5.00, fees 0.20, net 4.80."""
        opp = evaluate_pair("ABC", quote("a", 100.0), quote("b", 105.0), 100.0, 0.001, 0.001)

        assert opp.gross_difference_pct == pytest.approx(5.0)
        assert opp.gross_profit_amount == pytest.approx(5.0)
        assert opp.fees.total == pytest.approx(0.20)
        assert opp.net_profit_amount == pytest.approx(4.80)
        assert opp.net_profit_pct == pytest.approx(4.80)
        assert opp.kind == OpportunityKind.PAIRWISE

    def test_reportable_iff_threshold_met(self):
        opp = evaluate_pair("ABC", quote("a", 100.0), quote("b", 105.0), 100.0, 0.001, 0.001)
        assert opp.is_reportable(4.80)
        assert opp.is_reportable(3.0)
        assert not opp.is_reportable(4.81)

    def test_withdrawal_fee_converted_at_buy_price(self):
        opp = evaluate_pair("ABC", quote("a", 100.0), quote("b", 105.0), 100.0, 0.0, 0.0, withdrawal_fee=0.01)
        assert opp.fees.transfer_fee == pytest.approx(1.0)
        assert opp.net_profit_amount == pytest.approx(4.0)

    def test_fees_sum_to_total(self):
        opp = evaluate_pair(
            "ABC", quote("a", 100.0), quote("b", 110.0), 100.0, 0.002, 0.001,
            withdrawal_fee=0.005, network_fee=0.3,
        )
        f = opp.fees
        assert f.total == pytest.approx(f.entry_fee + f.exit_fee + f.transfer_fee + f.network_fee)
        assert opp.net_profit_amount == pytest.approx(opp.gross_profit_amount - f.total)

    def test_order_pair(self):
        low, high = quote("a", 100.0), quote("b", 105.0)
        assert order_pair(high, low) == (low, high)
        assert order_pair(low, high) == (low, high)


class TestPairwiseEngine:
    """Tests for PairwiseArbitrageEngine."""

    @pytest.fixture
    def venues(self):
        return [
            FakeVenue("binance", {"ABC/USDT": (100.0, 1_000_000)}),
            FakeVenue("okx", {"ABC/USDT": (105.0, 1_000_000)}),
        ]

    @pytest.mark.asyncio
    async def test_reports_and_records(self, venues, settings, clock):
        active_set = ActiveSetManager(clock=clock)
        engine = PairwiseArbitrageEngine(
            make_market(venues), NoTransferRestrictions(), active_set, settings, clock=clock,
        )

        found = await engine.find_for_symbol("ABC")

        assert len(found) == 1
        opp = found[0]
        assert (opp.buy_venue, opp.sell_venue) == ("binance", "okx")
        assert opp.net_profit_amount == pytest.approx(4.80)
        assert active_set.historical_stat("ABC").occurrence_count == 1

    @pytest.mark.asyncio
    async def test_blocked_buy_venue_emits_nothing(self, venues, settings, clock):
        active_set = ActiveSetManager(clock=clock)
        engine = PairwiseArbitrageEngine(
            make_market(venues), BlockList({("binance", "ABC")}), active_set, settings, clock=clock,
        )

        assert await engine.find_for_symbol("ABC") == []
        assert active_set.historical_stat("ABC") is None

    @pytest.mark.asyncio
    async def test_blocked_sell_venue_emits_nothing(self, venues, settings, clock):
        engine = PairwiseArbitrageEngine(
            make_market(venues), BlockList({("okx", "ABC")}), ActiveSetManager(clock=clock), settings,
        )
        assert await engine.find_for_symbol("ABC") == []

    @pytest.mark.asyncio
    async def test_below_threshold_not_reported(self, venues, clock):
        strict = load_settings(arbitrage_threshold=5.0, telegram_enabled=False)
        engine = PairwiseArbitrageEngine(
            make_market(venues), NoTransferRestrictions(), ActiveSetManager(clock=clock), strict,
        )
        assert await engine.find_for_symbol("ABC") == []

    @pytest.mark.asyncio
    async def test_needs_two_quotes(self, settings, clock):
        market = make_market([
            FakeVenue("binance", {"ABC/USDT": (100.0, 1_000_000)}),
            FakeVenue("okx", failing=True),
        ])
        engine = PairwiseArbitrageEngine(market, NoTransferRestrictions(), ActiveSetManager(clock=clock), settings)
        assert await engine.find_for_symbol("ABC") == []

    @pytest.mark.asyncio
    async def test_network_fee_only_for_decentralized(self, settings, clock):
        market = make_market(
            [
                FakeVenue("binance", {"ABC/USDT": (100.0, 1_000_000)}, fee_rate=0.0),
                FakeVenue("uniswap", {"ABC/USDT": (110.0, 1_000_000)}, fee_rate=0.0, kind=VenueKind.DECENTRALIZED),
            ],
            config={"quotas": {"enabled": False}, "network_fees": {"uniswap": 2.5, "binance": 9.0}},
        )
        engine = PairwiseArbitrageEngine(market, NoTransferRestrictions(), ActiveSetManager(clock=clock), settings)

        found = await engine.find_for_symbol("ABC")

        assert found[0].fees.network_fee == pytest.approx(2.5)

    @pytest.mark.asyncio
    async def test_scan_isolates_symbols(self, settings, clock):
        market = make_market([
            FakeVenue("binance", {"ABC/USDT": (100.0, 1), "XYZ/USDT": (10.0, 1)}),
            FakeVenue("okx", {"ABC/USDT": (105.0, 1), "XYZ/USDT": (11.0, 1)}),
        ])
        engine = PairwiseArbitrageEngine(market, NoTransferRestrictions(), ActiveSetManager(clock=clock), settings)

        found = await engine.scan(["ABC", "MISSING", "XYZ"])

        assert sorted(o.symbol for o in found) == ["ABC", "XYZ"]
        assert best_opportunity(found).symbol == "XYZ"

    @pytest.mark.asyncio
    async def test_scan_empty(self, settings, clock):
        engine = PairwiseArbitrageEngine(make_market([]), NoTransferRestrictions(), ActiveSetManager(clock=clock), settings)
        assert await engine.scan([]) == []
