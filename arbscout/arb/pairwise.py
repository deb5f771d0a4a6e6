"""
Pairwise (cross-venue) arbitrage engine.

For every active symbol: quote SYMBOL/FUNDING on all venues, and for every
unordered pair of quotes buy on the cheaper venue, sell on the dearer one.
Pairs whose capital cannot move (withdrawal blocked at the buy venue or
deposit blocked at the sell venue) are skipped silently.

Economics for nominal amount A:
    gross % = (sell - buy) / buy * 100
    gross   = (sell - buy) / buy * A
    fees    = A * buy_rate + A * sell_rate + withdrawal_fee * buy + network
    net     = gross - fees,  net % = net / A * 100
"""

import asyncio
import time
from itertools import combinations
from typing import Callable, Optional

from arbscout.arb.active_set import ActiveSetManager
from arbscout.core.config import Settings, get_settings
from arbscout.core.logging import LoggerMixin
from arbscout.domain.models import (
    ArbitrageOpportunity,
    FeeBreakdown,
    OpportunityKind,
    OpportunityLeg,
    Quote,
    VenueKind,
    make_pair,
)
from arbscout.providers.base import MarketDataProvider, TransferEligibility


def evaluate_pair(
    symbol: str,
    buy: Quote,
    sell: Quote,
    trade_amount: float,
    buy_fee_rate: float,
    sell_fee_rate: float,
    withdrawal_fee: float = 0.0,
    network_fee: float = 0.0,
    observed_at: Optional[float] = None,
) -> ArbitrageOpportunity:
    """
    Compute the full economics of buying on `buy` and selling on `sell`.

    Args:
        withdrawal_fee: In base-asset units; converted with the buy price.
        network_fee: Already in funding-currency units.

    Returns:
        The opportunity, reportable or not.
    """
    spread = sell.price - buy.price
    gross_pct = spread / buy.price * 100
    gross_amount = spread / buy.price * trade_amount

    fees = FeeBreakdown(
        entry_fee=trade_amount * buy_fee_rate,
        exit_fee=trade_amount * sell_fee_rate,
        transfer_fee=withdrawal_fee * buy.price,
        network_fee=network_fee,
    )
    net_amount = gross_amount - fees.total

    return ArbitrageOpportunity(
        symbol=symbol,
        kind=OpportunityKind.PAIRWISE,
        legs=[
            OpportunityLeg(venue=buy.venue, price=buy.price, pair=buy.symbol),
            OpportunityLeg(venue=sell.venue, price=sell.price, pair=sell.symbol),
        ],
        gross_difference_pct=gross_pct,
        gross_profit_amount=gross_amount,
        fees=fees,
        net_profit_amount=net_amount,
        net_profit_pct=net_amount / trade_amount * 100,
        trade_amount=trade_amount,
        observed_at=observed_at if observed_at is not None else max(buy.observed_at, sell.observed_at),
    )


def order_pair(a: Quote, b: Quote) -> tuple[Quote, Quote]:
    """Return (buy, sell): buy is the lower price."""
    return (a, b) if a.price < b.price else (b, a)


def sort_by_profit(opportunities: list[ArbitrageOpportunity]) -> list[ArbitrageOpportunity]:
    return sorted(opportunities, key=lambda o: o.net_profit_amount, reverse=True)


def best_opportunity(opportunities: list[ArbitrageOpportunity]) -> Optional[ArbitrageOpportunity]:
    return sort_by_profit(opportunities)[0] if opportunities else None


class PairwiseArbitrageEngine(LoggerMixin):
    """Cross-venue arbitrage detection with full fee accounting."""

    def __init__(
        self,
        market: MarketDataProvider,
        eligibility: TransferEligibility,
        active_set: ActiveSetManager,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.market = market
        self.eligibility = eligibility
        self.active_set = active_set
        self.settings = settings or get_settings()
        self.threshold = self.settings.arbitrage_threshold
        self.trade_amount = self.settings.trade_amount
        self.funding = self.settings.funding_currency
        self._clock = clock

    async def fetch_quotes(self, symbol: str) -> list[Quote]:
        """Usable quotes for SYMBOL/FUNDING from every venue."""
        pair = make_pair(symbol, self.funding)
        venues = self.market.list_venues()
        results = await asyncio.gather(
            *(self.market.fetch_quote(venue, pair) for venue in venues),
            return_exceptions=True,
        )
        return [q for q in results if isinstance(q, Quote) and q.is_usable]

    def _network_fee(self, buy: Quote, sell: Quote) -> float:
        fee = 0.0
        for quote in (buy, sell):
            if quote.venue_kind == VenueKind.DECENTRALIZED:
                fee += self.market.network_fee(quote.venue)
        return fee

    async def calculate(self, symbol: str, buy: Quote, sell: Quote) -> Optional[ArbitrageOpportunity]:
        """Economics for one ordered pair, or None if capital cannot move."""
        if self.eligibility.is_transfer_blocked(buy.venue, symbol):
            self.logger.debug(f"Skipping {symbol}: withdrawal suspended on {buy.venue}")
            return None
        if self.eligibility.is_transfer_blocked(sell.venue, symbol):
            self.logger.debug(f"Skipping {symbol}: deposit suspended on {sell.venue}")
            return None

        withdrawal_fee = await self.market.withdrawal_fee(buy.venue, symbol)
        return evaluate_pair(
            symbol,
            buy,
            sell,
            trade_amount=self.trade_amount,
            buy_fee_rate=self.market.trading_fee_rate(buy.venue),
            sell_fee_rate=self.market.trading_fee_rate(sell.venue),
            withdrawal_fee=withdrawal_fee,
            network_fee=self._network_fee(buy, sell),
            observed_at=self._clock(),
        )

    async def find_for_symbol(self, symbol: str) -> list[ArbitrageOpportunity]:
        """All reportable pairwise opportunities for one symbol."""
        quotes = await self.fetch_quotes(symbol)
        if len(quotes) < 2:
            return []

        pairs = [order_pair(a, b) for a, b in combinations(quotes, 2)]
        results = await asyncio.gather(
            *(self.calculate(symbol, buy, sell) for buy, sell in pairs),
            return_exceptions=True,
        )

        reported = []
        for result in results:
            if isinstance(result, Exception):
                self.logger.debug(f"Pair evaluation failed for {symbol}: {result}")
                continue
            if result is None or not result.is_reportable(self.threshold):
                continue
            reported.append(result)
            self.active_set.record_outcome(symbol, result.net_profit_pct)
            self.logger.info(
                f"Pairwise {symbol}: buy {result.buy_venue} @ {result.buy_price:.6g}, "
                f"sell {result.sell_venue} @ {result.sell_price:.6g}, "
                f"net {result.net_profit_pct:.2f}%"
            )
        return reported

    async def scan(self, symbols: list[str]) -> list[ArbitrageOpportunity]:
        """Evaluate every symbol concurrently; failures stay per symbol."""
        if not symbols:
            self.logger.debug("No active symbols to scan for pairwise arbitrage")
            return []

        results = await asyncio.gather(
            *(self.find_for_symbol(symbol) for symbol in symbols),
            return_exceptions=True,
        )
        opportunities = []
        for symbol, result in zip(symbols, results):
            if isinstance(result, Exception):
                self.logger.debug(f"Failed to scan pairwise arbitrage for {symbol}: {result}")
                continue
            opportunities.extend(result)

        self.logger.info(f"Pairwise scan of {len(symbols)} symbols: {len(opportunities)} opportunities")
        return opportunities
