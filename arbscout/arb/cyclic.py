"""
Cyclic (triangular) arbitrage on a single venue.

Cycle F -> SYMBOL -> INTERMEDIATE -> F:
    leg 1: buy SYMBOL/F at the ask
    leg 2: sell SYMBOL/INTERMEDIATE at the bid
    leg 3: sell INTERMEDIATE/F at the bid

The taker fee is taken from each leg's output and the net-of-fee amount
is what the next leg trades.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Callable, Optional

from arbscout.arb.active_set import ActiveSetManager
from arbscout.core.config import Settings, get_settings, require_positive
from arbscout.core.logging import LoggerMixin
from arbscout.domain.models import (
    ArbitrageOpportunity,
    FeeBreakdown,
    OpportunityKind,
    OpportunityLeg,
    Quote,
    make_pair,
)
from arbscout.providers.base import MarketDataProvider

DEFAULT_VENUES = ["binance", "bybit", "okx", "kucoin"]
DEFAULT_INTERMEDIATES = ["BTC", "ETH", "BNB"]
STABLE_QUOTES = {"USDT", "USDC"}


@dataclass
class CycleResult:
    """Funding-currency amounts for one simulated cycle."""

    final_amount: float
    gross_profit: float
    entry_fee: float
    exit_fee: float

    @property
    def total_fees(self) -> float:
        return self.entry_fee + self.exit_fee


def simulate_cycle(amount: float, ask1: float, bid2: float, bid3: float, fee_rate: float) -> CycleResult:
    """
    Walk `amount` of the funding currency around the cycle.

    Fees are reported in funding-currency units: leg 1 fee at the leg 1
    ask, leg 2 fee at the leg 3 bid, leg 3 fee as is.
    """
    asset = amount / ask1
    fee1 = asset * fee_rate
    asset -= fee1

    intermediate = asset * bid2
    fee2 = intermediate * fee_rate
    intermediate -= fee2

    final = intermediate * bid3
    fee3 = final * fee_rate
    final -= fee3

    return CycleResult(
        final_amount=final,
        gross_profit=amount / ask1 * bid2 * bid3 - amount,
        entry_fee=fee1 * ask1,
        exit_fee=fee2 * bid3 + fee3,
    )


def _ask(quote: Optional[Quote]) -> float:
    if quote is None:
        return 0.0
    return quote.ask if quote.ask else quote.price


def _bid(quote: Optional[Quote]) -> float:
    if quote is None:
        return 0.0
    return quote.bid if quote.bid else quote.price


class CyclicArbitrageEngine(LoggerMixin):
    """
    Same-venue three-leg cycle detection.

    Config (config.yaml `cyclic` section):
        venues: venues to try (default binance, bybit, okx, kucoin)
        intermediates: middle currencies (default BTC, ETH, BNB)
        head_size: newest active symbols evaluated per pass (default 5)
    """

    def __init__(
        self,
        market: MarketDataProvider,
        active_set: ActiveSetManager,
        settings: Optional[Settings] = None,
        config: Optional[dict] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.market = market
        self.active_set = active_set
        self.settings = settings or get_settings()
        cyclic_config = (config or {}).get("cyclic") or {}

        self.venues = list(cyclic_config.get("venues", DEFAULT_VENUES))
        self.intermediates = [
            i.upper() for i in cyclic_config.get("intermediates", DEFAULT_INTERMEDIATES)
            if i.upper() not in STABLE_QUOTES
        ]
        self.head_size = int(require_positive("cyclic", "head_size", cyclic_config.get("head_size", 5)))

        self.threshold = self.settings.arbitrage_threshold
        self.trade_amount = self.settings.trade_amount
        self.funding = self.settings.funding_currency
        self._clock = clock

    def active_venues(self) -> list[str]:
        known = set(self.market.list_venues())
        return [v for v in self.venues if v in known]

    async def evaluate(self, venue: str, symbol: str, intermediate: str) -> Optional[ArbitrageOpportunity]:
        """One cycle on one venue; None when a leg is unquoted or it doesn't pay."""
        pairs = [
            make_pair(symbol, self.funding),
            make_pair(symbol, intermediate),
            make_pair(intermediate, self.funding),
        ]
        quotes = await asyncio.gather(
            *(self.market.fetch_quote(venue, pair) for pair in pairs),
            return_exceptions=True,
        )
        quotes = [q if isinstance(q, Quote) else None for q in quotes]

        ask1, bid2, bid3 = _ask(quotes[0]), _bid(quotes[1]), _bid(quotes[2])
        if not (ask1 > 0 and bid2 > 0 and bid3 > 0):
            return None

        fee_rate = self.market.trading_fee_rate(venue)
        result = simulate_cycle(self.trade_amount, ask1, bid2, bid3, fee_rate)
        net = result.final_amount - self.trade_amount

        return ArbitrageOpportunity(
            symbol=symbol,
            kind=OpportunityKind.CYCLIC,
            legs=[
                OpportunityLeg(venue=venue, price=ask1, pair=pairs[0]),
                OpportunityLeg(venue=venue, price=bid2, pair=pairs[1]),
                OpportunityLeg(venue=venue, price=bid3, pair=pairs[2]),
            ],
            gross_difference_pct=result.gross_profit / self.trade_amount * 100,
            gross_profit_amount=result.gross_profit,
            fees=FeeBreakdown(entry_fee=result.entry_fee, exit_fee=result.exit_fee),
            net_profit_amount=net,
            net_profit_pct=net / self.trade_amount * 100,
            trade_amount=self.trade_amount,
            observed_at=self._clock(),
            path=[self.funding, symbol, intermediate, self.funding],
        )

    async def find_for_symbol(self, venue: str, symbol: str) -> list[ArbitrageOpportunity]:
        candidates = [i for i in self.intermediates if i != symbol.upper()]
        results = await asyncio.gather(
            *(self.evaluate(venue, symbol, i) for i in candidates),
            return_exceptions=True,
        )
        reported = []
        for result in results:
            if isinstance(result, Exception):
                self.logger.debug(f"Cycle evaluation failed for {symbol} on {venue}: {result}")
                continue
            if result is None or not result.is_reportable(self.threshold):
                continue
            reported.append(result)
            self.active_set.record_outcome(symbol, result.net_profit_pct)
            self.logger.info(
                f"Cyclic {venue}: {' -> '.join(result.path)} net {result.net_profit_pct:.2f}%"
            )
        return reported

    async def scan(self, symbols: list[str]) -> list[ArbitrageOpportunity]:
        """Evaluate the head of `symbols` on every cyclic venue."""
        head = symbols[: self.head_size]
        venues = self.active_venues()
        if not head or not venues:
            return []

        jobs = [(venue, symbol) for venue in venues for symbol in head]
        results = await asyncio.gather(
            *(self.find_for_symbol(venue, symbol) for venue, symbol in jobs),
            return_exceptions=True,
        )
        opportunities = []
        for (venue, symbol), result in zip(jobs, results):
            if isinstance(result, Exception):
                self.logger.debug(f"Failed to scan cycles for {symbol} on {venue}: {result}")
                continue
            opportunities.extend(result)

        self.logger.info(
            f"Cyclic scan of {len(head)} symbols on {len(venues)} venues: {len(opportunities)} opportunities"
        )
        return opportunities
