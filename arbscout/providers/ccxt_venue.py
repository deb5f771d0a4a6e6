"""
Centralized venue client backed by CCXT.

One CcxtVenue wraps one ccxt.async_support exchange and exposes it through
the VenueClient capability interface, so nothing downstream depends on a
venue-specific type.
"""

import time
from typing import Any, Callable, Optional

import ccxt.async_support as ccxt

from arbscout.core.errors import ConfigurationError, MissingQuoteError
from arbscout.core.logging import get_logger
from arbscout.domain.models import Quote, VenueKind
from arbscout.providers.base import HealthCheckResult, ProviderStatus, VenueClient

logger = get_logger("ccxt")

DEFAULT_TRADING_FEE = 0.001


class CcxtVenue(VenueClient):
    """
    CCXT-backed venue.

    Markets (and with them fee tables and currency metadata) are loaded
    lazily on first use.
    """

    kind = VenueKind.CENTRALIZED

    def __init__(
        self,
        venue_id: str,
        *,
        timeout_ms: int = 30000,
        default_fee_rate: float = DEFAULT_TRADING_FEE,
        exchange: Optional[Any] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.venue_id = venue_id
        self.default_fee_rate = default_fee_rate
        self._clock = clock
        self._markets_loaded = False

        if exchange is None:
            exchange_class = getattr(ccxt, venue_id, None)
            if exchange_class is None:
                raise ConfigurationError(f"Unknown CCXT exchange id: {venue_id}")
            exchange = exchange_class({
                "enableRateLimit": True,
                "timeout": timeout_ms,
            })
        self._exchange = exchange

    @property
    def exchange(self) -> Any:
        return self._exchange

    @property
    def supports_bulk(self) -> bool:
        return bool((self._exchange.has or {}).get("fetchTickers"))

    async def _ensure_markets(self) -> None:
        if not self._markets_loaded:
            await self._exchange.load_markets()
            self._markets_loaded = True

    def _to_quote(self, pair: str, ticker: dict[str, Any]) -> Quote:
        price = ticker.get("last") or ticker.get("close") or 0
        if not price:
            raise MissingQuoteError(
                f"{self.venue_id}: no last price for {pair}",
                provider=self.venue_id,
                pair=pair,
            )
        return Quote(
            venue=self.venue_id,
            symbol=pair,
            price=float(price),
            volume=float(ticker.get("quoteVolume") or ticker.get("baseVolume") or 0),
            observed_at=self._clock(),
            venue_kind=self.kind,
            bid=float(ticker["bid"]) if ticker.get("bid") else None,
            ask=float(ticker["ask"]) if ticker.get("ask") else None,
        )

    async def fetch_ticker(self, pair: str) -> Quote:
        await self._ensure_markets()
        ticker = await self._exchange.fetch_ticker(pair)
        return self._to_quote(pair, ticker)

    async def fetch_tickers(self, pairs: list[str]) -> dict[str, Quote]:
        await self._ensure_markets()
        tickers = await self._exchange.fetch_tickers(pairs)
        quotes = {}
        for pair, ticker in (tickers or {}).items():
            if not ticker or not (ticker.get("last") or ticker.get("close")):
                continue
            quotes[pair] = self._to_quote(pair, ticker)
        return quotes

    def trading_fee_rate(self) -> float:
        trading = (self._exchange.fees or {}).get("trading") or {}
        taker = trading.get("taker")
        if isinstance(taker, (int, float)) and taker >= 0:
            return float(taker)
        return self.default_fee_rate

    async def withdrawal_fee(self, asset: str) -> float:
        await self._ensure_markets()
        funding = (self._exchange.fees or {}).get("funding") or {}
        fee = (funding.get("withdraw") or {}).get(asset)
        if isinstance(fee, (int, float)):
            return float(fee)

        currency = (self._exchange.currencies or {}).get(asset) or {}
        fee = currency.get("fee")
        if isinstance(fee, (int, float)):
            return float(fee)
        return 0.0

    async def healthcheck(self) -> HealthCheckResult:
        start_time = time.time()
        try:
            await self._ensure_markets()
            latency = (time.time() - start_time) * 1000
            return HealthCheckResult(
                status=ProviderStatus.HEALTHY,
                message=f"{self.venue_id} markets loaded",
                latency_ms=latency,
                details={"markets": len(self._exchange.markets or {})},
            )
        except Exception as e:
            return HealthCheckResult(
                status=ProviderStatus.UNAVAILABLE,
                message=f"{self.venue_id} error: {e}",
            )

    async def close(self) -> None:
        await self._exchange.close()


def create_ccxt_venues(
    venue_ids: list[str],
    *,
    timeout_ms: int = 30000,
    default_fee_rate: float = DEFAULT_TRADING_FEE,
) -> list[CcxtVenue]:
    """
    Build venue clients for every id CCXT knows; unknown ids are skipped.

    Args:
        venue_ids: CCXT exchange ids, e.g. ["binance", "okx"]
        timeout_ms: Per-request timeout
        default_fee_rate: Fee used when the exchange publishes none
    """
    venues = []
    for venue_id in venue_ids:
        try:
            venues.append(
                CcxtVenue(venue_id, timeout_ms=timeout_ms, default_fee_rate=default_fee_rate)
            )
        except ConfigurationError as e:
            logger.warning(str(e))
    logger.info(f"Initialized {len(venues)}/{len(venue_ids)} CCXT venues")
    return venues
