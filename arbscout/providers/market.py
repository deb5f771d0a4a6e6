"""
Market data across venues.

VenueMarketData aggregates VenueClients behind the MarketDataProvider
interface and owns the `quote:` and `withdraw_fee:` cache namespaces.
Every live call is charged against the venue's call budget; failures and
denied calls come back as absent data.
"""

import asyncio
from typing import Iterable, Optional

from arbscout.core.cache import ExpiringCache, resolve_ttls
from arbscout.core.logging import LoggerMixin
from arbscout.core.quota import QuotaManager
from arbscout.domain.models import Quote, VenueKind
from arbscout.providers.base import MarketDataProvider, VenueClient


class VenueMarketData(MarketDataProvider, LoggerMixin):
    """
    Cached, budgeted, failure-tolerant access to a set of venues.

    Cache keys:
    - quote:{venue}:{pair}
    - withdraw_fee:{venue}:{asset}
    """

    def __init__(
        self,
        venues: Iterable[VenueClient],
        cache: ExpiringCache,
        quota: Optional[QuotaManager] = None,
        config: Optional[dict] = None,
    ):
        self._venues: dict[str, VenueClient] = {v.venue_id: v for v in venues}
        self.cache = cache
        self.quota = quota or QuotaManager()
        config = config or {}
        self._ttls = resolve_ttls(config)
        self._network_fees: dict[str, float] = dict(config.get("network_fees") or {})

    def list_venues(self) -> list[str]:
        return list(self._venues)

    def venue_kind(self, venue: str) -> VenueKind:
        client = self._venues.get(venue)
        return client.kind if client else VenueKind.CENTRALIZED

    def _charge(self, venue: str, cost: int = 1) -> bool:
        result = self.quota.check_and_consume(venue, cost=cost)
        if not result.allowed:
            self.logger.debug(f"{venue}: call skipped ({result.reason})")
        return result.allowed

    async def fetch_quote(self, venue: str, pair: str) -> Optional[Quote]:
        cache_key = f"quote:{venue}:{pair}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        client = self._venues.get(venue)
        if client is None:
            self.logger.debug(f"Venue {venue} not available")
            return None
        if not self._charge(venue):
            return None

        try:
            quote = await client.fetch_ticker(pair)
        except Exception as e:
            # Pair may simply not be listed on this venue.
            self.logger.debug(f"Failed to fetch {pair} from {venue}: {e}")
            return None

        self.cache.set(cache_key, quote, self._ttls["quotes"])
        return quote

    async def fetch_quotes_bulk(self, venue: str, pairs: list[str]) -> dict[str, Quote]:
        client = self._venues.get(venue)
        if client is None:
            return {}

        results: dict[str, Quote] = {}
        missing = []
        for pair in pairs:
            cached = self.cache.get(f"quote:{venue}:{pair}")
            if cached is not None:
                results[pair] = cached
            else:
                missing.append(pair)
        if not missing:
            return results

        if client.supports_bulk and self._charge(venue):
            try:
                fetched = await client.fetch_tickers(missing)
                for pair, quote in fetched.items():
                    results[pair] = quote
                    self.cache.set(f"quote:{venue}:{pair}", quote, self._ttls["quotes"])
                return results
            except Exception as e:
                self.logger.debug(f"Bulk fetch failed for {venue}, falling back to single calls: {e}")

        quotes = await asyncio.gather(*(self.fetch_quote(venue, pair) for pair in missing))
        for pair, quote in zip(missing, quotes):
            if quote is not None:
                results[pair] = quote
        return results

    def trading_fee_rate(self, venue: str) -> float:
        client = self._venues.get(venue)
        if client is None:
            return 0.0
        return client.trading_fee_rate()

    async def withdrawal_fee(self, venue: str, asset: str) -> float:
        cache_key = f"withdraw_fee:{venue}:{asset}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        client = self._venues.get(venue)
        if client is None or not self._charge(venue):
            return 0.0

        try:
            fee = await client.withdrawal_fee(asset)
        except Exception as e:
            self.logger.debug(f"Failed to get withdrawal fee for {asset} on {venue}: {e}")
            return 0.0

        self.cache.set(cache_key, fee, self._ttls["withdrawal_fees"])
        return fee

    def network_fee(self, venue: str) -> float:
        return float(self._network_fees.get(venue, 0.0))

    async def close(self) -> None:
        results = await asyncio.gather(
            *(client.close() for client in self._venues.values()),
            return_exceptions=True,
        )
        for venue, result in zip(self._venues, results):
            if isinstance(result, Exception):
                self.logger.warning(f"Failed to close {venue}: {result}")
