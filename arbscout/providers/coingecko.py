"""
CoinGecko asset-universe provider.

Fetches the top assets by market cap (paged, 250 per page) and caches the
list under `universe:` for an hour. The free tier allows roughly 30-50
calls per minute, hence the pause between pages.
"""

import asyncio
from typing import Optional

from arbscout.core.cache import ExpiringCache, resolve_ttls
from arbscout.core.config import Settings, get_settings
from arbscout.core.errors import ProviderError, QuotaExceededError
from arbscout.core.http import HttpClient
from arbscout.core.logging import LoggerMixin
from arbscout.core.quota import QuotaManager
from arbscout.domain.models import Asset
from arbscout.providers.base import AssetUniverseProvider

PER_PAGE = 250


class CoinGeckoProvider(AssetUniverseProvider, LoggerMixin):
    """Top-N coins by market cap from the CoinGecko markets endpoint."""

    name = "coingecko"

    def __init__(
        self,
        cache: ExpiringCache,
        settings: Optional[Settings] = None,
        http_client: Optional[HttpClient] = None,
        quota: Optional[QuotaManager] = None,
        config: Optional[dict] = None,
        top_n: int = 1300,
        page_delay: float = 1.5,
    ):
        self.settings = settings or get_settings()
        self.cache = cache
        self.http = http_client or HttpClient(
            base_url=self.settings.coingecko_api_url,
            timeout=self.settings.http_timeout,
        )
        self.quota = quota or QuotaManager(config)
        self._ttl = resolve_ttls(config)["universe"]
        self.top_n = top_n
        self.page_delay = page_delay
        self._assets: list[Asset] = []

    async def fetch_top_assets(self) -> list[Asset]:
        """
        Fetch the top-N assets, using the cached list when fresh.

        Raises:
            ProviderError: If the first page cannot be fetched and nothing
                is cached from an earlier run.
        """
        cache_key = f"universe:top:{self.top_n}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            self.logger.debug("Using cached coin list")
            self._assets = cached
            return cached

        self.logger.info(f"Fetching top {self.top_n} coins from CoinGecko...")
        assets: list[Asset] = []
        pages = -(-self.top_n // PER_PAGE)

        for page in range(1, pages + 1):
            if not self.quota.check_and_consume(self.name).allowed:
                raise QuotaExceededError("coingecko quota exceeded", provider=self.name)

            try:
                data = await self.http.get(
                    "/coins/markets",
                    params={
                        "vs_currency": "usd",
                        "order": "market_cap_desc",
                        "per_page": PER_PAGE,
                        "page": page,
                        "sparkline": "false",
                    },
                    provider_name=self.name,
                )
            except ProviderError:
                if assets:
                    self.logger.warning(f"CoinGecko page {page} failed, keeping {len(assets)} coins")
                    break
                raise

            for index, coin in enumerate(data or []):
                assets.append(Asset(
                    symbol=str(coin.get("symbol", "")).upper(),
                    name=coin.get("name", ""),
                    market_cap=coin.get("market_cap"),
                    rank=(page - 1) * PER_PAGE + index + 1,
                ))

            if page < pages:
                await asyncio.sleep(self.page_delay)

        self._assets = [a for a in assets if a.symbol][: self.top_n]
        self.cache.set(cache_key, self._assets, self._ttl)
        self.logger.info(f"Fetched {len(self._assets)} coins successfully")
        return self._assets

    async def get_symbols(self, limit: Optional[int] = None) -> list[str]:
        try:
            assets = await self.fetch_top_assets()
        except ProviderError as e:
            if not self._assets:
                self.logger.error(f"Failed to fetch coin list from CoinGecko: {e}")
                return []
            self.logger.warning(f"CoinGecko refresh failed, using previous list: {e}")
            assets = self._assets

        symbols = []
        seen = set()
        for asset in assets:
            if asset.symbol not in seen:
                seen.add(asset.symbol)
                symbols.append(asset.symbol)
        return symbols[:limit] if limit is not None else symbols

    async def close(self) -> None:
        await self.http.close()
