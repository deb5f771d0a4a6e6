"""
Exchange wallet-status provider.

Polls public currency/chain status endpoints and records, per venue, the
assets whose deposits or withdrawals are suspended. The pairwise engine
consults it to drop opportunities whose capital cannot move.

Parsed status sets are cached under `exchange_status:{venue}`.
"""

import asyncio
from typing import Any, Callable, Optional

from arbscout.core.cache import ExpiringCache, resolve_ttls
from arbscout.core.errors import ProviderError
from arbscout.core.http import HttpClient
from arbscout.core.logging import LoggerMixin
from arbscout.providers.base import TransferEligibility


def parse_binance_status(payload: Any) -> set[str]:
    """Coins without any network that allows both deposit and withdrawal."""
    suspended = set()
    for coin in payload or []:
        symbol = str(coin.get("coin", "")).upper()
        if not symbol:
            continue
        networks = coin.get("networkList") or []
        if not any(n.get("withdrawEnable") and n.get("depositEnable") for n in networks):
            suspended.add(symbol)
    return suspended


def parse_bybit_status(payload: Any) -> set[str]:
    suspended = set()
    rows = ((payload or {}).get("result") or {}).get("rows") or []
    for coin in rows:
        symbol = str(coin.get("coin") or "").upper()
        if not symbol:
            continue
        chains = coin.get("chains") or []
        if not any(
            str(c.get("chainDeposit")) == "1" and str(c.get("chainWithdraw")) == "1"
            for c in chains
        ):
            suspended.add(symbol)
    return suspended


def parse_okx_status(payload: Any) -> set[str]:
    """OKX lists one row per chain; a coin is usable if any chain is."""
    usable: dict[str, bool] = {}
    for row in (payload or {}).get("data") or []:
        symbol = str(row.get("ccy") or "").upper()
        if not symbol:
            continue
        ok = bool(row.get("canDep")) and bool(row.get("canWd"))
        usable[symbol] = usable.get(symbol, False) or ok
    return {symbol for symbol, ok in usable.items() if not ok}


def parse_gateio_status(payload: Any) -> set[str]:
    usable: dict[str, bool] = {}
    for chain in payload if isinstance(payload, list) else []:
        symbol = str(chain.get("currency") or "").upper()
        if not symbol:
            continue
        ok = not chain.get("is_withdraw_disabled") and not chain.get("is_deposit_disabled")
        usable[symbol] = usable.get(symbol, False) or ok
    return {symbol for symbol, ok in usable.items() if not ok}


STATUS_ENDPOINTS: dict[str, tuple[str, Callable[[Any], set[str]]]] = {
    "binance": ("https://api.binance.com/sapi/v1/capital/config/getall", parse_binance_status),
    "bybit": ("https://api.bybit.com/v5/asset/coin/query-info", parse_bybit_status),
    "okx": ("https://www.okx.com/api/v5/asset/currencies", parse_okx_status),
    "gateio": ("https://api.gateio.ws/api/v4/wallet/currency_chains", parse_gateio_status),
}


class ExchangeStatusService(TransferEligibility, LoggerMixin):
    """
    Transfer eligibility from venue wallet-status endpoints.

    Venues without a status endpoint are treated as unrestricted.
    """

    def __init__(
        self,
        cache: ExpiringCache,
        http_client: Optional[HttpClient] = None,
        config: Optional[dict] = None,
        endpoints: Optional[dict[str, tuple[str, Callable[[Any], set[str]]]]] = None,
    ):
        self.cache = cache
        self.http = http_client or HttpClient(timeout=10)
        self._ttl = resolve_ttls(config)["exchange_status"]
        self._endpoints = endpoints if endpoints is not None else STATUS_ENDPOINTS
        self._suspended: dict[str, set[str]] = {}

    def is_transfer_blocked(self, venue: str, asset: str) -> bool:
        suspended = self._suspended.get(venue.lower())
        return bool(suspended) and asset.split("/")[0].upper() in suspended

    def get_suspended(self, venue: str) -> list[str]:
        return sorted(self._suspended.get(venue.lower(), set()))

    @property
    def total_suspended(self) -> int:
        return sum(len(tokens) for tokens in self._suspended.values())

    async def _check_venue(self, venue: str) -> Optional[set[str]]:
        cache_key = f"exchange_status:{venue}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        url, parser = self._endpoints[venue]
        try:
            payload = await self.http.get(url, provider_name=venue)
        except ProviderError as e:
            self.logger.debug(f"{venue} status check failed: {e}")
            return None

        suspended = parser(payload)
        self.cache.set(cache_key, suspended, self._ttl)
        return suspended

    async def refresh(self) -> None:
        """Re-check every venue; a failed venue keeps its previous status."""
        self.logger.info("Checking exchange status for suspended tokens...")
        venues = list(self._endpoints)
        results = await asyncio.gather(
            *(self._check_venue(venue) for venue in venues),
            return_exceptions=True,
        )
        for venue, result in zip(venues, results):
            if isinstance(result, Exception):
                self.logger.debug(f"{venue} status parse failed: {result}")
                continue
            if result is None:
                continue
            self._suspended[venue] = set(result)
            if result:
                preview = ", ".join(sorted(result)[:5])
                self.logger.info(f"{venue}: {len(result)} tokens suspended ({preview}...)")

        self.logger.info(f"Exchange status updated. Total suspended tokens: {self.total_suspended}")

    async def close(self) -> None:
        await self.http.close()
