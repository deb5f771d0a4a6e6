"""
Providers module - External collaborators

Venue clients, cross-venue market data, transfer eligibility and the asset
universe. The scanning core depends only on the interfaces in base.py.
"""

from arbscout.providers.base import (
    AssetUniverseProvider,
    HealthCheckResult,
    MarketDataProvider,
    NoTransferRestrictions,
    ProviderStatus,
    StaticUniverseProvider,
    TransferEligibility,
    VenueClient,
)
from arbscout.providers.ccxt_venue import CcxtVenue, create_ccxt_venues
from arbscout.providers.coingecko import CoinGeckoProvider
from arbscout.providers.exchange_status import ExchangeStatusService
from arbscout.providers.market import VenueMarketData

__all__ = [
    "AssetUniverseProvider",
    "HealthCheckResult",
    "MarketDataProvider",
    "NoTransferRestrictions",
    "ProviderStatus",
    "StaticUniverseProvider",
    "TransferEligibility",
    "VenueClient",
    "CcxtVenue",
    "create_ccxt_venues",
    "CoinGeckoProvider",
    "ExchangeStatusService",
    "VenueMarketData",
]
