"""
Collaborator interfaces for the scanning core.

The scanner and both engines depend only on these abstractions:
- VenueClient: capability interface implemented once per venue
- MarketDataProvider: quotes and fees across all venues, failures as absent
- TransferEligibility: deposit/withdrawal status per venue and asset
- AssetUniverseProvider: the candidate symbols the scanner samples from

Implementations must handle errors gracefully (never crash a cycle) and
return domain models, not raw API responses.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from arbscout.core.logging import LoggerMixin
from arbscout.domain.models import Quote, VenueKind


class ProviderStatus(str, Enum):
    """Provider health status."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNAVAILABLE = "unavailable"


@dataclass
class HealthCheckResult:
    """Result of a provider health check."""
    status: ProviderStatus
    message: str
    latency_ms: Optional[float] = None
    details: Optional[dict[str, Any]] = None


class VenueClient(ABC, LoggerMixin):
    """
    Capability interface of a single trading venue.

    Methods may raise; VenueMarketData turns failures into absent data.
    """

    venue_id: str = "base"
    kind: VenueKind = VenueKind.CENTRALIZED

    @property
    def supports_bulk(self) -> bool:
        """Whether fetch_tickers is a single round-trip."""
        return False

    @abstractmethod
    async def fetch_ticker(self, pair: str) -> Quote:
        """Fetch the current quote for a trading pair."""

    async def fetch_tickers(self, pairs: list[str]) -> dict[str, Quote]:
        """Fetch several quotes. Default: one call per pair."""
        return {pair: await self.fetch_ticker(pair) for pair in pairs}

    @abstractmethod
    def trading_fee_rate(self) -> float:
        """Taker fee rate as a fraction (0.001 = 0.1%)."""

    @abstractmethod
    async def withdrawal_fee(self, asset: str) -> float:
        """Withdrawal fee in units of the asset (0 when unknown)."""

    async def healthcheck(self) -> HealthCheckResult:
        """Check venue reachability. Override where a cheap probe exists."""
        return HealthCheckResult(status=ProviderStatus.HEALTHY, message="not probed")

    async def close(self) -> None:
        """Release network resources."""


class MarketDataProvider(ABC):
    """
    Quotes and fee inputs across venues.

    All fetch methods report failure as absent (None / missing key), never
    as an exception.
    """

    @abstractmethod
    def list_venues(self) -> list[str]:
        """Venue ids currently available."""

    def venue_kind(self, venue: str) -> VenueKind:
        return VenueKind.CENTRALIZED

    @abstractmethod
    async def fetch_quote(self, venue: str, pair: str) -> Optional[Quote]:
        """Current quote of `pair` on `venue`, or None."""

    @abstractmethod
    async def fetch_quotes_bulk(self, venue: str, pairs: list[str]) -> dict[str, Quote]:
        """Best-effort quotes for several pairs on one venue."""

    @abstractmethod
    def trading_fee_rate(self, venue: str) -> float:
        """Taker fee rate for the venue."""

    @abstractmethod
    async def withdrawal_fee(self, venue: str, asset: str) -> float:
        """Withdrawal fee in asset units (0 when unknown)."""

    def network_fee(self, venue: str) -> float:
        """On-chain cost in funding-currency units for moving funds via venue."""
        return 0.0

    async def close(self) -> None:
        """Release venue connections."""


class TransferEligibility(ABC):
    """Whether capital can move in or out of a venue for an asset."""

    @abstractmethod
    def is_transfer_blocked(self, venue: str, asset: str) -> bool:
        """True if deposits or withdrawals of `asset` are suspended on `venue`."""

    async def refresh(self) -> None:
        """Reload status data. No-op for static implementations."""

    async def close(self) -> None:
        """Release network resources."""


class AssetUniverseProvider(ABC):
    """Source of candidate symbols for the activity scanner."""

    @abstractmethod
    async def get_symbols(self, limit: Optional[int] = None) -> list[str]:
        """Base-asset symbols ordered by priority (e.g. market cap)."""

    async def close(self) -> None:
        """Release network resources."""


class StaticUniverseProvider(AssetUniverseProvider):
    """Fixed universe, e.g. from the --symbols CLI option."""

    def __init__(self, symbols: list[str]):
        self._symbols = [s.strip().upper() for s in symbols if s.strip()]

    async def get_symbols(self, limit: Optional[int] = None) -> list[str]:
        if limit is None:
            return list(self._symbols)
        return self._symbols[:limit]


class NoTransferRestrictions(TransferEligibility):
    """Eligibility source that never blocks; used when status checks are off."""

    def is_transfer_blocked(self, venue: str, asset: str) -> bool:
        return False
