"""Shared fixtures: fake clock, in-memory venues, settings."""

from typing import Optional

import pytest

from arbscout.core.cache import ExpiringCache
from arbscout.core.config import load_settings
from arbscout.domain.models import Quote, VenueKind
from arbscout.providers.base import TransferEligibility, VenueClient
from arbscout.providers.market import VenueMarketData


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeVenue(VenueClient):
    """In-memory venue: pair -> (price, volume[, bid, ask])."""

    def __init__(
        self,
        venue_id: str,
        book: Optional[dict] = None,
        fee_rate: float = 0.001,
        withdrawal_fees: Optional[dict] = None,
        kind: VenueKind = VenueKind.CENTRALIZED,
        failing: bool = False,
    ):
        self.venue_id = venue_id
        self.kind = kind
        self.book = book or {}
        self.fee_rate = fee_rate
        self.withdrawal_fees = withdrawal_fees or {}
        self.failing = failing
        self.calls = 0
        self.requested: list[str] = []
        self.closed = False

    async def fetch_ticker(self, pair: str) -> Quote:
        self.calls += 1
        self.requested.append(pair)
        if self.failing:
            raise ConnectionError(f"{self.venue_id} unreachable")
        if pair not in self.book:
            raise KeyError(pair)
        entry = self.book[pair]
        price, volume = entry[0], entry[1]
        bid = entry[2] if len(entry) > 2 else None
        ask = entry[3] if len(entry) > 3 else None
        return Quote(
            venue=self.venue_id,
            symbol=pair,
            price=price,
            volume=volume,
            observed_at=0.0,
            venue_kind=self.kind,
            bid=bid,
            ask=ask,
        )

    def trading_fee_rate(self) -> float:
        return self.fee_rate

    async def withdrawal_fee(self, asset: str) -> float:
        return self.withdrawal_fees.get(asset, 0.0)

    async def close(self) -> None:
        self.closed = True


class BlockList(TransferEligibility):
    """Eligibility with an explicit set of (venue, asset) blocks."""

    def __init__(self, blocked=()):
        self.blocked = set(blocked)

    def is_transfer_blocked(self, venue: str, asset: str) -> bool:
        return (venue, asset) in self.blocked


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return load_settings(
        arbitrage_threshold=3.0,
        volume_spike_threshold=3.0,
        min_absolute_volume=200_000,
        active_set_size=50,
        active_set_ttl=1800,
        trade_amount=100.0,
        funding_currency="USDT",
        telegram_enabled=False,
    )


def make_market(venues: list[FakeVenue], clock=None, config=None) -> VenueMarketData:
    cache = ExpiringCache(clock=clock) if clock else ExpiringCache()
    return VenueMarketData(venues, cache, config=config or {"quotas": {"enabled": False}})
