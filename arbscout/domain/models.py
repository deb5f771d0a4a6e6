"""
Core data models for Arbscout.

All models use dataclass and provide to_dict() for JSON serialization.
These models represent the domain objects without external API dependencies.
Timestamps are epoch seconds.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Optional


class VenueKind(str, Enum):
    """Where a quote comes from."""
    CENTRALIZED = "centralized"
    DECENTRALIZED = "decentralized"


class AdmissionReason(str, Enum):
    """Why a symbol was admitted to the active set."""
    VOLUME_SPIKE = "volume_spike"
    HIGH_VOLUME = "high_volume"
    CROSS_VENUE_DISPARITY = "cross_venue_disparity"
    HISTORICAL_PATTERN = "historical_pattern"


class OpportunityKind(str, Enum):
    """Arbitrage opportunity type."""
    PAIRWISE = "pairwise"
    CYCLIC = "cyclic"


def make_pair(base: str, quote: str) -> str:
    """Build a ccxt-style trading pair, e.g. make_pair('sol', 'usdt') -> 'SOL/USDT'."""
    return f"{base.upper()}/{quote.upper()}"


@dataclass(frozen=True)
class Quote:
    """
    Top-of-book snapshot of one trading pair on one venue.

    `price` is the last traded price; `bid`/`ask` are optional and only
    required by the cyclic engine.
    """
    venue: str
    symbol: str             # trading pair, e.g. "SOL/USDT"
    price: float
    volume: float
    observed_at: float
    venue_kind: VenueKind = VenueKind.CENTRALIZED
    bid: Optional[float] = None
    ask: Optional[float] = None

    @property
    def base(self) -> str:
        return self.symbol.split("/")[0]

    @property
    def quote_currency(self) -> str:
        parts = self.symbol.split("/")
        return parts[1] if len(parts) > 1 else ""

    @property
    def is_usable(self) -> bool:
        return self.price > 0

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["venue_kind"] = self.venue_kind.value
        return data


@dataclass
class VolumeSample:
    """
    Aggregated volume observation for one symbol in one discovery cycle.

    spike_ratio = current_volume / rolling_average_volume.
    """
    symbol: str
    current_volume: float
    rolling_average_volume: float
    spike_ratio: float
    observed_at: float
    venue_volumes: dict[str, float] = field(default_factory=dict)

    @classmethod
    def empty(cls, symbol: str, observed_at: float) -> "VolumeSample":
        """Placeholder snapshot for admissions without a volume trigger."""
        return cls(
            symbol=symbol,
            current_volume=0.0,
            rolling_average_volume=0.0,
            spike_ratio=1.0,
            observed_at=observed_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class AdmissionProposal:
    """A scanner's suggestion that a symbol deserves full evaluation."""
    symbol: str
    reason: AdmissionReason
    sample: VolumeSample


@dataclass
class ActiveSetEntry:
    """A symbol currently under full arbitrage evaluation."""
    symbol: str
    admitted_at: float
    reason: AdmissionReason
    last_volume_snapshot: VolumeSample

    def age(self, now: float) -> float:
        return now - self.admitted_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "admitted_at": self.admitted_at,
            "reason": self.reason.value,
            "last_volume_snapshot": self.last_volume_snapshot.to_dict(),
        }


@dataclass
class HistoricalStat:
    """Long-run record of reported opportunities for one symbol."""
    symbol: str
    occurrence_count: int = 0
    average_profit_pct: float = 0.0
    last_seen_at: float = 0.0

    def record(self, profit_pct: float, now: float) -> None:
        """Fold one observation into the running mean."""
        total = self.average_profit_pct * self.occurrence_count + profit_pct
        self.occurrence_count += 1
        self.average_profit_pct = total / self.occurrence_count
        self.last_seen_at = now

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class FeeBreakdown:
    """
    All costs of one opportunity, in funding-currency units.

    Components are clamped at zero; total is always their sum.
    """
    entry_fee: float = 0.0
    exit_fee: float = 0.0
    transfer_fee: float = 0.0
    network_fee: float = 0.0

    def __post_init__(self):
        for name in ("entry_fee", "exit_fee", "transfer_fee", "network_fee"):
            object.__setattr__(self, name, max(float(getattr(self, name)), 0.0))

    @property
    def total(self) -> float:
        return self.entry_fee + self.exit_fee + self.transfer_fee + self.network_fee

    @property
    def trading_fees(self) -> float:
        return self.entry_fee + self.exit_fee

    def to_dict(self) -> dict[str, Any]:
        return {**asdict(self), "total": self.total}


@dataclass(frozen=True)
class OpportunityLeg:
    """One conversion step: which market, where, at what price."""
    venue: str
    price: float
    pair: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ArbitrageOpportunity:
    """
    A fee-adjusted arbitrage signal.

    Pairwise opportunities have two legs (buy, sell); cyclic ones have three
    legs on a single venue plus the currency path.
    """
    symbol: str
    kind: OpportunityKind
    legs: list[OpportunityLeg]
    gross_difference_pct: float
    gross_profit_amount: float
    fees: FeeBreakdown
    net_profit_amount: float
    net_profit_pct: float
    trade_amount: float
    observed_at: float
    path: Optional[list[str]] = None

    @property
    def buy_venue(self) -> str:
        return self.legs[0].venue

    @property
    def sell_venue(self) -> str:
        return self.legs[-1].venue

    @property
    def buy_price(self) -> float:
        return self.legs[0].price

    @property
    def sell_price(self) -> float:
        return self.legs[-1].price

    def is_reportable(self, threshold_pct: float) -> bool:
        return self.net_profit_amount > 0 and self.net_profit_pct >= threshold_pct

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "kind": self.kind.value,
            "legs": [leg.to_dict() for leg in self.legs],
            "gross_difference_pct": self.gross_difference_pct,
            "gross_profit_amount": self.gross_profit_amount,
            "fees": self.fees.to_dict(),
            "net_profit_amount": self.net_profit_amount,
            "net_profit_pct": self.net_profit_pct,
            "trade_amount": self.trade_amount,
            "observed_at": self.observed_at,
            "path": list(self.path) if self.path else None,
        }


@dataclass
class Asset:
    """An entry of the tradable-asset universe."""
    symbol: str
    name: str = ""
    market_cap: Optional[float] = None
    rank: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Asset":
        return cls(**data)
