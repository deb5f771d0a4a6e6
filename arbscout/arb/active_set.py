"""
Active Set Manager.

Bounded, reason-tagged, TTL-evicted collection of symbols that deserve the
expensive cross-venue evaluation. Also keeps long-run profitability per
symbol so chronically profitable assets are re-admitted without a fresh
volume trigger.

Every mutation is synchronous (no awaits), so under the single event loop
admission + eviction is atomic with respect to the capacity bound.
"""

import time
from typing import Callable, Optional

from arbscout.core.logging import LoggerMixin
from arbscout.core.timeutil import days
from arbscout.domain.models import (
    ActiveSetEntry,
    AdmissionReason,
    HistoricalStat,
    VolumeSample,
)


class ActiveSetManager(LoggerMixin):
    """
    Working set for the arbitrage engines.

    Capacity pressure is relieved FIFO: at capacity, the entry with the
    smallest admitted_at is evicted before the new one is inserted.
    """

    def __init__(
        self,
        max_size: int = 50,
        ttl: float = 1800,
        clock: Callable[[], float] = time.time,
        history_window_days: float = 7,
        min_occurrences: int = 3,
    ):
        if max_size < 1:
            raise ValueError("max_size must be >= 1")
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self.max_size = max_size
        self.ttl = ttl
        self.history_window = days(history_window_days)
        self.min_occurrences = min_occurrences
        self._clock = clock
        self._entries: dict[str, ActiveSetEntry] = {}
        self._history: dict[str, HistoricalStat] = {}
        self._closed = False

    # ==============================================
    # Membership
    # ==============================================

    def admit(
        self,
        symbol: str,
        reason: AdmissionReason,
        snapshot: Optional[VolumeSample] = None,
    ) -> bool:
        """
        Admit a symbol.

        Returns:
            True if the symbol was inserted, False if it was already present
            or the set is closed.
        """
        if self._closed:
            return False
        if symbol in self._entries:
            self.logger.debug(f"{symbol} already in active set")
            return False

        now = self._clock()
        if len(self._entries) >= self.max_size:
            evicted = self._evict_oldest()
            self.logger.info(
                f"Active set full ({self.max_size}), evicted oldest entry {evicted}"
            )

        self._entries[symbol] = ActiveSetEntry(
            symbol=symbol,
            admitted_at=now,
            reason=reason,
            last_volume_snapshot=snapshot or VolumeSample.empty(symbol, now),
        )
        self.logger.info(
            f"Admitted {symbol} ({reason.value}) - {len(self._entries)}/{self.max_size}"
        )
        return True

    def _evict_oldest(self) -> Optional[str]:
        if not self._entries:
            return None
        oldest = min(self._entries.values(), key=lambda e: e.admitted_at)
        del self._entries[oldest.symbol]
        return oldest.symbol

    def remove(self, symbol: str) -> bool:
        """Explicitly drop a symbol."""
        removed = self._entries.pop(symbol, None) is not None
        if removed:
            self.logger.info(f"Removed {symbol} from active set - {len(self._entries)}/{self.max_size}")
        return removed

    def sweep_expired(self) -> list[str]:
        """Remove every entry older than the TTL. Returns removed symbols."""
        now = self._clock()
        expired = [s for s, e in self._entries.items() if e.age(now) > self.ttl]
        for symbol in expired:
            del self._entries[symbol]
        if expired:
            self.logger.info(f"Swept {len(expired)} expired symbols from active set")
        return expired

    def update_snapshot(self, symbol: str, sample: VolumeSample) -> None:
        """Refresh the volume evidence of an existing entry."""
        entry = self._entries.get(symbol)
        if entry is not None:
            entry.last_volume_snapshot = sample

    def clear(self) -> None:
        self._entries.clear()
        self.logger.info("Active set cleared")

    def close(self) -> None:
        """Stop accepting admissions (shutdown)."""
        self._closed = True

    # ==============================================
    # Historical profitability
    # ==============================================

    def record_outcome(self, symbol: str, profit_pct: float) -> HistoricalStat:
        """Fold a reported opportunity into the symbol's running stats."""
        stat = self._history.get(symbol)
        if stat is None:
            stat = HistoricalStat(symbol=symbol)
            self._history[symbol] = stat
        stat.record(profit_pct, self._clock())
        self.logger.debug(
            f"Recorded opportunity for {symbol}: {stat.occurrence_count} total occurrences"
        )
        return stat

    def historical_stat(self, symbol: str) -> Optional[HistoricalStat]:
        return self._history.get(symbol)

    def historically_profitable(self) -> list[str]:
        """Symbols seen often enough, recently enough."""
        cutoff = self._clock() - self.history_window
        return [
            stat.symbol
            for stat in self._history.values()
            if stat.occurrence_count >= self.min_occurrences and stat.last_seen_at > cutoff
        ]

    def reinstate_historical(self) -> list[str]:
        """Admit historically profitable symbols while capacity allows."""
        reinstated = []
        for symbol in self.historically_profitable():
            if symbol in self._entries or len(self._entries) >= self.max_size:
                continue
            if self.admit(symbol, AdmissionReason.HISTORICAL_PATTERN):
                stat = self._history[symbol]
                self.logger.info(
                    f"Reinstated {symbol} on historical pattern "
                    f"({stat.occurrence_count} past opportunities, "
                    f"avg {stat.average_profit_pct:.2f}%)"
                )
                reinstated.append(symbol)
        return reinstated

    # ==============================================
    # Observability
    # ==============================================

    def members(self) -> list[str]:
        """Symbols ordered by admission time, oldest first."""
        return [e.symbol for e in sorted(self._entries.values(), key=lambda e: e.admitted_at)]

    def newest(self, limit: int) -> list[str]:
        """Most recently admitted symbols, newest first."""
        return list(reversed(self.members()))[:limit]

    def get(self, symbol: str) -> Optional[ActiveSetEntry]:
        return self._entries.get(symbol)

    def is_active(self, symbol: str) -> bool:
        return symbol in self._entries

    def size(self) -> int:
        return len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, symbol: str) -> bool:
        return symbol in self._entries

    def stats(self) -> dict:
        by_reason: dict[str, int] = {}
        for entry in self._entries.values():
            by_reason[entry.reason.value] = by_reason.get(entry.reason.value, 0) + 1
        return {
            "total": len(self._entries),
            "max_size": self.max_size,
            "by_reason": by_reason,
            "historical_symbols": len(self._history),
        }
