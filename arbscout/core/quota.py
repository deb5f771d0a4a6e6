"""
Call-budget management for venue and API usage.

Tracks per-minute and per-day call counts per provider based on the
`quotas` section of config.yaml. Providers consult it before every live
call; a denied call is treated as "no data" for that cycle.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from cachetools import TTLCache


@dataclass
class QuotaCheckResult:
    allowed: bool
    reason: str = ""


class QuotaManager:
    """
    Simple in-memory quota tracker.

    Limits are configured in config.yaml under quotas:

        quotas:
          enabled: true
          binance: {per_minute: 600}
          coingecko: {per_minute: 30, per_day: 10000}
    """

    def __init__(self, config: Optional[dict] = None):
        quota_config = dict((config or {}).get("quotas") or {})
        self.enabled = bool(quota_config.pop("enabled", True))
        self.quotas: dict[str, dict] = quota_config

        # Counters reset by TTL.
        self._per_minute = TTLCache(maxsize=1024, ttl=60)
        self._per_day = TTLCache(maxsize=1024, ttl=86400)

    def check_and_consume(self, provider: str, cost: int = 1) -> QuotaCheckResult:
        """
        Check quota and consume if allowed.

        Args:
            provider: Provider or venue name
            cost: Cost units to consume
        """
        if not self.enabled:
            return QuotaCheckResult(True)

        limits = self.quotas.get(provider) or {}
        if not limits:
            return QuotaCheckResult(True)

        per_minute = limits.get("per_minute")
        per_day = limits.get("per_day")

        # Check without consuming first.
        if per_minute is not None:
            used = self._per_minute.get(provider, 0)
            if used + cost > per_minute:
                return QuotaCheckResult(False, "per_minute quota exceeded")

        if per_day is not None:
            used = self._per_day.get(provider, 0)
            if used + cost > per_day:
                return QuotaCheckResult(False, "per_day quota exceeded")

        if per_minute is not None:
            self._per_minute[provider] = self._per_minute.get(provider, 0) + cost
        if per_day is not None:
            self._per_day[provider] = self._per_day.get(provider, 0) + cost

        return QuotaCheckResult(True)

    def get_usage(self, provider: str) -> dict[str, int]:
        """Get current usage counters for a provider."""
        return {
            "per_minute": self._per_minute.get(provider, 0),
            "per_day": self._per_day.get(provider, 0),
        }
