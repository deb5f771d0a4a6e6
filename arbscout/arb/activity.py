"""
Activity Scanner.

Samples volume for a broad slice of the asset universe, keeps a rolling
per-symbol volume window and classifies anomalies:

- volume spike: spike_ratio >= spike threshold and current >= min volume
- high volume: current >= 2 x min volume
- cross-venue disparity: >= 2 venues with volume and max/min >= 3

The scanner only proposes admissions; it never reports opportunities and
never removes active-set entries.
"""

import asyncio
import time
from collections import deque
from typing import Callable, Optional

from arbscout.core.config import Settings, get_settings, require_positive
from arbscout.core.logging import LoggerMixin
from arbscout.domain.models import (
    AdmissionProposal,
    AdmissionReason,
    VolumeSample,
    make_pair,
)
from arbscout.providers.base import MarketDataProvider

HISTORY_WINDOW = 12
DISPARITY_RATIO = 3.0
HIGH_VOLUME_MULTIPLIER = 2.0


def format_volume(volume: float) -> str:
    """Compact money formatting for logs, e.g. 1_250_000 -> '$1.25M'."""
    if volume >= 1_000_000:
        return f"${volume / 1_000_000:.2f}M"
    if volume >= 1_000:
        return f"${volume / 1_000:.2f}K"
    return f"${volume:.2f}"


class ActivityScanner(LoggerMixin):
    """
    Volume-anomaly detector feeding the active set.

    Config (config.yaml `scanner` section):
        batch_size: symbols per batch (default 20)
        batch_delay_seconds: pause between batches (default 2)
        volume_venues: venues sampled per symbol (default 5)
    """

    def __init__(
        self,
        market: MarketDataProvider,
        settings: Optional[Settings] = None,
        config: Optional[dict] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.market = market
        self.settings = settings or get_settings()
        scanner_config = (config or {}).get("scanner") or {}

        self.batch_size = int(require_positive("scanner", "batch_size", scanner_config.get("batch_size", 20)))
        self.batch_delay = require_positive(
            "scanner", "batch_delay_seconds", scanner_config.get("batch_delay_seconds", 2.0), allow_zero=True
        )
        self.volume_venues = int(require_positive("scanner", "volume_venues", scanner_config.get("volume_venues", 5)))
        self.window = int(require_positive("scanner", "history_window", scanner_config.get("history_window", HISTORY_WINDOW)))

        self.spike_threshold = self.settings.volume_spike_threshold
        self.min_volume = self.settings.min_absolute_volume
        self.funding = self.settings.funding_currency

        self._clock = clock
        self._history: dict[str, deque] = {}

    # ==============================================
    # Sampling
    # ==============================================

    async def scan(self, symbols: list[str]) -> list[VolumeSample]:
        """
        Sample volume for every symbol, batch by batch.

        Returns:
            One VolumeSample per symbol that reported any volume.
        """
        self.logger.info(f"Starting volume scan of {len(symbols)} symbols...")
        samples: list[VolumeSample] = []

        for start in range(0, len(symbols), self.batch_size):
            batch = symbols[start:start + self.batch_size]
            samples.extend(await self._scan_batch(batch))

            if start + self.batch_size < len(symbols) and self.batch_delay > 0:
                await asyncio.sleep(self.batch_delay)

        self.logger.info(f"Volume scan complete. {len(samples)} symbols with data.")
        return samples

    async def _scan_batch(self, symbols: list[str]) -> list[VolumeSample]:
        results = await asyncio.gather(
            *(self.sample_symbol(symbol) for symbol in symbols),
            return_exceptions=True,
        )
        samples = []
        for symbol, result in zip(symbols, results):
            if isinstance(result, Exception):
                self.logger.debug(f"Failed to get volume for {symbol}: {result}")
            elif result is not None:
                samples.append(result)
        return samples

    async def sample_symbol(self, symbol: str) -> Optional[VolumeSample]:
        """Aggregate volume for one symbol and update its rolling window."""
        pair = make_pair(symbol, self.funding)
        venues = self.market.list_venues()[: self.volume_venues]

        quotes = await asyncio.gather(
            *(self.market.fetch_quote(venue, pair) for venue in venues),
            return_exceptions=True,
        )
        venue_volumes = {}
        for venue, quote in zip(venues, quotes):
            if isinstance(quote, Exception) or quote is None:
                continue
            if quote.volume > 0:
                venue_volumes[venue] = quote.volume

        current = sum(venue_volumes.values())
        if current == 0:
            return None

        history = self._history.setdefault(symbol, deque(maxlen=self.window))
        history.append(current)
        average = sum(history) / len(history)

        return VolumeSample(
            symbol=symbol,
            current_volume=current,
            rolling_average_volume=average,
            spike_ratio=current / average if average > 0 else 1.0,
            observed_at=self._clock(),
            venue_volumes=venue_volumes,
        )

    def history(self, symbol: str) -> list[float]:
        return list(self._history.get(symbol, ()))

    def clear_history(self) -> None:
        self._history.clear()

    # ==============================================
    # Classification
    # ==============================================

    def is_volume_spike(self, sample: VolumeSample) -> bool:
        return sample.spike_ratio >= self.spike_threshold and sample.current_volume >= self.min_volume

    def is_high_volume(self, sample: VolumeSample) -> bool:
        return sample.current_volume >= HIGH_VOLUME_MULTIPLIER * self.min_volume

    @staticmethod
    def disparity_ratio(sample: VolumeSample) -> Optional[float]:
        """max/min across venues with non-zero volume, None with fewer than 2."""
        volumes = [v for v in sample.venue_volumes.values() if v > 0]
        if len(volumes) < 2:
            return None
        return max(volumes) / min(volumes)

    def identify_volume_spikes(self, samples: list[VolumeSample]) -> list[VolumeSample]:
        spikes = [s for s in samples if self.is_volume_spike(s)]
        for s in spikes:
            self.logger.info(
                f"Volume spike detected: {s.symbol} - {s.spike_ratio:.2f}x ({format_volume(s.current_volume)})"
            )
        return spikes

    def identify_high_volume(self, samples: list[VolumeSample]) -> list[VolumeSample]:
        high = [s for s in samples if self.is_high_volume(s)]
        for s in high:
            self.logger.debug(f"High volume detected: {s.symbol} - {format_volume(s.current_volume)}")
        return high

    def identify_disparities(self, samples: list[VolumeSample]) -> list[VolumeSample]:
        found = []
        for s in samples:
            ratio = self.disparity_ratio(s)
            if ratio is not None and ratio >= DISPARITY_RATIO:
                self.logger.info(f"Cross-venue disparity: {s.symbol} - {ratio:.2f}x difference")
                found.append(s)
        return found

    def classify(self, samples: list[VolumeSample]) -> list[AdmissionProposal]:
        """
        Turn a complete cycle's samples into admission proposals.

        Ordered spike, high volume, disparity; a symbol can appear under
        several reasons and the first admission wins.
        """
        proposals = [
            AdmissionProposal(s.symbol, AdmissionReason.VOLUME_SPIKE, s)
            for s in self.identify_volume_spikes(samples)
        ]
        proposals.extend(
            AdmissionProposal(s.symbol, AdmissionReason.HIGH_VOLUME, s)
            for s in self.identify_high_volume(samples)
        )
        proposals.extend(
            AdmissionProposal(s.symbol, AdmissionReason.CROSS_VENUE_DISPARITY, s)
            for s in self.identify_disparities(samples)
        )
        return proposals
