"""
Arbitrage Engine.

Main orchestrator for the two-tier scanner.

Flow:
1. Discovery (slow): universe -> volume scan -> classify -> admit
2. Reinstate: historically profitable symbols back into the active set
3. Evaluation (fast): pairwise + cyclic over the active set
4. Deliver: reported opportunities go to the sink as background tasks
5. Sweep: expired cache entries and active-set entries
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Optional

from arbscout.arb.active_set import ActiveSetManager
from arbscout.arb.activity import ActivityScanner
from arbscout.arb.cyclic import CyclicArbitrageEngine
from arbscout.arb.pairwise import PairwiseArbitrageEngine, sort_by_profit
from arbscout.core.cache import ExpiringCache
from arbscout.core.config import Settings, get_settings, require_positive
from arbscout.core.logging import LoggerMixin
from arbscout.domain.models import AdmissionReason, ArbitrageOpportunity
from arbscout.providers.base import (
    AssetUniverseProvider,
    MarketDataProvider,
    TransferEligibility,
)
from arbscout.services.notifier import OpportunitySink


class ArbEngine(LoggerMixin):
    """
    Two-tier arbitrage scanner.

    Coordinates discovery, evaluation and sweep cycles. A cycle that is
    still running when its next tick fires is skipped, never overlapped.
    """

    def __init__(
        self,
        market: MarketDataProvider,
        universe: AssetUniverseProvider,
        eligibility: TransferEligibility,
        sink: OpportunitySink,
        settings: Optional[Settings] = None,
        config: Optional[dict] = None,
        cache: Optional[ExpiringCache] = None,
        active_set: Optional[ActiveSetManager] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize arbitrage engine.

        Args:
            market: Cross-venue market data
            universe: Asset universe for discovery
            eligibility: Deposit/withdrawal status lookup
            sink: Receiver for reported opportunities
            config: Parsed config.yaml
            cache: Shared expiring cache (swept by run_sweep)
            active_set: Working set (built from settings if not provided)
        """
        self.settings = settings or get_settings()
        self.config = config or {}
        self.market = market
        self.universe = universe
        self.eligibility = eligibility
        self.sink = sink
        self.cache = cache or ExpiringCache(clock=clock)
        self.active_set = active_set or ActiveSetManager(
            max_size=self.settings.active_set_size,
            ttl=self.settings.active_set_ttl,
            clock=clock,
        )

        self.scanner = ActivityScanner(market, self.settings, self.config, clock=clock)
        self.pairwise = PairwiseArbitrageEngine(market, eligibility, self.active_set, self.settings, clock=clock)
        self.cyclic = CyclicArbitrageEngine(market, self.active_set, self.settings, self.config, clock=clock)

        scanner_config = self.config.get("scanner") or {}
        self.sample_size = int(require_positive("scanner", "sample_size", scanner_config.get("sample_size", 200)))

        self.discovery_interval = self.settings.scan_interval
        self.evaluation_interval = float(require_positive(
            "evaluation", "interval_seconds",
            (self.config.get("evaluation") or {}).get("interval_seconds", 30),
        ))
        self.sweep_interval = float(require_positive(
            "sweep", "interval_seconds",
            (self.config.get("sweep") or {}).get("interval_seconds", 60),
        ))
        self.status_interval = float(require_positive(
            "exchange_status", "refresh_interval_seconds",
            (self.config.get("exchange_status") or {}).get("refresh_interval_seconds", 300),
        ))

        self._running: set[str] = set()
        self._cycles: dict[str, asyncio.Task] = {}
        self._pending: set[asyncio.Task] = set()
        self._stopping = False
        self._counters = {"discovery": 0, "evaluation": 0, "opportunities": 0, "skipped": 0}

    # ==============================================
    # Reentrancy
    # ==============================================

    async def _guarded(self, name: str, func: Callable[[], Awaitable[Any]]) -> Optional[Any]:
        """Run a cycle unless it is already running or the engine is stopping."""
        if self._stopping:
            return None
        if name in self._running:
            self._counters["skipped"] += 1
            self.logger.debug(f"{name} cycle still running, skipping this tick")
            return None

        self._running.add(name)
        self._cycles[name] = asyncio.current_task()
        try:
            return await func()
        finally:
            self._running.discard(name)
            self._cycles.pop(name, None)

    def is_running(self, name: str) -> bool:
        return name in self._running

    # ==============================================
    # Cycles
    # ==============================================

    async def run_discovery_cycle(self) -> Optional[list[str]]:
        """Scan the universe and admit anomalous symbols. Returns admitted symbols."""
        return await self._guarded("discovery", self._discover)

    async def _discover(self) -> list[str]:
        started = time.monotonic()
        symbols = await self.universe.get_symbols(limit=self.sample_size)
        if not symbols:
            self.logger.warning("Asset universe is empty, skipping discovery")
            return []

        samples = await self.scanner.scan(symbols)
        if self._stopping:
            return []

        admitted = []
        for proposal in self.scanner.classify(samples):
            if self.active_set.admit(proposal.symbol, proposal.reason, proposal.sample):
                admitted.append(proposal.symbol)
                if proposal.reason == AdmissionReason.VOLUME_SPIKE:
                    self._dispatch(self.sink.deliver_volume_alert(proposal.sample))
            else:
                self.active_set.update_snapshot(proposal.symbol, proposal.sample)

        admitted.extend(self.active_set.reinstate_historical())
        self._counters["discovery"] += 1

        stats = self.active_set.stats()
        self.logger.info(
            f"Discovery cycle done in {time.monotonic() - started:.1f}s: "
            f"{len(samples)} samples, {len(admitted)} admitted, "
            f"active set {stats['total']}/{stats['max_size']} {stats['by_reason']}"
        )
        return admitted

    async def run_evaluation_cycle(self) -> Optional[list[ArbitrageOpportunity]]:
        """Evaluate the active set. Returns reported opportunities, best first."""
        return await self._guarded("evaluation", self._evaluate)

    async def _evaluate(self) -> list[ArbitrageOpportunity]:
        members = self.active_set.members()
        if not members:
            self.logger.debug("Active set empty, nothing to evaluate")
            return []

        results = await asyncio.gather(
            self.pairwise.scan(members),
            self.cyclic.scan(self.active_set.newest(self.cyclic.head_size)),
            return_exceptions=True,
        )
        opportunities: list[ArbitrageOpportunity] = []
        for label, result in zip(("pairwise", "cyclic"), results):
            if isinstance(result, Exception):
                self.logger.warning(f"{label} evaluation failed: {result}")
                continue
            opportunities.extend(result)

        if self._stopping:
            return []

        opportunities = sort_by_profit(opportunities)
        for opportunity in opportunities:
            self._dispatch(self.sink.deliver(opportunity))

        self._counters["evaluation"] += 1
        self._counters["opportunities"] += len(opportunities)
        self.logger.info(
            f"Evaluation cycle: {len(members)} active symbols, {len(opportunities)} opportunities"
        )
        return opportunities

    async def run_sweep(self) -> Optional[dict[str, int]]:
        return await self._guarded("sweep", self._sweep)

    async def _sweep(self) -> dict[str, int]:
        cache_removed = self.cache.sweep()
        expired = self.active_set.sweep_expired()
        if cache_removed or expired:
            self.logger.debug(f"Sweep: {cache_removed} cache entries, {len(expired)} active symbols")
        return {"cache": cache_removed, "active_set": len(expired)}

    async def refresh_transfer_status(self) -> None:
        await self._guarded("exchange_status", self.eligibility.refresh)

    # ==============================================
    # Delivery
    # ==============================================

    def _dispatch(self, coro: Awaitable[None]) -> asyncio.Task:
        task = asyncio.ensure_future(self._deliver_safely(coro))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _deliver_safely(self, coro: Awaitable[None]) -> None:
        try:
            await coro
        except Exception as e:
            self.logger.warning(f"Opportunity delivery failed: {e}")

    @property
    def pending_deliveries(self) -> int:
        return len(self._pending)

    # ==============================================
    # Lifecycle
    # ==============================================

    def schedule(self, scheduler) -> None:
        """Register the periodic cycles on a SchedulerService."""
        scheduler.add_interval_job(
            "discovery", self.run_discovery_cycle, self.discovery_interval, run_immediately=True,
        )
        scheduler.add_interval_job("evaluation", self.run_evaluation_cycle, self.evaluation_interval)
        scheduler.add_interval_job("sweep", self.run_sweep, self.sweep_interval)
        scheduler.add_interval_job(
            "exchange_status", self.refresh_transfer_status, self.status_interval, run_immediately=True,
        )

    @property
    def stopping(self) -> bool:
        return self._stopping

    async def stop(self, drain_timeout: float = 5.0) -> None:
        """
        Graceful shutdown.

        Closes the active set and cache to writes, cancels in-flight cycles,
        gives pending deliveries `drain_timeout` seconds, then closes clients.
        """
        if self._stopping:
            return
        self._stopping = True
        self.logger.info("Stopping arbitrage engine...")

        self.active_set.close()
        self.cache.close()

        current = asyncio.current_task()
        cycles = [t for t in self._cycles.values() if t is not current and not t.done()]
        for task in cycles:
            task.cancel()
        if cycles:
            await asyncio.gather(*cycles, return_exceptions=True)

        if self._pending:
            done, still_pending = await asyncio.wait(set(self._pending), timeout=drain_timeout)
            for task in still_pending:
                task.cancel()
            if still_pending:
                self.logger.warning(f"Cancelled {len(still_pending)} undelivered alerts")
                await asyncio.gather(*still_pending, return_exceptions=True)

        for label, closer in (
            ("market", self.market.close),
            ("universe", self.universe.close),
            ("eligibility", self.eligibility.close),
        ):
            try:
                await closer()
            except Exception as e:
                self.logger.warning(f"Error closing {label}: {e}")

        self.logger.info("Arbitrage engine stopped")

    def status(self) -> dict[str, Any]:
        return {
            "stopping": self._stopping,
            "running": sorted(self._running),
            "active_set": self.active_set.stats(),
            "cache": self.cache.stats,
            "pending_deliveries": len(self._pending),
            "cycles": dict(self._counters),
        }
