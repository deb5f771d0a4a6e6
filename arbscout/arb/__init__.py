"""
Arbscout Arbitrage Module.

Two-tier scanning core.

Components:
- activity: Volume-anomaly detection over the asset universe
- active_set: Bounded TTL working set + historical profitability
- pairwise: Cross-venue arbitrage with full fee accounting
- cyclic: Same-venue triangular arbitrage
- engine: Orchestrator (discovery, evaluation, sweep, shutdown)
"""

from arbscout.arb.active_set import ActiveSetManager
from arbscout.arb.activity import ActivityScanner
from arbscout.arb.cyclic import CyclicArbitrageEngine, simulate_cycle
from arbscout.arb.engine import ArbEngine
from arbscout.arb.pairwise import PairwiseArbitrageEngine, evaluate_pair

__all__ = [
    "ActiveSetManager",
    "ActivityScanner",
    "CyclicArbitrageEngine",
    "simulate_cycle",
    "ArbEngine",
    "PairwiseArbitrageEngine",
    "evaluate_pair",
]
