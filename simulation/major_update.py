"""simulation/major_update.py — The coarse periodic pass.

The fine-grained event loop runs on every ``update(now)``; this pass
piggybacks on it but only does work when a period boundary is crossed::

    now // period != previous // period

which tolerates any step size (a long pause just runs it once).
Per boundary:

1. grow ambient demand by the demand rate
2. evaluate billing (may issue a bill)
3. sweep node FIFOs for timed-out requests
4. spawn a malicious cohort once demand draws attention
5. refresh the consumption-rate statistic and powersave state
6. ask the host for a snapshot
"""

from __future__ import annotations
from typing import Any

from core import tuning
from core.events import PowersaveChanged, SnapshotRequested
from components.cohort import CohortSpec
from components.economy import Tier
from simulation import billing
from simulation.spam import MAX_PROTECTION


class MajorUpdateScheduler:
    def __init__(self, engine: Any) -> None:
        self.engine = engine
        self.runs: int = 0
        self.last_run: int = engine.state.time
        self.powersaving: bool = False

    @property
    def period(self) -> int:
        return int(tuning.get("major", "period", 10_000))

    def crossed(self, previous: int, now: int) -> bool:
        return now // self.period != previous // self.period

    def run(self, previous: int, now: int) -> bool:
        """Do the pass if ``previous → now`` crosses a boundary."""
        if not self.crossed(previous, now):
            return False
        engine = self.engine
        state = engine.state

        state.demand += state.demand_rate
        billing.evaluate(state, now, engine.bus)
        engine.processing.sweep_timeouts(now)
        self.check_dos(now)

        billing.update_rate(state.ledger, now - self.last_run)
        self.last_run = now

        powersaving = billing.is_powersaving(state, now)
        if powersaving != self.powersaving:
            self.powersaving = powersaving
            print(f"[ENGINE] Powersave {'ON' if powersaving else 'OFF'} at t={now}")
            engine.bus.emit(PowersaveChanged(active=powersaving, time=now))

        engine.bus.emit(SnapshotRequested(time=now))
        self.runs += 1
        return True

    def check_dos(self, now: int) -> bool:
        """High demand attracts one malicious cohort at a time."""
        state = self.engine.state
        threshold = float(tuning.get("demand", "dos_threshold", 28.0))
        if state.demand < threshold or state.spam_protection >= MAX_PROTECTION:
            return False
        if any(c.malicious for c in state.user_specs):
            return False
        self.engine.add_cohort(CohortSpec(tier=Tier.BASE, malicious=True))
        return True
