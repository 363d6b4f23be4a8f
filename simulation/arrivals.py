"""simulation/arrivals.py — Synthetic traffic generation.

Each live cohort owns one pending ARRIVED event.  When it fires, the
generator samples the next inter-arrival time and posts the following
one, so a cohort's stream sustains itself with no per-tick cost.

Demand model
------------
Ambient demand (requests/s) is shaped by the tier's price with an
inverse power law::

    demand(tier) = ambient * (reference_price / max(price, floor)) ** k

so halving the price raises demand by 2**k.  Malicious cohorts do not
care about prices and follow the ambient value directly.

Batching
--------
Above ``batch_threshold`` requests/s, several logical requests travel as
one batch and the sampling rate is divided by the batch size.  The
aggregate throughput is unchanged while the number of live events stays
bounded.  Batches are capped at ``max_batch``.
"""

from __future__ import annotations
from typing import Any

from core import tuning
from core.events import CohortRetired
from components.economy import Tier, tier_value
from components.cohort import UserSpec
from components.requests import RequestEvent


def demand_for(state: Any, tier: Tier, malicious: bool = False) -> float:
    """Requests per second a single cohort of *tier* produces."""
    if malicious:
        return max(0.0, state.demand)
    price = state.service(tier).price
    floor = int(tuning.get("demand", "price_floor", 1))
    reference = tier_value("reference_price", tier, [100, 500, 2000, 50000])
    elasticity = float(tuning.get("demand", "elasticity", 1.5))
    return max(0.0, state.demand) * (reference / max(price, floor)) ** elasticity


def batch_for(demand: float) -> tuple[int, float]:
    """Return ``(amount, rate)`` for a stream of *demand* requests/s."""
    threshold = float(tuning.get("demand", "batch_threshold", 50.0))
    if demand <= threshold:
        return 1, demand
    max_batch = int(tuning.get("demand", "max_batch", 512))
    amount = min(max_batch, int(demand // threshold) + 1)
    return amount, demand / amount


class ArrivalGenerator:
    """Keeps every cohort's arrival stream armed."""

    def __init__(self, engine: Any) -> None:
        self.engine = engine
        self.retired: int = 0
        # Cohorts this generator removed; their in-flight work still lands
        self.retired_ids: set[int] = set()

    def bootstrap(self) -> int:
        """Arm every live cohort.  Call after a load or a new game."""
        state = self.engine.state
        count = 0
        for cohort in list(state.user_specs):
            if self.schedule(cohort, state.time):
                count += 1
        return count

    def schedule(self, cohort: UserSpec, now: int) -> bool:
        """Post *cohort*'s next arrival after *now*.

        A trial cohort whose next arrival would fall past its trial gets a
        zero-amount check at the trial end instead, and is retired when
        that fires.  Returns False if the cohort was retired here.
        """
        if cohort.trial_over(now):
            self.retire(cohort, now)
            return False

        state = self.engine.state
        demand = demand_for(state, cohort.tier, cohort.malicious)
        if demand <= 0.0:
            # Nothing to sample from: probe again next major period
            idle = int(tuning.get("major", "period", 10_000))
            when = now + idle
            if not cohort.permanent:
                when = min(when, cohort.trial_time)
            self.engine.queue.push(RequestEvent.arrived(
                when, cohort.id, 0, cohort.tier, cohort.malicious))
            return True

        amount, rate = batch_for(demand)
        when = now + self.engine.sampler.next_request(rate)
        if not cohort.permanent and when >= cohort.trial_time:
            # Next request would land after the trial: check back at its end
            self.engine.queue.push(RequestEvent.arrived(
                cohort.trial_time, cohort.id, 0, cohort.tier, cohort.malicious))
            return True

        self.engine.queue.push(RequestEvent.arrived(
            when, cohort.id, amount, cohort.tier, cohort.malicious))
        return True

    def on_arrival(self, event: RequestEvent) -> bool:
        """Re-arm the stream that produced *event*.

        Returns False when the event should be discarded (its cohort is
        gone or has just been retired).
        """
        if event.cohort_id is None:
            return True
        state = self.engine.state
        cohort = state.cohort(event.cohort_id)
        if cohort is None:
            self.engine.diagnostic(
                "arrivals", f"arrival for unknown cohort {event.cohort_id} ignored")
            return False
        if cohort.trial_over(event.timestamp):
            self.retire(cohort, event.timestamp)
            return False
        # This request is still inside the trial even if the next is not
        self.schedule(cohort, event.timestamp)
        return True

    def retire(self, cohort: UserSpec, now: int) -> None:
        state = self.engine.state
        if state.remove_cohort(cohort.id):
            self.retired += 1
            self.retired_ids.add(cohort.id)
            self.engine.bus.emit(CohortRetired(cohort_id=cohort.id,
                                               reason="trial_over", time=now))
