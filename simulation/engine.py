"""simulation/engine.py — The game engine.

Provides ``GameEngine``, which owns the event queue, the random source,
the event bus and every policy object, and exposes the three calls the
host needs::

    engine = GameEngine(state, catalog=default_catalog())
    engine.bootstrap_events()          # once, after new game / load

    # every frame
    engine.update(now)                 # now in time units
    engine.apply_action(OpClick(Tier.BASE))

``update`` pops every queued event with ``timestamp <= now`` in time
order, advancing ``state.time`` to each event as it goes, then runs the
major update if a period boundary was crossed.  Pausing the host simply
means not calling it.
"""

from __future__ import annotations
from typing import Any

from core.events import (
    ActionRejected, CohortAdded, Diagnostic, EventBus,
)
from components.cohort import CohortSpec, UserSpec
from components.economy import Tier
from components.requests import RequestEvent, Stage
from components.world import WorldState
from simulation import billing
from simulation.actions import PlayerAction, apply_action
from simulation.arrivals import ArrivalGenerator
from simulation.cards import CardCatalog
from simulation.major_update import MajorUpdateScheduler
from simulation.processing import ProcessingScheduler
from simulation.queue import EventQueue
from simulation.routing import RoutingPolicy
from simulation.sampler import Sampler
from simulation.spam import MAX_PROTECTION, SpamFilter


class GameEngine:
    """Steps one ``WorldState`` forward in time."""

    def __init__(self, state: WorldState | None = None,
                 sampler: Sampler | None = None,
                 bus: EventBus | None = None,
                 catalog: CardCatalog | None = None) -> None:
        self.state = state if state is not None else WorldState()
        self.queue = EventQueue()
        self.sampler = sampler if sampler is not None else Sampler()
        self.bus = bus if bus is not None else EventBus()
        self.catalog = catalog if catalog is not None else CardCatalog()

        self.spam = SpamFilter(self)
        self.arrivals = ArrivalGenerator(self)
        self.processing = ProcessingScheduler(self)
        self.routing = RoutingPolicy(self)
        self.major = MajorUpdateScheduler(self)

        # Stats
        self.events_processed: int = 0

    # ── Setup ────────────────────────────────────────────────────────

    def bootstrap_events(self) -> int:
        """Arm an arrival for every live cohort.

        Call once after a new game or a load.  Returns the number armed.
        """
        count = self.arrivals.bootstrap()
        print(f"[ENGINE] Bootstrapped: {count} cohort stream(s) armed, "
              f"{len(self.state.nodes)} node(s)")
        return count

    def load_state(self, state: WorldState) -> None:
        """Swap in a restored world and re-arm it from scratch."""
        self.state = state
        self.queue.clear()
        self.bus.clear()
        self.arrivals.retired_ids.clear()
        self.routing.waiting.clear()
        self.major.last_run = state.time
        self.major.powersaving = billing.is_powersaving(state)
        self.bootstrap_events()

    # ── Per-frame tick ───────────────────────────────────────────────

    def update(self, now: int) -> int:
        """Process every event up to *now*.  Returns events handled."""
        state = self.state
        previous = state.time
        if now < previous:
            self.diagnostic("engine", f"update to t={now} before t={previous} ignored")
            return 0

        handled = 0
        while True:
            next_time = self.queue.peek_next_time()
            if next_time is None or next_time > now:
                break
            event = self.queue.pop()
            state.time = max(state.time, event.timestamp)
            self._dispatch(event)
            handled += 1

        state.time = now
        self.major.run(previous, now)
        self.events_processed += handled
        return handled

    def _dispatch(self, event: RequestEvent) -> None:
        if event.stage is Stage.ARRIVED:
            self._on_arrived(event)
        elif event.stage is Stage.ROUTED:
            self.routing.on_routed(event)
        elif event.stage is Stage.PROCESSED:
            self.processing.complete(event)

    def _on_arrived(self, event: RequestEvent) -> None:
        if not self.arrivals.on_arrival(event):
            return
        if event.amount <= 0:
            return   # idle probe for a zero-demand cohort
        self.state.requests_received += event.amount
        self.routing.route(event)

    # ── Actions ──────────────────────────────────────────────────────

    def apply_action(self, action: PlayerAction) -> bool:
        """Apply a player action.  False means rejected, nothing changed."""
        return apply_action(self, action)

    def reject(self, action: str, reason: str) -> bool:
        print(f"[ENGINE] {action} rejected: {reason}")
        self.bus.emit(ActionRejected(action=action, reason=reason,
                                     time=self.state.time))
        return False

    # ── Hooks used by the policies ───────────────────────────────────

    def add_cohort(self, spec: CohortSpec) -> UserSpec | None:
        """Create a cohort from *spec* and arm its first arrival."""
        state = self.state
        if spec.malicious and state.spam_protection >= MAX_PROTECTION:
            return None
        trial_time = state.time + spec.trial_duration if spec.trial_duration > 0 else 0
        cohort = state.add_cohort(spec.tier, trial_time, spec.malicious)
        self.bus.emit(CohortAdded(cohort_id=cohort.id, tier=int(cohort.tier),
                                  malicious=cohort.malicious, time=state.time))
        self.arrivals.schedule(cohort, state.time)
        return cohort

    def drop(self, amount: int) -> None:
        self.state.requests_dropped += amount

    def diagnostic(self, category: str, message: str) -> None:
        print(f"[ENGINE] {category}: {message}")
        self.bus.emit(Diagnostic(category=category, message=message,
                                 time=self.state.time))

    # ── Read-only views ──────────────────────────────────────────────

    def powersaving(self) -> bool:
        return billing.is_powersaving(self.state)

    def service_view(self, tier: Tier) -> dict[str, Any]:
        service = self.state.service(tier)
        return {
            "tier": tier.name,
            "price": service.price,
            "entitlement": service.entitlement,
            "available": service.available,
            "total": service.total,
            "unlocked": service.unlocked,
            "private": service.private,
        }

    def totals(self) -> dict[str, Any]:
        state = self.state
        cpu, memory = state.total_processing()
        ledger = state.ledger
        return {
            "time": state.time,
            "funds": state.funds,
            "earned": state.earned,
            "spent": state.spent,
            "demand": state.demand,
            "nodes": len(state.nodes),
            "cohorts": len(state.user_specs),
            "cpu_load": cpu,
            "memory_load": memory,
            "consumption": ledger.consumption,
            "consumption_rate": ledger.consumption_rate,
            "total_due": ledger.total_due,
            "total_paid": ledger.total_paid,
            "powersaving": self.powersaving(),
            "received": state.requests_received,
            "fulfilled": state.requests_fulfilled,
            "dropped": state.requests_dropped,
            "failed": state.requests_failed,
            "routing_queue": len(self.routing.waiting),
            "pending_events": len(self.queue),
        }
