"""simulation/processing.py — Routed → Processed on a compute node.

Admission runs three hard gates in order; failing any of them drops the
batch (counted in ``requests_dropped``) without leaking memory:

1. RESERVATION: grow the node's standing reservation to what the
   current cache/software levels need for this tier.
2. MEMORY: the batch's own working memory must fit next to it.
3. CORE: a free core starts the job now; otherwise the batch waits in
   the node's bounded local FIFO, holding its memory.

On completion the memory is released, revenue and op counters are
booked, and freed cores are refilled: the shared routing queue first
(when this node routes), then the node's own FIFO.
"""

from __future__ import annotations
from typing import Any

from core import tuning
from components.economy import Tier, tier_value
from components.hardware import ComputeNode
from components.requests import RequestEvent, Stage, WaitingRequest
from simulation import billing


_CACHE_HIT_CHANCE = [0.0, 0.25, 0.5, 0.75]


def request_memory(tier: Tier) -> int:
    """Working memory for one request of *tier*."""
    return tier_value("request_memory", tier,
                      [256_000, 1_000_000, 4_000_000, 16_000_000])


def reservation_for(tier: Tier, cache_level: int, software_level: int) -> int:
    """Standing memory a node must set aside to serve *tier*."""
    software = tier_value("software_reserve", tier,
                          [1_000_000, 4_000_000, 16_000_000, 64_000_000])
    cache = tier_value("cache_reserve", tier,
                       [8_000_000, 32_000_000, 128_000_000, 512_000_000])
    return software_level * software + cache_level * cache


def software_factor(level: int) -> float:
    """Duration multiplier; strictly decreasing in *level*."""
    speedup = float(tuning.get("processing", "software_speedup", 0.25))
    return 1.0 / (1.0 + speedup * level)


def cache_hit_chance(level: int) -> float:
    table = tuning.get("processing", "cache_hit_chance", _CACHE_HIT_CHANCE)
    return table[min(max(level, 0), len(table) - 1)]


class ProcessingScheduler:
    def __init__(self, engine: Any) -> None:
        self.engine = engine
        self.cache_hits: int = 0

    # ── Duration ─────────────────────────────────────────────────────

    def duration_for(self, node: ComputeNode, tier: Tier,
                     powersaving: bool) -> int:
        state = self.engine.state
        base = tier_value("base_duration", tier, [2000, 3000, 4500, 7000])
        duration = base / node.cpu_speed * software_factor(state.software_level)
        if powersaving:
            duration *= int(tuning.get("processing", "powersave_slowdown", 4))
        duration = max(1, int(duration))

        if self.engine.sampler.gen_bool(cache_hit_chance(state.cache_level)):
            self.cache_hits += 1
            speedup = int(tuning.get("processing", "cache_speedup", 100))
            duration = max(1, duration // speedup)
        return duration

    # ── Admission ────────────────────────────────────────────────────

    def admit(self, event: RequestEvent) -> bool:
        """Accept a ROUTED batch on its node.  False means dropped."""
        state = self.engine.state
        now = event.timestamp
        node = state.node(event.node_id)
        if node is None:
            self.engine.diagnostic(
                "processing", f"request routed to unknown node {event.node_id}")
            self.engine.drop(event.amount)
            return False

        # 1. standing reservation
        required = reservation_for(event.tier, state.cache_level,
                                   state.software_level)
        if required > node.ram_reserved:
            if node.ram_usage + required > node.ram_capacity:
                self.engine.drop(event.amount)
                return False
            node.ram_reserved = required

        # 2. working memory for the batch
        memory = request_memory(event.tier) * event.amount
        if memory > node.memory_free:
            self.engine.drop(event.amount)
            return False

        # 3. core, or wait in line
        powersaving = billing.is_powersaving(state, now)
        if node.has_free_core(powersaving):
            node.ram_usage += memory
            self.begin(node, event, now, memory, powersaving)
            return True

        capacity = int(tuning.get("processing", "node_queue_capacity", 256))
        if len(node.waiting) >= capacity:
            self.engine.drop(event.amount)
            return False
        node.ram_usage += memory
        node.waiting.append(WaitingRequest(
            amount=event.amount, cohort_id=event.cohort_id, tier=event.tier,
            memory=memory, arrival_time=now, malicious=event.malicious))
        return True

    def begin(self, node: ComputeNode, event: RequestEvent, start: int,
              memory: int, powersaving: bool) -> None:
        node.processing += 1
        duration = self.duration_for(node, event.tier, powersaving)
        self.engine.queue.push(event.into_processed(start, duration, memory))

    # ── Completion ───────────────────────────────────────────────────

    def complete(self, event: RequestEvent) -> None:
        """Book a PROCESSED batch and refill the node."""
        state = self.engine.state
        node = state.node(event.node_id)
        if node is None:
            self.engine.diagnostic(
                "processing", f"completion on unknown node {event.node_id}")
            return
        node.ram_usage = max(0, node.ram_usage - event.memory)
        node.processing = max(0, node.processing - 1)

        if event.malicious:
            state.requests_failed += event.amount
        else:
            state.requests_fulfilled += event.amount
            service = state.service(event.tier)
            service.available += event.amount
            service.total += event.amount
            revenue = self.revenue_for(event)
            state.funds += revenue
            state.earned += revenue

        billing.accrue_job(state, event.amount)
        self.drain(node, event.timestamp)

    def revenue_for(self, event: RequestEvent) -> int:
        """Money earned by a finished batch.

        Paying cohorts pay the price; everyone (trials, the player's own
        clicks) collects the per-op entitlement; malicious traffic pays
        nothing.
        """
        if event.malicious:
            return 0
        state = self.engine.state
        service = state.service(event.tier)
        entitlement = service.entitlement * event.amount
        if event.cohort_id is None:
            return entitlement
        cohort = state.cohort(event.cohort_id)
        if cohort is None:
            if event.cohort_id in self.engine.arrivals.retired_ids:
                return entitlement   # trial ended while this was in flight
            self.engine.diagnostic(
                "processing",
                f"completion for departed cohort {event.cohort_id}, "
                f"booked as player request")
            return entitlement
        if cohort.is_paying(event.timestamp):
            return service.price * event.amount + entitlement
        return entitlement

    # ── Draining ─────────────────────────────────────────────────────

    def drain(self, node: ComputeNode, now: int) -> None:
        """Fill *node*'s free cores from the waiting queues."""
        state = self.engine.state
        routing = self.engine.routing
        powersaving = billing.is_powersaving(state, now)
        while node.has_free_core(powersaving):
            if routing.accepts(node) and routing.waiting:
                routing.route_waiting(node, now)
                continue
            if node.waiting:
                waiting = node.waiting.popleft()
                event = RequestEvent(
                    timestamp=now, cohort_id=waiting.cohort_id,
                    amount=waiting.amount, tier=waiting.tier,
                    malicious=waiting.malicious, stage=Stage.ROUTED,
                    node_id=node.id)
                self.begin(node, event, now, waiting.memory, powersaving)
                continue
            break

    # ── Maintenance ──────────────────────────────────────────────────

    def sweep_timeouts(self, now: int) -> int:
        """Evict FIFO entries older than the request timeout.

        Returns the number of requests dropped.
        """
        timeout = int(tuning.get("processing", "request_timeout", 100_000))
        dropped = 0
        for node in self.engine.state.nodes:
            while node.waiting and now - node.waiting[0].arrival_time > timeout:
                waiting = node.waiting.popleft()
                node.ram_usage = max(0, node.ram_usage - waiting.memory)
                dropped += waiting.amount
        if dropped:
            self.engine.drop(dropped)
        return dropped

    def cleanup_reservations(self) -> None:
        """Forget standing reservations; they regrow on next admission."""
        for node in self.engine.state.nodes:
            node.ram_reserved = 0
