"""simulation/routing.py — Arrived → Routed.

With more than one node, every incoming batch must be routed before a
node can process it.  How much that costs depends on the routing level,
which only ever goes up:

  MAIN_AUTHORITY   node 0 routes everything: each batch holds one of its
                   cores for ``latency`` time units and meters a hop.
  DISTRIBUTED      any node with a free core can route; one is sampled
                   uniformly among the free ones.
  NO_ROUTING_COST  target picked uniformly, no slot, no latency, no hop.

When no router has a free core the batch waits in a shared FIFO with a
hard capacity.  Overflow drops the batch: bounded backpressure, never
unbounded buffering.  A single-node world skips all of this.
"""

from __future__ import annotations
from collections import deque
from typing import Any

from core import tuning
from components.hardware import ComputeNode
from components.requests import RequestEvent, WaitingRouteRequest
from components.world import RoutingLevel
from simulation import billing


class RoutingPolicy:
    def __init__(self, engine: Any) -> None:
        self.engine = engine
        self.waiting: deque[WaitingRouteRequest] = deque()

    @property
    def capacity(self) -> int:
        return int(tuning.get("routing", "queue_capacity", 2000))

    @property
    def latency(self) -> int:
        return int(tuning.get("routing", "latency", 200))

    def accepts(self, node: ComputeNode) -> bool:
        """Whether *node* may spend a core on routing."""
        state = self.engine.state
        if len(state.nodes) < 2:
            return False
        if state.routing_level == RoutingLevel.MAIN_AUTHORITY:
            return node is state.nodes[0]
        return state.routing_level == RoutingLevel.DISTRIBUTED

    # ── Entry point ──────────────────────────────────────────────────

    def route(self, event: RequestEvent) -> None:
        """Route a freshly ARRIVED batch (or queue / drop / intercept it)."""
        engine = self.engine
        if engine.spam.intercept(event):
            return

        state = engine.state
        nodes = state.nodes
        if len(nodes) == 1:
            engine.processing.admit(event.into_routed(0, nodes[0].id))
            return
        if state.routing_level == RoutingLevel.NO_ROUTING_COST:
            target = engine.sampler.choice(nodes)
            engine.processing.admit(event.into_routed(0, target.id))
            return

        router = self.pick_router(event.timestamp)
        if router is None:
            self.enqueue(event)
            return
        self.dispatch(event, router)

    def pick_router(self, now: int) -> ComputeNode | None:
        state = self.engine.state
        powersaving = billing.is_powersaving(state, now)
        if state.routing_level == RoutingLevel.MAIN_AUTHORITY:
            main = state.nodes[0]
            return main if main.has_free_core(powersaving) else None
        free = [n for n in state.nodes if n.has_free_core(powersaving)]
        if not free:
            return None
        return self.engine.sampler.choice(free)

    def dispatch(self, event: RequestEvent, router: ComputeNode) -> None:
        """Occupy a routing slot on *router* and post the ROUTED event."""
        engine = self.engine
        router.processing += 1
        billing.accrue_hop(engine.state, event.amount)
        target = engine.sampler.choice(engine.state.nodes)
        engine.queue.push(event.into_routed(self.latency, target.id, router.id))

    def enqueue(self, event: RequestEvent) -> bool:
        if len(self.waiting) >= self.capacity:
            self.engine.drop(event.amount)
            return False
        self.waiting.append(WaitingRouteRequest.from_event(event))
        return True

    def route_waiting(self, router: ComputeNode, now: int) -> None:
        """Hand the oldest queued batch to *router* (caller checked a core)."""
        waiting = self.waiting.popleft()
        self.dispatch(waiting.to_event(now), router)

    # ── ROUTED handling ──────────────────────────────────────────────

    def on_routed(self, event: RequestEvent) -> None:
        """Release the routing slot, then admit the batch on its target."""
        engine = self.engine
        router = None
        if event.router_id is not None:
            router = engine.state.node(event.router_id)
            if router is None:
                engine.diagnostic(
                    "routing", f"routing slot on unknown node {event.router_id}")
            else:
                router.processing = max(0, router.processing - 1)
        engine.processing.admit(event)
        if router is not None:
            engine.processing.drain(router, event.timestamp)

    def flush(self, now: int) -> None:
        """Route everything still queued without a slot.

        Called when the NO_ROUTING_COST level is reached, since no node
        will ever pull from the queue again.
        """
        while self.waiting:
            event = self.waiting.popleft().to_event(now)
            nodes = self.engine.state.nodes
            target = self.engine.sampler.choice(nodes)
            self.engine.processing.admit(event.into_routed(0, target.id))
