"""components.world — The aggregate game state.

``WorldState`` holds everything the player owns and everything the
simulation needs to continue after a reload.  Only the engine mutates
it; the host reads it for display.

Nodes and cohorts are kept sorted by their numeric id so lookups are a
binary search.  Ids are handles, never list positions; a removed
cohort simply stops resolving.
"""

from __future__ import annotations
from bisect import bisect_left
from dataclasses import dataclass, field
from enum import IntEnum

from core import tuning
from components.economy import ServiceInfo, Tier
from components.hardware import ComputeNode
from components.cohort import UserSpec
from components.ledger import BillingLedger


class RoutingLevel(IntEnum):
    MAIN_AUTHORITY = 0
    DISTRIBUTED = 1
    NO_ROUTING_COST = 2


@dataclass
class UsedCard:
    id: str
    time: int


def _default_services() -> list[ServiceInfo]:
    return [ServiceInfo.for_tier(t) for t in Tier]


def _default_nodes() -> list[ComputeNode]:
    return [ComputeNode(id=0)]


@dataclass
class WorldState:
    time: int = 0

    # ── business ─────────────────────────────────────────────────────
    funds: int = field(default_factory=lambda: int(tuning.get("start", "funds", 0)))
    spent: int = 0
    earned: int = 0
    demand: float = field(default_factory=lambda: float(tuning.get("start", "demand", 1.0)))
    demand_rate: float = field(default_factory=lambda: float(tuning.get("start", "demand_rate", 0.0)))
    services: list[ServiceInfo] = field(default_factory=_default_services)
    ops_per_click: int = field(default_factory=lambda: int(tuning.get("start", "ops_per_click", 1)))
    ledger: BillingLedger = field(default_factory=BillingLedger)

    # ── infrastructure ───────────────────────────────────────────────
    nodes: list[ComputeNode] = field(default_factory=_default_nodes)
    next_node_id: int = 1
    user_specs: list[UserSpec] = field(default_factory=list)
    next_cohort_id: int = 0

    # ── upgrade levels (monotonic) ───────────────────────────────────
    routing_level: RoutingLevel = RoutingLevel.MAIN_AUTHORITY
    cache_level: int = 0
    software_level: int = 0
    spam_protection: float = 0.0

    # ── unlocks / visibility ─────────────────────────────────────────
    can_buy_nodes: bool = False
    can_buy_racks: bool = False
    can_buy_datacenters: bool = False
    demand_visible: bool = False
    energy_visible: bool = False
    rate_visible: bool = False

    # ── counters ─────────────────────────────────────────────────────
    requests_received: int = 0
    requests_fulfilled: int = 0
    requests_dropped: int = 0
    requests_failed: int = 0

    cards_used: list[UsedCard] = field(default_factory=list)

    # ── Lookups ──────────────────────────────────────────────────────

    def service(self, tier: Tier) -> ServiceInfo:
        return self.services[int(tier)]

    def node(self, node_id: int) -> ComputeNode | None:
        """Retrieve a node by id (binary search), or None."""
        i = bisect_left(self.nodes, node_id, key=lambda n: n.id)
        if i < len(self.nodes) and self.nodes[i].id == node_id:
            return self.nodes[i]
        return None

    def cohort(self, cohort_id: int) -> UserSpec | None:
        i = bisect_left(self.user_specs, cohort_id, key=lambda c: c.id)
        if i < len(self.user_specs) and self.user_specs[i].id == cohort_id:
            return self.user_specs[i]
        return None

    def add_node(self) -> ComputeNode:
        node = ComputeNode(id=self.next_node_id)
        self.next_node_id += 1
        self.nodes.append(node)   # ids ascend, list stays sorted
        return node

    def add_cohort(self, tier: Tier, trial_time: int = 0,
                   malicious: bool = False) -> UserSpec:
        spec = UserSpec(id=self.next_cohort_id, tier=tier,
                        trial_time=trial_time, malicious=malicious)
        self.next_cohort_id += 1
        self.user_specs.append(spec)
        return spec

    def remove_cohort(self, cohort_id: int) -> bool:
        i = bisect_left(self.user_specs, cohort_id, key=lambda c: c.id)
        if i < len(self.user_specs) and self.user_specs[i].id == cohort_id:
            del self.user_specs[i]
            return True
        return False

    def card_used(self, card_id: str) -> UsedCard | None:
        for used in self.cards_used:
            if used.id == card_id:
                return used
        return None

    # ── Affordability ────────────────────────────────────────────────

    def can_afford(self, cost) -> bool:
        if self.funds < cost.money:
            return False
        return all(self.services[t].available >= cost.ops_for(t)
                   for t in Tier)

    def apply_cost(self, cost) -> bool:
        """Deduct *cost* atomically.  Returns False and changes nothing
        if any part is unaffordable."""
        if not self.can_afford(cost):
            return False
        self.funds -= cost.money
        self.spent += cost.money
        for t in Tier:
            self.services[t].available -= cost.ops_for(t)
        return True

    # ── Aggregates ───────────────────────────────────────────────────

    def total_processing(self) -> tuple[float, float]:
        """Return (cpu_load, memory_load) as fractions of total capacity."""
        cores = sum(n.num_cores for n in self.nodes)
        busy = sum(n.processing for n in self.nodes)
        capacity = sum(n.ram_capacity for n in self.nodes)
        used = sum(n.memory_used for n in self.nodes)
        cpu = busy / cores if cores else 0.0
        mem = used / capacity if capacity else 0.0
        return cpu, mem
