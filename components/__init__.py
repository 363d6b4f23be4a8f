"""components — Simulation data records, organised by domain.

Submodules
----------
economy    Tier, Cost, ServiceInfo, money helpers
requests   Stage, RequestEvent, WaitingRouteRequest, WaitingRequest
hardware   ComputeNode, cpu_table, ram_table
cohort     UserSpec, CohortSpec
ledger     BillingLedger
world      WorldState, RoutingLevel, UsedCard

All public names are re-exported here so code can simply do
``from components import WorldState``.
"""

# ── Economy ──────────────────────────────────────────────────────────
from components.economy import (
    Tier, Cost, ServiceInfo, cents, dollars,
)

# ── Requests ─────────────────────────────────────────────────────────
from components.requests import (
    Stage, RequestEvent, WaitingRouteRequest, WaitingRequest,
)

# ── Hardware ─────────────────────────────────────────────────────────
from components.hardware import ComputeNode, cpu_table, ram_table

# ── Cohorts ──────────────────────────────────────────────────────────
from components.cohort import UserSpec, CohortSpec

# ── Billing ──────────────────────────────────────────────────────────
from components.ledger import BillingLedger

# ── Aggregate root ───────────────────────────────────────────────────
from components.world import WorldState, RoutingLevel, UsedCard

__all__ = [
    # economy
    "Tier", "Cost", "ServiceInfo", "cents", "dollars",
    # requests
    "Stage", "RequestEvent", "WaitingRouteRequest", "WaitingRequest",
    # hardware
    "ComputeNode", "cpu_table", "ram_table",
    # cohorts
    "UserSpec", "CohortSpec",
    # billing
    "BillingLedger",
    # world
    "WorldState", "RoutingLevel", "UsedCard",
]
