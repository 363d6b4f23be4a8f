"""core/save.py — World persistence.

Save files (JSON) store only what the simulation cannot rebuild:
- Business state: funds, demand, per-tier services, billing ledger
- Infrastructure: node ids and upgrade levels, live cohorts
- Upgrade levels, unlock flags and used cards
- Request counters

Transient state is never written:
- The event queue and the shared routing queue
- Per-node in-flight counts, memory usage and reservations

When loading a game:
1. ``load_world(slot)`` reads the JSON and rebuilds a ``WorldState``
2. The host hands it to ``engine.load_state(state)``
3. The engine re-arms one arrival per live cohort
"""

from __future__ import annotations
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from core.constants import SAVE_FORMAT_VERSION
from components.cohort import UserSpec
from components.economy import ServiceInfo, Tier
from components.hardware import ComputeNode
from components.ledger import BillingLedger
from components.world import RoutingLevel, UsedCard, WorldState


SAVES_DIR = Path("saves")


@dataclass
class LoadResult:
    """Outcome of ``load_world``.

    ``state`` is None when there was nothing usable; ``missing`` tells a
    first launch apart from a broken file (``error``).
    """
    state: WorldState | None = None
    missing: bool = False
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.state is not None


def get_save_file(slot: int = 0) -> Path:
    """Get the path for a save slot."""
    return SAVES_DIR / f"slot{slot}.json"


# ── Snapshot / restore ───────────────────────────────────────────────

def snapshot(state: WorldState) -> dict[str, Any]:
    """Every persisted field of *state* as plain JSON-able data."""
    return {
        "format_version": SAVE_FORMAT_VERSION,
        "time": state.time,
        "funds": state.funds,
        "spent": state.spent,
        "earned": state.earned,
        "demand": state.demand,
        "demand_rate": state.demand_rate,
        "ops_per_click": state.ops_per_click,
        "services": [s.to_dict() for s in state.services],
        "ledger": state.ledger.to_dict(),
        "nodes": [n.to_dict() for n in state.nodes],
        "next_node_id": state.next_node_id,
        "user_specs": [c.to_dict() for c in state.user_specs],
        "next_cohort_id": state.next_cohort_id,
        "routing_level": int(state.routing_level),
        "cache_level": state.cache_level,
        "software_level": state.software_level,
        "spam_protection": state.spam_protection,
        "unlocks": {
            "can_buy_nodes": state.can_buy_nodes,
            "can_buy_racks": state.can_buy_racks,
            "can_buy_datacenters": state.can_buy_datacenters,
            "demand_visible": state.demand_visible,
            "energy_visible": state.energy_visible,
            "rate_visible": state.rate_visible,
        },
        "requests": {
            "received": state.requests_received,
            "fulfilled": state.requests_fulfilled,
            "dropped": state.requests_dropped,
            "failed": state.requests_failed,
        },
        "cards_used": [{"id": u.id, "time": u.time} for u in state.cards_used],
    }


def restore(data: dict[str, Any]) -> WorldState:
    """Rebuild a ``WorldState`` from ``snapshot`` output.

    Raises ``ValueError`` for an unknown format version and
    ``KeyError``/``TypeError`` for malformed data.
    """
    version = data.get("format_version")
    if version != SAVE_FORMAT_VERSION:
        raise ValueError(f"unsupported save format {version!r}")

    services = [ServiceInfo.from_dict(s) for s in data["services"]]
    if len(services) != len(Tier):
        raise ValueError(f"expected {len(Tier)} services, got {len(services)}")

    nodes = sorted((ComputeNode.from_dict(n) for n in data["nodes"]),
                   key=lambda n: n.id)
    if not nodes:
        raise ValueError("a world needs at least one node")
    cohorts = sorted((UserSpec.from_dict(c) for c in data.get("user_specs", [])),
                     key=lambda c: c.id)

    unlocks = data.get("unlocks", {})
    requests = data.get("requests", {})
    return WorldState(
        time=int(data["time"]),
        funds=int(data["funds"]),
        spent=int(data.get("spent", 0)),
        earned=int(data.get("earned", 0)),
        demand=float(data["demand"]),
        demand_rate=float(data.get("demand_rate", 0.0)),
        services=services,
        ops_per_click=int(data.get("ops_per_click", 1)),
        ledger=BillingLedger.from_dict(data.get("ledger", {})),
        nodes=nodes,
        next_node_id=max(int(data.get("next_node_id", 0)), nodes[-1].id + 1),
        user_specs=cohorts,
        next_cohort_id=int(data.get("next_cohort_id", 0)),
        routing_level=RoutingLevel(int(data.get("routing_level", 0))),
        cache_level=int(data.get("cache_level", 0)),
        software_level=int(data.get("software_level", 0)),
        spam_protection=float(data.get("spam_protection", 0.0)),
        can_buy_nodes=bool(unlocks.get("can_buy_nodes", False)),
        can_buy_racks=bool(unlocks.get("can_buy_racks", False)),
        can_buy_datacenters=bool(unlocks.get("can_buy_datacenters", False)),
        demand_visible=bool(unlocks.get("demand_visible", False)),
        energy_visible=bool(unlocks.get("energy_visible", False)),
        rate_visible=bool(unlocks.get("rate_visible", False)),
        requests_received=int(requests.get("received", 0)),
        requests_fulfilled=int(requests.get("fulfilled", 0)),
        requests_dropped=int(requests.get("dropped", 0)),
        requests_failed=int(requests.get("failed", 0)),
        cards_used=[UsedCard(id=str(u["id"]), time=int(u["time"]))
                    for u in data.get("cards_used", [])],
    )


# ── Files ────────────────────────────────────────────────────────────

def save_world(state: WorldState, slot: int = 0) -> Path:
    """Write *state* to a save slot.  Returns path to save file."""
    save_path = get_save_file(slot)
    save_path.parent.mkdir(parents=True, exist_ok=True)
    with open(save_path, "w") as f:
        json.dump(snapshot(state), f, indent=2)
    return save_path


def load_world(slot: int = 0) -> LoadResult:
    """Load a save slot.

    A slot that was never written is a normal outcome
    (``missing=True``); a broken one is reported in ``error`` so the
    caller can start a fresh session instead.
    """
    save_path = get_save_file(slot)
    if not save_path.exists():
        return LoadResult(missing=True)

    try:
        with open(save_path, "r") as f:
            data = json.load(f)
        state = restore(data)
    except (OSError, ValueError, KeyError, TypeError, AttributeError) as ex:
        print(f"[SAVE] Error loading save file: {ex}")
        return LoadResult(error=str(ex))

    print(f"[SAVE] Loaded slot {slot} (t={state.time}, "
          f"{len(state.nodes)} nodes, {len(state.user_specs)} cohorts)")
    return LoadResult(state=state)
