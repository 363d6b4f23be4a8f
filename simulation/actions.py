"""simulation/actions.py — Player actions.

The input side (keyboard, buttons) never touches ``WorldState``.  It
builds one of these command objects and hands it to
``GameEngine.apply_action``, which either applies it completely (cost
deducted in one step) or rejects it and leaves the world untouched.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Union

from core import tuning
from core.constants import DATACENTER_CAPACITY, RACK_CAPACITY
from components.economy import Tier
from components.requests import RequestEvent
from components.world import UsedCard
from core.events import CardUsed
from simulation import billing
from simulation.cards import apply_effect


@dataclass(frozen=True, slots=True)
class OpClick:
    """The player hand-generates ops.  ``amount=None`` uses ops-per-click."""
    tier: Tier
    amount: int | None = None


@dataclass(frozen=True, slots=True)
class ChangePrice:
    tier: Tier
    new_price: int


@dataclass(frozen=True, slots=True)
class PayBill:
    pass


@dataclass(frozen=True, slots=True)
class UpgradeCpu:
    node: int


@dataclass(frozen=True, slots=True)
class UpgradeRam:
    node: int


@dataclass(frozen=True, slots=True)
class AddNode:
    pass


@dataclass(frozen=True, slots=True)
class AddRack:
    pass


@dataclass(frozen=True, slots=True)
class AddDatacenter:
    pass


@dataclass(frozen=True, slots=True)
class UseCard:
    id: str


# Union of every action type; extend together with ``apply_action``.
PlayerAction = Union[OpClick, ChangePrice, PayBill, UpgradeCpu, UpgradeRam,
                     AddNode, AddRack, AddDatacenter, UseCard]


# ── Purchase prices ──────────────────────────────────────────────────

def node_cost(node_count: int) -> int:
    """Price of the next single node when *node_count* are owned."""
    base = int(tuning.get("hardware", "node_cost", 40_000_000))
    growth = float(tuning.get("hardware", "node_cost_growth", 1.25))
    return int(base * growth ** max(0, node_count - 1))


def rack_cost() -> int:
    return int(tuning.get("hardware", "rack_cost", 300_000_000))


def datacenter_cost() -> int:
    return int(tuning.get("hardware", "datacenter_cost", 4_000_000_000))


def _node_limit(state: Any) -> int:
    if state.can_buy_datacenters:
        return 10 ** 9
    if state.can_buy_racks:
        return DATACENTER_CAPACITY
    return RACK_CAPACITY


# ═════════════════════════════════════════════════════════════════════
#  INTERPRETER
# ═════════════════════════════════════════════════════════════════════

def apply_action(engine: Any, action: PlayerAction) -> bool:
    """Apply *action* fully, or reject it.  Returns True if applied."""
    state = engine.state
    name = type(action).__name__

    if isinstance(action, OpClick):
        service = state.service(action.tier)
        amount = state.ops_per_click if action.amount is None else action.amount
        if not service.unlocked:
            return engine.reject(name, f"{action.tier.name} is locked")
        if amount <= 0:
            return engine.reject(name, f"invalid amount {amount}")
        engine.queue.push(RequestEvent.arrived(state.time, None, amount,
                                               action.tier))
        return True

    if isinstance(action, ChangePrice):
        service = state.service(action.tier)
        if not service.unlocked:
            return engine.reject(name, f"{action.tier.name} is locked")
        if action.new_price < 0:
            return engine.reject(name, f"negative price {action.new_price}")
        service.price = action.new_price
        return True

    if isinstance(action, PayBill):
        due = state.ledger.total_due
        if due <= 0:
            return engine.reject(name, "nothing to pay")
        if state.funds < due:
            return engine.reject(name, "insufficient funds")
        billing.pay(state)
        print(f"[BILL] Paid {due} mc")
        return True

    if isinstance(action, (UpgradeCpu, UpgradeRam)):
        node = state.node(action.node)
        if node is None:
            return engine.reject(name, f"no node {action.node}")
        if isinstance(action, UpgradeCpu):
            cost = node.next_cpu_upgrade_cost()
        else:
            cost = node.next_ram_upgrade_cost()
        if cost is None:
            return engine.reject(name, "already at the top level")
        if state.funds < cost:
            return engine.reject(name, "insufficient funds")
        state.funds -= cost
        state.spent += cost
        if isinstance(action, UpgradeCpu):
            node.cpu_level += 1
        else:
            node.ram_level += 1
        engine.processing.drain(node, state.time)
        return True

    if isinstance(action, (AddNode, AddRack, AddDatacenter)):
        return _buy_nodes(engine, action)

    if isinstance(action, UseCard):
        return _use_card(engine, action)

    raise TypeError(f"unknown player action: {action!r}")


def _buy_nodes(engine: Any, action: PlayerAction) -> bool:
    state = engine.state
    name = type(action).__name__
    owned = len(state.nodes)

    if isinstance(action, AddNode):
        unlocked, count, cost = state.can_buy_nodes, 1, node_cost(owned)
    elif isinstance(action, AddRack):
        unlocked, count, cost = state.can_buy_racks, RACK_CAPACITY, rack_cost()
    else:
        unlocked, count, cost = (state.can_buy_datacenters,
                                 DATACENTER_CAPACITY, datacenter_cost())

    if not unlocked:
        return engine.reject(name, "not unlocked yet")
    if owned + count > _node_limit(state):
        return engine.reject(name, "no room for more nodes")
    if state.funds < cost:
        return engine.reject(name, "insufficient funds")

    state.funds -= cost
    state.spent += cost
    added = [state.add_node() for _ in range(count)]
    for node in added:
        engine.processing.drain(node, state.time)
    print(f"[ENGINE] Bought {count} node(s), now {len(state.nodes)}")
    return True


def _use_card(engine: Any, action: UseCard) -> bool:
    state = engine.state
    card = engine.catalog.find(action.id)
    if card is None:
        return engine.reject("UseCard", f"unknown card {action.id!r}")
    if state.card_used(card.id) is not None:
        return engine.reject("UseCard", f"card {card.id!r} already used")
    if not state.apply_cost(card.cost):
        return engine.reject("UseCard", f"cannot afford card {card.id!r}")

    apply_effect(engine, card.effect)
    state.cards_used.append(UsedCard(id=card.id, time=state.time))
    print(f"[CARDS] Used '{card.title}' ({card.id})")
    engine.bus.emit(CardUsed(card_id=card.id, time=state.time))
    return True
