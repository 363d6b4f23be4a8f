"""simulation/cards.py — Upgrade cards: conditions, effects, catalog.

Cards are static content (``data/cards.toml``).  The core only needs
three things from them: a cost, a condition deciding when the card is
on offer, and an effect from a closed set.  Effects and conditions are
frozen dataclasses; ``apply_effect`` and ``should_appear`` are the one
interpreter for each union.
"""

from __future__ import annotations
from bisect import bisect_left
from dataclasses import dataclass, field
from typing import Any, Iterator, Union

from components.cohort import CohortSpec
from components.economy import Cost, Tier
from components.world import RoutingLevel
from simulation import billing


# ═════════════════════════════════════════════════════════════════════
#  EFFECTS
# ═════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, slots=True)
class PublishService:
    """Make the tier public: it gets its first paying cohort."""
    tier: Tier


@dataclass(frozen=True, slots=True)
class UnlockService:
    """Make the tier visible to the player (still private)."""
    tier: Tier


@dataclass(frozen=True, slots=True)
class AddFunds:
    amount: int


@dataclass(frozen=True, slots=True)
class UpgradeEntitlements:
    """Raise the per-op entitlement floor of a tier."""
    tier: Tier
    amount: int


@dataclass(frozen=True, slots=True)
class SetElectricityCostLevel:
    level: int


@dataclass(frozen=True, slots=True)
class UpgradeOpsPerClick:
    amount: int


@dataclass(frozen=True, slots=True)
class AddClients:
    spec: CohortSpec


@dataclass(frozen=True, slots=True)
class AddClientsWithPublicity:
    spec: CohortSpec
    demand: float


@dataclass(frozen=True, slots=True)
class AddPublicity:
    """Flat bump to ambient demand."""
    demand: float


@dataclass(frozen=True, slots=True)
class AddDemandRate:
    """Flat bump to demand growth per major update."""
    rate: float


@dataclass(frozen=True, slots=True)
class UpgradeServices:
    """Next software level."""


@dataclass(frozen=True, slots=True)
class MoreCaching:
    """Next cache level."""


@dataclass(frozen=True, slots=True)
class UnlockDemandEstimate:
    pass


@dataclass(frozen=True, slots=True)
class UnlockEnergyEstimate:
    pass


@dataclass(frozen=True, slots=True)
class UnlockRateEstimate:
    pass


@dataclass(frozen=True, slots=True)
class UnlockMultiNodes:
    pass


@dataclass(frozen=True, slots=True)
class UnlockMultiRacks:
    pass


@dataclass(frozen=True, slots=True)
class UnlockMultiDatacenters:
    pass


@dataclass(frozen=True, slots=True)
class UpgradeSpamProtection:
    strength: float


@dataclass(frozen=True, slots=True)
class UpgradeRoutingLevel:
    level: RoutingLevel


@dataclass(frozen=True, slots=True)
class Nothing:
    pass


# Union of every effect type; extend together with ``apply_effect``.
CardEffect = Union[
    PublishService, UnlockService, AddFunds, UpgradeEntitlements,
    SetElectricityCostLevel, UpgradeOpsPerClick, AddClients,
    AddClientsWithPublicity, AddPublicity, AddDemandRate, UpgradeServices,
    MoreCaching, UnlockDemandEstimate, UnlockEnergyEstimate,
    UnlockRateEstimate, UnlockMultiNodes, UnlockMultiRacks,
    UnlockMultiDatacenters, UpgradeSpamProtection, UpgradeRoutingLevel,
    Nothing,
]


def apply_effect(engine: Any, effect: CardEffect) -> None:
    """Interpret one effect against the engine's world."""
    state = engine.state

    if isinstance(effect, PublishService):
        service = state.service(effect.tier)
        service.unlocked = True
        if service.private:
            service.private = False
            engine.add_cohort(CohortSpec(tier=effect.tier))
    elif isinstance(effect, UnlockService):
        state.service(effect.tier).unlocked = True
    elif isinstance(effect, AddFunds):
        state.funds += effect.amount
    elif isinstance(effect, UpgradeEntitlements):
        service = state.service(effect.tier)
        service.entitlement = max(service.entitlement, effect.amount)
    elif isinstance(effect, SetElectricityCostLevel):
        billing.set_cost_level(state.ledger, effect.level)
    elif isinstance(effect, UpgradeOpsPerClick):
        state.ops_per_click = max(state.ops_per_click, effect.amount)
    elif isinstance(effect, AddClients):
        engine.add_cohort(effect.spec)
    elif isinstance(effect, AddClientsWithPublicity):
        engine.add_cohort(effect.spec)
        state.demand += effect.demand
    elif isinstance(effect, AddPublicity):
        state.demand += effect.demand
    elif isinstance(effect, AddDemandRate):
        state.demand_rate += effect.rate
    elif isinstance(effect, UpgradeServices):
        state.software_level += 1
        engine.processing.cleanup_reservations()
    elif isinstance(effect, MoreCaching):
        state.cache_level += 1
    elif isinstance(effect, UnlockDemandEstimate):
        state.demand_visible = True
    elif isinstance(effect, UnlockEnergyEstimate):
        state.energy_visible = True
    elif isinstance(effect, UnlockRateEstimate):
        state.rate_visible = True
    elif isinstance(effect, UnlockMultiNodes):
        state.can_buy_nodes = True
    elif isinstance(effect, UnlockMultiRacks):
        state.can_buy_racks = True
    elif isinstance(effect, UnlockMultiDatacenters):
        state.can_buy_datacenters = True
    elif isinstance(effect, UpgradeSpamProtection):
        engine.spam.upgrade(effect.strength)
    elif isinstance(effect, UpgradeRoutingLevel):
        if effect.level > state.routing_level:
            state.routing_level = RoutingLevel(effect.level)
        if state.routing_level == RoutingLevel.NO_ROUTING_COST:
            engine.routing.flush(state.time)
    elif isinstance(effect, Nothing):
        pass
    else:
        raise TypeError(f"unknown card effect: {effect!r}")


# ═════════════════════════════════════════════════════════════════════
#  CONDITIONS
# ═════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, slots=True)
class Always:
    pass


@dataclass(frozen=True, slots=True)
class Funds:
    amount: int


@dataclass(frozen=True, slots=True)
class Earned:
    amount: int


@dataclass(frozen=True, slots=True)
class TotalOps:
    tier: Tier
    amount: int


@dataclass(frozen=True, slots=True)
class AvailableOps:
    tier: Tier
    amount: int


@dataclass(frozen=True, slots=True)
class TimeAfterCard:
    card: str
    duration: int


@dataclass(frozen=True, slots=True)
class TotalNodes:
    count: int


@dataclass(frozen=True, slots=True)
class RequestsFailed:
    count: int


@dataclass(frozen=True, slots=True)
class Demand:
    value: float


@dataclass(frozen=True, slots=True)
class FirstBillArrived:
    pass


@dataclass(frozen=True, slots=True)
class TotalMemoryUpgrades:
    """RAM levels bought across all nodes."""
    count: int


@dataclass(frozen=True, slots=True)
class FullyUpgradedNode:
    pass


CardCondition = Union[
    Always, Funds, Earned, TotalOps, AvailableOps, TimeAfterCard,
    TotalNodes, RequestsFailed, Demand, FirstBillArrived, TotalMemoryUpgrades,
    FullyUpgradedNode,
]


def should_appear(condition: CardCondition, state: Any) -> bool:
    if isinstance(condition, Always):
        return True
    if isinstance(condition, Funds):
        return state.funds >= condition.amount
    if isinstance(condition, Earned):
        return state.earned >= condition.amount
    if isinstance(condition, TotalOps):
        return state.service(condition.tier).total >= condition.amount
    if isinstance(condition, AvailableOps):
        return state.service(condition.tier).available >= condition.amount
    if isinstance(condition, TimeAfterCard):
        used = state.card_used(condition.card)
        return used is not None and used.time + condition.duration <= state.time
    if isinstance(condition, TotalNodes):
        return len(state.nodes) >= condition.count
    if isinstance(condition, RequestsFailed):
        return state.requests_failed >= condition.count
    if isinstance(condition, Demand):
        return state.demand >= condition.value
    if isinstance(condition, FirstBillArrived):
        return state.ledger.bills_issued > 0
    if isinstance(condition, TotalMemoryUpgrades):
        return sum(n.ram_level for n in state.nodes) >= condition.count
    if isinstance(condition, FullyUpgradedNode):
        return any(n.fully_upgraded for n in state.nodes)
    raise TypeError(f"unknown card condition: {condition!r}")


# ═════════════════════════════════════════════════════════════════════
#  CATALOG
# ═════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class CardSpec:
    id: str
    title: str
    description: str = ""
    cost: Cost = field(default_factory=Cost)
    condition: CardCondition = field(default_factory=Always)
    effect: CardEffect = field(default_factory=Nothing)


class CardCatalog:
    """Static card list sorted by id; lookups are a binary search."""

    def __init__(self, cards: list[CardSpec] | None = None) -> None:
        self._cards: list[CardSpec] = sorted(cards or [], key=lambda c: c.id)

    def find(self, card_id: str) -> CardSpec | None:
        i = bisect_left(self._cards, card_id, key=lambda c: c.id)
        if i < len(self._cards) and self._cards[i].id == card_id:
            return self._cards[i]
        return None

    def __iter__(self) -> Iterator[CardSpec]:
        return iter(self._cards)

    def __len__(self) -> int:
        return len(self._cards)


def visible_cards(state: Any, catalog: CardCatalog) -> list[CardSpec]:
    """Cards on offer right now: condition met and not used yet."""
    return [card for card in catalog
            if state.card_used(card.id) is None
            and should_appear(card.condition, state)]
