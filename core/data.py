"""
core/data.py — TOML → card catalog loader

Reads the upgrade cards from a data file and builds the frozen
``CardSpec`` values the engine interprets.
The mapping from TOML ``kind`` strings to effect/condition classes
lives here.

You define effects and conditions in simulation/cards.py.
You define the cards themselves in data/cards.toml.
This file connects them.

Usage:
    loader = CardLoader()                       # default kinds registered
    loader.register_effect("add_funds", AddFunds)
    catalog = loader.load("data/cards.toml")    # returns a CardCatalog

One card in the TOML file:

    [b0]
    title = "Incentive from your family"
    cost = { base = 50 }
    condition = { kind = "available_ops", tier = "base", amount = 100 }
    effect = { kind = "add_funds", dollars = 60 }
"""

from __future__ import annotations
import tomllib
from dataclasses import fields
from pathlib import Path

from components.cohort import CohortSpec
from components.economy import Cost, Tier, cents, dollars
from components.world import RoutingLevel
from simulation import cards as c


_EFFECTS: dict[str, type] = {
    "publish_service": c.PublishService,
    "unlock_service": c.UnlockService,
    "add_funds": c.AddFunds,
    "upgrade_entitlements": c.UpgradeEntitlements,
    "set_electricity_cost_level": c.SetElectricityCostLevel,
    "upgrade_ops_per_click": c.UpgradeOpsPerClick,
    "add_clients": c.AddClients,
    "add_clients_with_publicity": c.AddClientsWithPublicity,
    "add_publicity": c.AddPublicity,
    "add_demand_rate": c.AddDemandRate,
    "upgrade_services": c.UpgradeServices,
    "more_caching": c.MoreCaching,
    "unlock_demand_estimate": c.UnlockDemandEstimate,
    "unlock_energy_estimate": c.UnlockEnergyEstimate,
    "unlock_rate_estimate": c.UnlockRateEstimate,
    "unlock_multi_nodes": c.UnlockMultiNodes,
    "unlock_multi_racks": c.UnlockMultiRacks,
    "unlock_multi_datacenters": c.UnlockMultiDatacenters,
    "upgrade_spam_protection": c.UpgradeSpamProtection,
    "upgrade_routing_level": c.UpgradeRoutingLevel,
    "nothing": c.Nothing,
}

_CONDITIONS: dict[str, type] = {
    "always": c.Always,
    "funds": c.Funds,
    "earned": c.Earned,
    "total_ops": c.TotalOps,
    "available_ops": c.AvailableOps,
    "time_after_card": c.TimeAfterCard,
    "total_nodes": c.TotalNodes,
    "requests_failed": c.RequestsFailed,
    "demand": c.Demand,
    "first_bill_arrived": c.FirstBillArrived,
    "total_memory_upgrades": c.TotalMemoryUpgrades,
    "fully_upgraded_node": c.FullyUpgradedNode,
}


class CardError(ValueError):
    """A card entry that cannot be turned into a ``CardSpec``."""


class CardLoader:
    def __init__(self):
        self._effects: dict[str, type] = dict(_EFFECTS)
        self._conditions: dict[str, type] = dict(_CONDITIONS)

    def register_effect(self, kind: str, effect_type: type):
        """Map an ``effect.kind`` string to an effect class."""
        self._effects[kind] = effect_type

    def register_condition(self, kind: str, condition_type: type):
        """Map a ``condition.kind`` string to a condition class."""
        self._conditions[kind] = condition_type

    def load(self, path: str | Path) -> c.CardCatalog:
        """Load a TOML file.  Each top-level table becomes a card.

        A broken entry is reported and skipped; the rest still load.
        A missing file yields an empty catalog.
        """
        path = Path(path)
        if not path.exists():
            print(f"[CARDS] {path} not found — no cards loaded")
            return c.CardCatalog()
        with open(path, "rb") as f:
            data = tomllib.load(f)

        specs: list[c.CardSpec] = []
        for card_id, section in data.items():
            if not isinstance(section, dict):
                continue
            try:
                specs.append(self.build_card(card_id, section))
            except (CardError, KeyError, TypeError, ValueError) as exc:
                print(f"[CARDS] Skipping card '{card_id}': {exc}")

        print(f"[CARDS] Loaded {len(specs)} cards from {path}")
        return c.CardCatalog(specs)

    def build_card(self, card_id: str, section: dict) -> c.CardSpec:
        if "title" not in section:
            raise CardError("missing title")
        return c.CardSpec(
            id=str(card_id),
            title=section["title"],
            description=section.get("description", ""),
            cost=parse_cost(section.get("cost", {})),
            condition=_build(self._conditions,
                             section.get("condition", {"kind": "always"})),
            effect=_build(self._effects,
                          section.get("effect", {"kind": "nothing"})),
        )


def parse_cost(table: dict) -> Cost:
    """``{money, cents, dollars, base, super, epic, awesome}`` → ``Cost``."""
    money = (int(table.get("money", 0)) + cents(table.get("cents", 0))
             + dollars(table.get("dollars", 0)))
    return Cost.of(money=money,
                   base=int(table.get("base", 0)),
                   super_=int(table.get("super", 0)),
                   epic=int(table.get("epic", 0)),
                   awesome=int(table.get("awesome", 0)))


def _build(registry: dict[str, type], table: dict):
    """Build a frozen effect/condition from its TOML table."""
    kind = table.get("kind")
    if kind not in registry:
        raise CardError(f"unknown kind {kind!r}")
    cls = registry[kind]
    kwargs = {k: v for k, v in table.items() if k != "kind"}
    if "dollars" in kwargs:
        kwargs["amount"] = dollars(kwargs.pop("dollars"))

    valid = {f.name for f in fields(cls)}
    unknown = set(kwargs) - valid
    if unknown:
        raise CardError(f"{kind}: unexpected keys {sorted(unknown)}")

    if "tier" in kwargs:
        kwargs["tier"] = Tier.parse(kwargs["tier"])
    if "spec" in kwargs:
        spec = kwargs["spec"]
        kwargs["spec"] = CohortSpec(
            tier=Tier.parse(spec.get("tier", "base")),
            trial_duration=int(spec.get("trial_duration", 0)),
            malicious=bool(spec.get("malicious", False)))
    if cls is c.UpgradeRoutingLevel:
        level = kwargs["level"]
        kwargs["level"] = (RoutingLevel[level.upper()] if isinstance(level, str)
                           else RoutingLevel(level))
    return cls(**kwargs)


def load_cards(path: str | Path) -> c.CardCatalog:
    return CardLoader().load(path)


def default_catalog() -> c.CardCatalog:
    """The shipped ``data/cards.toml`` (relative to the project root)."""
    root = Path(__file__).resolve().parent.parent
    return load_cards(root / "data" / "cards.toml")
