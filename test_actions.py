"""test_actions.py — Player actions, card effects and the card catalog.

Tests:
1. Accepted actions change funds by exactly their cost, rejected ones
   change nothing
2. Node, rack and datacenter purchases follow their unlocks
3. Cards: unknown ids, single use, affordability, visibility
4. Upgrade levels only ever go up
5. The shipped cards.toml loads

Run:  python test_actions.py
"""
from __future__ import annotations
import sys, tempfile, traceback
from pathlib import Path

# ── Bootstrap ────────────────────────────────────────────────────────
from core.tuning import load as _load_tuning
_load_tuning()

from core.data import CardLoader, default_catalog
from core.events import ActionRejected, CardUsed, CohortAdded
from components import (
    CohortSpec, Cost, RoutingLevel, Tier, WorldState, cents, cpu_table, dollars,
    ram_table,
)
from simulation.actions import (
    AddDatacenter, AddNode, AddRack, ChangePrice, OpClick, PayBill,
    UpgradeCpu, UpgradeRam, UseCard, node_cost,
)
from simulation.cards import (
    AddClients, AddFunds, AddPublicity, CardCatalog, CardSpec, Funds,
    FullyUpgradedNode,
    MoreCaching, PublishService, SetElectricityCostLevel, TimeAfterCard,
    UpgradeRoutingLevel, UpgradeServices, UpgradeSpamProtection,
    apply_effect, visible_cards,
)
from simulation.engine import GameEngine
from simulation.sampler import Sampler


# ── Test harness ─────────────────────────────────────────────────────

_passed = 0
_failed = 0

def ok(label: str):
    global _passed
    _passed += 1
    print(f"  [PASS] {label}")

def fail(label: str, detail: str = ""):
    global _failed
    _failed += 1
    msg = f"  [FAIL] {label}"
    if detail:
        msg += f" — {detail}"
    print(msg)

def check(cond: bool, label: str, detail: str = ""):
    if cond:
        ok(label)
    else:
        fail(label, detail)
    assert cond, f"{label} {detail}".strip()


_CARDS = [
    CardSpec("ads", "Ads", cost=Cost.of(base=8), effect=AddPublicity(5.0)),
    CardSpec("bonus", "Bonus", cost=Cost.of(money=dollars(1)),
             effect=AddFunds(dollars(10))),
    CardSpec("maxed", "Maxed", condition=FullyUpgradedNode()),
    CardSpec("later", "Later", condition=TimeAfterCard("ads", 1_000)),
    CardSpec("pricey", "Pricey", cost=Cost.of(money=dollars(1_000), super_=5),
             effect=UpgradeServices()),
]


def _engine(**state) -> GameEngine:
    return GameEngine(WorldState(**state), sampler=Sampler(1),
                      catalog=CardCatalog(_CARDS))


def _rejections(engine: GameEngine) -> int:
    return len(engine.bus.of_type(ActionRejected))


# ── Conservation ─────────────────────────────────────────────────────

def test_accepted_actions_cost_exactly():
    print("\n=== Funds change by exactly the cost ===")
    engine = _engine(funds=dollars(1_000))
    state = engine.state
    node = state.nodes[0]

    cpu_cost = node.next_cpu_upgrade_cost()
    before = state.funds
    check(engine.apply_action(UpgradeCpu(node.id)), "CPU upgrade accepted")
    check(state.funds == before - cpu_cost and node.cpu_level == 1,
          "funds down by the CPU price")

    ram_cost = node.next_ram_upgrade_cost()
    before = state.funds
    check(engine.apply_action(UpgradeRam(node.id)), "RAM upgrade accepted")
    check(state.funds == before - ram_cost and node.ram_level == 1,
          "funds down by the RAM price")

    before = state.funds
    check(engine.apply_action(ChangePrice(Tier.BASE, 250)), "price changed")
    check(state.funds == before and state.service(Tier.BASE).price == 250,
          "price change is free")
    check(state.spent == cpu_cost + ram_cost, "spent tracks purchases")


def test_rejected_actions_change_nothing():
    print("\n=== Rejected actions leave the world alone ===")
    engine = _engine(funds=1_000)
    state = engine.state
    node = state.nodes[0]

    check(not engine.apply_action(UpgradeCpu(node.id)), "unaffordable CPU")
    check(not engine.apply_action(UpgradeRam(42)), "unknown node")
    check(not engine.apply_action(OpClick(Tier.EPIC)), "locked tier click")
    check(not engine.apply_action(OpClick(Tier.BASE, 0)), "zero ops click")
    check(not engine.apply_action(ChangePrice(Tier.BASE, -1)), "negative price")
    check(not engine.apply_action(ChangePrice(Tier.SUPER, 10)), "locked tier price")
    check(not engine.apply_action(PayBill()), "nothing to pay")
    check(not engine.apply_action(AddNode()), "nodes locked")

    check(state.funds == 1_000 and state.spent == 0, "funds untouched")
    check(node.cpu_level == 0 and len(state.nodes) == 1, "hardware untouched")
    check(len(engine.queue) == 0, "no requests generated")
    check(_rejections(engine) == 8, "every rejection reported",
          f"rejections={_rejections(engine)}")

    node.cpu_level = len(cpu_table()) - 1
    state.funds = dollars(100_000)
    check(not engine.apply_action(UpgradeCpu(node.id)), "top CPU level")


def test_pay_bill():
    print("\n=== Paying the bill ===")
    engine = _engine(funds=5_000)
    engine.state.ledger.total_due = 8_000
    engine.state.ledger.due_since = 0
    check(not engine.apply_action(PayBill()), "cannot pay more than funds")
    engine.state.funds = 10_000
    check(engine.apply_action(PayBill()), "paid")
    ledger = engine.state.ledger
    check(engine.state.funds == 2_000 and ledger.total_due == 0
          and ledger.total_paid == 8_000 and ledger.due_since is None,
          "ledger settled")


# ── Hardware purchases ───────────────────────────────────────────────

def test_node_purchases_follow_unlocks():
    print("\n=== Nodes, racks and datacenters ===")
    engine = _engine(funds=dollars(1_000_000), can_buy_nodes=True)
    state = engine.state

    before = state.funds
    check(engine.apply_action(AddNode()), "second node bought")
    check(before - state.funds == node_cost(1) == 40_000_000, "base node price")
    before = state.funds
    engine.apply_action(AddNode())
    check(before - state.funds == node_cost(2) == 50_000_000, "price grows")
    engine.apply_action(AddNode())
    check(len(state.nodes) == 4, "rack full")
    check(not engine.apply_action(AddNode()), "no room past one rack")
    check(not engine.apply_action(AddRack()), "racks locked")

    state.can_buy_racks = True
    check(engine.apply_action(AddRack()), "rack bought")
    check(len(state.nodes) == 8, "four more nodes")
    ids = [n.id for n in state.nodes]
    check(ids == sorted(set(ids)), "ids unique and ascending")

    check(not engine.apply_action(AddDatacenter()), "datacenters locked")
    state.can_buy_datacenters = True
    check(engine.apply_action(AddDatacenter()), "datacenter bought")
    check(len(state.nodes) == 40, "thirty-two more nodes")


# ── Cards ────────────────────────────────────────────────────────────

def test_unknown_card_rejected():
    print("\n=== Unknown card id ===")
    engine = _engine()
    check(not engine.apply_action(UseCard("nope")), "rejected")
    reasons = [e.reason for e in engine.bus.of_type(ActionRejected)]
    check(any("nope" in r for r in reasons), "reason names the id")


def test_card_used_once():
    print("\n=== A card is used at most once ===")
    engine = _engine()
    state = engine.state
    state.service(Tier.BASE).available = 10
    demand = state.demand

    check(engine.apply_action(UseCard("ads")), "first use")
    check(state.service(Tier.BASE).available == 2, "ops deducted")
    check(state.demand == demand + 5.0, "effect applied")
    check(state.card_used("ads") is not None, "use recorded")
    check(len(engine.bus.of_type(CardUsed)) == 1, "CardUsed emitted")

    check(not engine.apply_action(UseCard("ads")), "second use rejected")
    check(state.service(Tier.BASE).available == 2, "nothing deducted twice")


def test_unaffordable_card_is_atomic():
    print("\n=== Card cost is all or nothing ===")
    engine = _engine(funds=dollars(2_000))
    state = engine.state
    check(not engine.apply_action(UseCard("pricey")), "missing super ops")
    check(state.funds == dollars(2_000), "money not taken")
    check(state.software_level == 0, "effect not applied")


def test_card_with_money_effect():
    engine = _engine(funds=dollars(5))
    check(engine.apply_action(UseCard("bonus")), "bonus used")
    check(engine.state.funds == dollars(14), "cost out, bonus in")


def test_visible_cards():
    print("\n=== Cards on offer ===")
    engine = _engine()
    state = engine.state
    shown = {c.id for c in visible_cards(state, engine.catalog)}
    check("maxed" not in shown and "later" not in shown, "conditions respected")
    check({"ads", "bonus", "pricey"} <= shown, "unconditional cards shown")

    state.service(Tier.BASE).available = 8
    engine.apply_action(UseCard("ads"))
    state.time = 1_000
    shown = {c.id for c in visible_cards(state, engine.catalog)}
    check("ads" not in shown, "used card hidden")
    check("later" in shown, "time-after-card condition met")

    node = state.nodes[0]
    node.cpu_level = len(cpu_table()) - 1
    check("maxed" not in {c.id for c in visible_cards(state, engine.catalog)},
          "half-upgraded node is not enough")
    node.ram_level = len(ram_table()) - 1
    check("maxed" in {c.id for c in visible_cards(state, engine.catalog)},
          "fully upgraded node reveals the card")


# ── Effects ──────────────────────────────────────────────────────────

def test_levels_never_decrease():
    print("\n=== Upgrade levels only go up ===")
    engine = _engine()
    state = engine.state

    apply_effect(engine, UpgradeRoutingLevel(RoutingLevel.DISTRIBUTED))
    apply_effect(engine, UpgradeRoutingLevel(RoutingLevel.MAIN_AUTHORITY))
    check(state.routing_level == RoutingLevel.DISTRIBUTED, "routing level kept")

    apply_effect(engine, SetElectricityCostLevel(3))
    apply_effect(engine, SetElectricityCostLevel(1))
    check(state.ledger.cost_level == 3, "cost level kept")

    apply_effect(engine, UpgradeSpamProtection(0.5))
    apply_effect(engine, UpgradeSpamProtection(0.2))
    check(state.spam_protection == 0.5, "spam protection kept")

    apply_effect(engine, MoreCaching())
    apply_effect(engine, UpgradeServices())
    check(state.cache_level == 1 and state.software_level == 1,
          "cache and software advanced")


def test_publish_service_adds_customers():
    print("\n=== Publishing a tier ===")
    engine = _engine()
    state = engine.state
    apply_effect(engine, PublishService(Tier.SUPER))
    service = state.service(Tier.SUPER)
    check(service.unlocked and not service.private, "super public")
    check(len(state.user_specs) == 1 and state.user_specs[0].permanent,
          "one paying cohort")
    check(len(engine.bus.of_type(CohortAdded)) == 1, "CohortAdded emitted")
    check(len(engine.queue) == 1, "its first arrival armed")

    apply_effect(engine, PublishService(Tier.SUPER))
    check(len(state.user_specs) == 1, "publishing twice adds nobody")

    apply_effect(engine, AddClients(CohortSpec(Tier.BASE, trial_duration=5_000_000)))
    check(state.user_specs[-1].trial_time == 5_000_000, "trial cohort added")


# ── Catalog loading ──────────────────────────────────────────────────

def test_default_catalog_loads():
    print("\n=== Shipped cards.toml ===")
    catalog = default_catalog()
    ids = [c.id for c in catalog]
    check(len(catalog) > 20, "cards loaded", f"count={len(catalog)}")
    check(ids == sorted(ids), "sorted by id")

    first = catalog.find("a0p")
    check(first is not None and first.effect == PublishService(Tier.BASE),
          "a0p publishes base")
    check(first.cost.ops_for(Tier.BASE) == 8, "a0p costs 8 base ops")

    trial = catalog.find("d0")
    check(trial is not None and trial.effect.spec.trial_duration == 500_000,
          "nested cohort spec parsed")
    routing = catalog.find("n2")
    check(routing.effect.level == RoutingLevel.DISTRIBUTED, "routing level parsed")
    check(catalog.find("zz") is None, "missing id is None")


def test_loader_skips_broken_cards():
    print("\n=== Broken card entries are skipped ===")
    text = """
[good]
title = "Good"
cost = { dollars = 2, base = 3 }
effect = { kind = "add_funds", dollars = 1 }

[bad_kind]
title = "Bad"
effect = { kind = "teleport" }

[bad_key]
title = "Bad key"
effect = { kind = "add_publicity", demand = 1.0, color = "red" }

[untitled]
effect = { kind = "nothing" }
"""
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "cards.toml"
        path.write_text(text)
        catalog = CardLoader().load(path)
        missing = CardLoader().load(Path(tmp) / "absent.toml")

    check([c.id for c in catalog] == ["good"], "only the valid card kept")
    good = catalog.find("good")
    check(good.cost.money == dollars(2) and good.cost.ops_for(Tier.BASE) == 3,
          "cost parsed")
    check(good.effect == AddFunds(dollars(1)), "dollar amounts converted")
    check(len(missing) == 0, "missing file gives an empty catalog")


def test_loader_registrations():
    print("\n=== Extra kinds can be registered ===")
    text = """
[grant]
title = "Grant"
cost = { cents = 50 }
effect = { kind = "grant", dollars = 10 }
condition = { kind = "rich", dollars = 5 }
"""
    loader = CardLoader()
    loader.register_effect("grant", AddFunds)
    loader.register_condition("rich", Funds)
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "cards.toml"
        path.write_text(text)
        catalog = loader.load(path)
        plain = CardLoader().load(path)

    card = catalog.find("grant")
    check(card is not None and card.effect == AddFunds(dollars(10)),
          "registered effect kind builds")
    check(card.condition == Funds(dollars(5)), "registered condition kind builds")
    check(card.cost.money == cents(50), "cents parsed")
    check(len(plain) == 0, "registration is per loader")


if __name__ == "__main__":
    sections = [
        ("Conservation", test_accepted_actions_cost_exactly),
        ("Rejections", test_rejected_actions_change_nothing),
        ("Pay bill", test_pay_bill),
        ("Purchases", test_node_purchases_follow_unlocks),
        ("Unknown card", test_unknown_card_rejected),
        ("Card once", test_card_used_once),
        ("Card atomic", test_unaffordable_card_is_atomic),
        ("Card money", test_card_with_money_effect),
        ("Visibility", test_visible_cards),
        ("Monotonicity", test_levels_never_decrease),
        ("Publish", test_publish_service_adds_customers),
        ("Catalog", test_default_catalog_loads),
        ("Loader", test_loader_skips_broken_cards),
        ("Registrations", test_loader_registrations),
    ]

    for name, fn in sections:
        try:
            fn()
        except Exception:
            _failed += 1
            print(f"\n  [CRASH] {name} — unhandled exception:")
            traceback.print_exc()

    total = _passed + _failed
    print(f"\n{'=' * 60}")
    print(f"  Action Tests: {_passed} passed, {_failed} failed  (total {total})")
    print(f"{'=' * 60}")
    sys.exit(1 if _failed else 0)
