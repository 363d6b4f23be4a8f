"""test_save.py — Headless verification of world persistence.

Tests three things:
1. snapshot → JSON → restore reproduces every persisted field
2. Transient load (in-flight jobs, queues, reservations) is reset
3. Missing and broken save files are reported, never raised

Run: python test_save.py
"""
from __future__ import annotations
import json, sys, tempfile, traceback
from pathlib import Path

# ── Bootstrap ────────────────────────────────────────────────────────
from core.tuning import load as _load_tuning
_load_tuning()

from core import save
from core.save import load_world, restore, save_world, snapshot
from components import (
    RequestEvent, RoutingLevel, Tier, UsedCard, WaitingRequest, WorldState,
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


def _busy_world() -> WorldState:
    """A world with something in every persisted field."""
    state = WorldState(time=123_456, funds=9_876_543, spent=1_000, earned=5_000,
                       demand=12.5, demand_rate=0.25, ops_per_click=4,
                       routing_level=RoutingLevel.DISTRIBUTED, cache_level=2,
                       software_level=3, spam_protection=0.875,
                       can_buy_nodes=True, demand_visible=True,
                       requests_received=100, requests_fulfilled=80,
                       requests_dropped=15, requests_failed=5)
    base = state.service(Tier.BASE)
    base.price, base.entitlement, base.available, base.total = 150, 5, 42, 900
    base.private = False
    state.service(Tier.SUPER).unlocked = True

    node = state.add_node()
    node.cpu_level, node.ram_level = 3, 2
    state.add_node()
    state.add_cohort(Tier.BASE)
    state.add_cohort(Tier.SUPER, trial_time=500_000)
    state.add_cohort(Tier.BASE, malicious=True)
    state.remove_cohort(1)

    ledger = state.ledger
    ledger.consumption, ledger.consumption_rate = 321.5, 2.75
    ledger.cost_level, ledger.total_due, ledger.total_paid = 2, 4_000, 12_000
    ledger.bills_issued, ledger.last_bill_time, ledger.due_since = 3, 120_000, 120_000

    state.cards_used.append(UsedCard(id="a0p", time=1_000))
    state.cards_used.append(UsedCard(id="b0", time=2_500))
    return state


# ── Round trip ───────────────────────────────────────────────────────

def test_round_trip_is_exact():
    print("\n=== Snapshot round trip ===")
    state = _busy_world()
    data = snapshot(state)
    check(data["format_version"] == save.SAVE_FORMAT_VERSION, "versioned")

    restored = restore(json.loads(json.dumps(data)))
    check(snapshot(restored) == data, "every persisted field reproduced")
    check(restored.routing_level is RoutingLevel.DISTRIBUTED, "enum restored")
    check(restored.service(Tier.BASE).private is False, "service flags restored")
    check([c.id for c in restored.user_specs] == [0, 2], "cohort ids kept")
    check(restored.next_cohort_id == 3 and restored.next_node_id == 3,
          "id counters kept")
    check(restored.cohort(2).malicious, "malicious flag kept")
    check(restored.ledger.due_since == 120_000, "unpaid bill kept")


def test_transient_fields_reset():
    print("\n=== Transient state is not persisted ===")
    state = _busy_world()
    node = state.nodes[0]
    node.processing = 3
    node.ram_usage = 5_000_000
    node.ram_reserved = 8_000_000
    node.waiting.append(WaitingRequest(1, None, Tier.BASE, 256_000, 0))
    state.ledger.window_consumption = 77.0

    restored = restore(snapshot(state))
    check(all(not (n.processing or n.ram_usage or n.ram_reserved or n.waiting)
              for n in restored.nodes), "node load reset")
    check(restored.ledger.window_consumption == 0.0, "metering window reset")
    check(restored.nodes[1].cpu_level == 3, "levels survive")


def test_restored_world_rearms_cohorts():
    print("\n=== A restored world starts generating again ===")
    restored = restore(snapshot(_busy_world()))
    engine = GameEngine(WorldState(), sampler=Sampler(9))
    engine.queue.push(RequestEvent.arrived(0, None, 1, Tier.BASE))   # stale
    engine.load_state(restored)
    check(engine.state is restored, "state swapped in")
    check(len(engine.queue) == len(restored.user_specs),
          "one pending arrival per live cohort",
          f"queue={len(engine.queue)} cohorts={len(restored.user_specs)}")
    check(engine.major.last_run == restored.time, "major clock follows the save")


# ── Files ────────────────────────────────────────────────────────────

def test_save_and_load_files():
    print("\n=== Save slots on disk ===")
    original = save.SAVES_DIR
    with tempfile.TemporaryDirectory() as tmp:
        save.SAVES_DIR = Path(tmp) / "saves"
        try:
            result = load_world(0)
            check(result.missing and result.state is None and result.error is None,
                  "missing slot is a normal outcome")

            state = _busy_world()
            path = save_world(state, 1)
            check(path.exists(), "save written")
            result = load_world(1)
            check(result.ok and snapshot(result.state) == snapshot(state),
                  "loaded state matches")

            save.get_save_file(2).write_text("{not json")
            result = load_world(2)
            check(result.state is None and not result.missing and result.error,
                  "corrupt file reported", f"error={result.error}")

            data = snapshot(state)
            data["format_version"] = 99
            save.get_save_file(3).write_text(json.dumps(data))
            result = load_world(3)
            check(result.error is not None and "99" in result.error,
                  "unknown version reported")

            data = snapshot(state)
            del data["nodes"]
            save.get_save_file(4).write_text(json.dumps(data))
            check(load_world(4).error is not None, "missing field reported")
        finally:
            save.SAVES_DIR = original


if __name__ == "__main__":
    sections = [
        ("Round trip", test_round_trip_is_exact),
        ("Transient reset", test_transient_fields_reset),
        ("Re-arm", test_restored_world_rearms_cohorts),
        ("Files", test_save_and_load_files),
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
    print(f"  Save Tests: {_passed} passed, {_failed} failed  (total {total})")
    print(f"{'=' * 60}")
    sys.exit(1 if _failed else 0)
