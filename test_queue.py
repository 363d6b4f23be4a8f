"""test_queue.py — Event queue, event bus, tuning, request records and the sampler.

Run:  python test_queue.py
"""
from __future__ import annotations
import random, sys, tomllib, traceback
from pathlib import Path
from types import SimpleNamespace

from components import RequestEvent, Stage, Tier
from core import tuning
from core.events import CardUsed, Diagnostic, EventBus
from core.scene import Scene
from simulation.queue import EventQueue
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


def _arrival(t: int, cohort: int | None = None) -> RequestEvent:
    return RequestEvent.arrived(t, cohort, 1, Tier.BASE)


# ── Queue ────────────────────────────────────────────────────────────

def test_pops_are_time_ordered():
    print("\n=== Pops never go back in time ===")
    rng = random.Random(42)
    queue = EventQueue()
    for _ in range(500):
        queue.push(_arrival(rng.randrange(0, 10_000)))
    check(len(queue) == 500 and queue.events_pushed == 500, "all pushed")

    times = []
    while len(queue):
        times.append(queue.pop().timestamp)
    check(all(a <= b for a, b in zip(times, times[1:])), "non-decreasing")


def test_equal_times_keep_insertion_order():
    print("\n=== Ties pop in insertion order ===")
    queue = EventQueue()
    for cohort in range(10):
        queue.push(_arrival(100, cohort))
    queue.push(_arrival(50, 99))
    order = [queue.pop().cohort_id for _ in range(11)]
    check(order == [99] + list(range(10)), "earliest first, then FIFO",
          f"order={order}")


def test_empty_queue():
    print("\n=== Empty queue ===")
    queue = EventQueue()
    check(queue.peek_next_time() is None, "peek is None")
    check(queue.pop() is None, "pop is None")
    queue.push(_arrival(7))
    check(queue.peek_next_time() == 7, "peek sees the only event")
    queue.clear()
    check(len(queue) == 0, "cleared")


def test_debug_dump():
    queue = EventQueue()
    queue.push(_arrival(30, 1))
    queue.push(_arrival(10, 2))
    lines = queue.debug_dump()
    check(len(lines) == 2 and lines[0].startswith("10"), "dump sorted by time")


# ── Request records ──────────────────────────────────────────────────

def test_stage_transitions():
    print("\n=== Request stage transitions ===")
    event = _arrival(100, 3)
    routed = event.into_routed(200, node_id=1, router_id=0)
    check(routed.stage is Stage.ROUTED and routed.timestamp == 300,
          "routed after the delay")
    check(routed.router_id == 0 and routed.node_id == 1, "router and target kept")

    done = routed.into_processed(start=500, duration=2000, memory=256_000)
    check(done.stage is Stage.PROCESSED and done.timestamp == 2500,
          "processed at start + duration")
    check(done.router_id is None and done.memory == 256_000,
          "slot forgotten, memory carried")

    try:
        event.into_processed(0, 1, 0)
        check(False, "processing an unrouted request must raise")
    except ValueError:
        ok("unrouted request cannot be processed")


# ── Event bus ────────────────────────────────────────────────────────

def test_event_bus():
    print("\n=== Event bus ===")
    bus = EventBus(history_size=3)
    seen = []
    bus.subscribe("CardUsed", lambda e: seen.append(e.card_id))
    bus.subscribe("CardUsed", lambda e: bus.emit(Diagnostic("test", e.card_id)))
    for card_id in ("a", "b"):
        bus.emit(CardUsed(card_id))
    check(bus.pending_count() == 2 and not seen, "nothing runs before drain")

    check(bus.drain() == 4, "follow-up events drained in the same pass")
    check(seen == ["a", "b"], "handlers see events in order")
    check(bus.stats() == {"CardUsed": 2, "Diagnostic": 2}, "counts by type")
    check(len(bus.history) == 3 and len(bus.of_type(Diagnostic)) == 2,
          "history is bounded")

    bus.emit(CardUsed("c"))
    bus.clear()
    check(bus.pending_count() == 0 and bus.drain() == 0, "clear drops pending")


def test_scene_listens_while_on_top():
    print("\n=== Scene subscriptions follow the stack ===")
    app = SimpleNamespace(engine=SimpleNamespace(bus=EventBus()))
    bus = app.engine.bus

    class _Notes(Scene):
        max_messages = 2

        def on_enter(self, app):
            self.listen(app, "CardUsed", lambda e: self.notify(e.card_id))

    scene = _Notes()
    scene.on_enter(app)
    for card_id in ("a", "b", "c"):
        bus.emit(CardUsed(card_id))
    bus.drain()
    check(list(scene.messages) == ["b", "c"], "notices kept up to the limit",
          f"messages={list(scene.messages)}")

    scene.on_exit(app)
    bus.emit(CardUsed("d"))
    bus.drain()
    check(list(scene.messages) == ["b", "c"], "nothing heard after exit")

    scene.on_enter(app)
    bus.emit(CardUsed("e"))
    bus.drain()
    check(list(scene.messages) == ["c", "e"], "heard again once back on top")
    bus.unsubscribe("CardUsed", print)   # never registered
    ok("unknown handler ignored")


# ── Tuning ───────────────────────────────────────────────────────────

def test_tuning_file_and_defaults():
    print("\n=== Tuning file ===")
    tuning.load()
    try:
        check(tuning.get("routing", "queue_capacity") == 2000, "shipped value read")
        check(tuning.get("routing", "missing", 7) == 7, "missing key falls back")
        check(tuning.get("nope.deeper", "x", "d") == "d", "missing section falls back")
        check(tuning.get("tiers", "price")[0] == 100, "per-tier arrays read")

        tuning.reset()
        check(tuning.get("routing", "queue_capacity", 1234) == 1234,
              "reset leaves only the code defaults")
    finally:
        tuning.load()


def test_tuning_shape_checks():
    print("\n=== Tuning shape checks ===")
    root = Path(tuning.__file__).resolve().parent.parent
    with open(root / "data" / "tuning.toml", "rb") as f:
        shipped = tomllib.load(f)
    check(tuning.validate(shipped) == [], "shipped file is consistent",
          f"{tuning.validate(shipped)}")

    broken = {
        "tiers": {"price": [1, 2, 3]},
        "hardware": {"cpu_cores": [1, 2], "cpu_speed": [1.0], "cpu_cost": [0, 1],
                     "ram_capacity": [64, 32], "ram_cost": [0, 1]},
        "billing": {"cost_per_unit": [1.0, 2.0]},
    }
    problems = tuning.validate(broken)
    check(len(problems) == 4, "every problem reported", f"problems={problems}")
    check(any("tiers.price" in p for p in problems), "short tier array named")
    check(any("cost_per_unit" in p for p in problems), "rising cost table named")


# ── Sampler ──────────────────────────────────────────────────────────

def test_sampler_is_reproducible():
    print("\n=== Seeded sampler ===")
    a, b = Sampler(5), Sampler(5)
    seq_a = [a.next_request(3.0) for _ in range(50)]
    seq_b = [b.next_request(3.0) for _ in range(50)]
    check(seq_a == seq_b, "same seed, same stream")
    check(min(seq_a) >= 1, "intervals are at least one time unit")

    check(not a.gen_bool(0.0) and a.gen_bool(1.0), "certain outcomes")
    check(all(0 <= a.gen_range(0, 4) < 4 for _ in range(100)), "range bounds")


if __name__ == "__main__":
    sections = [
        ("Ordering", test_pops_are_time_ordered),
        ("Ties", test_equal_times_keep_insertion_order),
        ("Empty", test_empty_queue),
        ("Dump", test_debug_dump),
        ("Bus", test_event_bus),
        ("Scene", test_scene_listens_while_on_top),
        ("Tuning", test_tuning_file_and_defaults),
        ("Tuning checks", test_tuning_shape_checks),
        ("Stages", test_stage_transitions),
        ("Sampler", test_sampler_is_reproducible),
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
    print(f"  Queue Tests: {_passed} passed, {_failed} failed  (total {total})")
    print(f"{'=' * 60}")
    sys.exit(1 if _failed else 0)
