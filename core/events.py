"""core/events.py — Lightweight event bus.

Decouples the simulation, which *signals* that something happened,
from the host, which *reacts* to it (toast a message, write a save,
play a sound).  The engine owns one bus::

    from core.events import EventBus, BillArrived
    bus = engine.bus
    bus.subscribe("BillArrived", show_bill)

The engine emits while it steps; the host drains once per frame::

    bus.drain()          # calls all handlers for pending events

Design rules:
  - Events are plain dataclasses with no behaviour.
  - ``emit()`` is O(1) (just appends).
  - ``drain()`` processes all queued events in FIFO order.
  - Handlers may emit new events; those are processed in the same drain.
  - ``history`` keeps the last few events so a host (or a test) can
    poll instead of subscribing.
"""

from __future__ import annotations
import traceback
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Any, Callable


# ═══════════════════════════════════════════════════════════════════
#  Event definitions
# ═══════════════════════════════════════════════════════════════════

@dataclass
class BillArrived:
    """An electricity bill was issued."""
    amount: int
    total_due: int
    time: int = 0


@dataclass
class PowersaveChanged:
    """Unpaid bills switched the data center into (or out of) powersave."""
    active: bool
    time: int = 0


@dataclass
class CohortAdded:
    cohort_id: int
    tier: int
    malicious: bool = False
    time: int = 0


@dataclass
class CohortRetired:
    """A cohort left: trial over, or purged by spam protection."""
    cohort_id: int
    reason: str = "trial_over"
    time: int = 0


@dataclass
class CardUsed:
    card_id: str
    time: int = 0


@dataclass
class ActionRejected:
    """A player action was refused; the state is unchanged."""
    action: str
    reason: str
    time: int = 0


@dataclass
class SnapshotRequested:
    """The major update asks the host to persist the world."""
    time: int = 0


@dataclass
class Diagnostic:
    """Something inconsistent was tolerated (stale id, bad input)."""
    category: str
    message: str
    time: int = 0


# ═══════════════════════════════════════════════════════════════════
#  Event Bus
# ═══════════════════════════════════════════════════════════════════

class EventBus:
    """Fire-and-forget event bus owned by the engine."""

    def __init__(self, history_size: int = 200):
        self._queue: list[Any] = []
        self._subs: dict[str, list[Callable]] = defaultdict(list)
        self._stats: dict[str, int] = defaultdict(int)
        self.history: deque[Any] = deque(maxlen=history_size)

    # ── Public API ───────────────────────────────────────────────────

    def emit(self, event) -> None:
        """Queue an event for processing on next ``drain()``."""
        self._queue.append(event)
        self.history.append(event)

    def subscribe(self, event_type: str, handler: Callable) -> None:
        """Register *handler* to receive events of *event_type*.

        *event_type* is the class name, e.g. ``"BillArrived"``.
        """
        self._subs[event_type].append(handler)

    def unsubscribe(self, event_type: str, handler: Callable) -> None:
        """Remove one registration of *handler*; unknown handlers are ignored."""
        handlers = self._subs.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def drain(self) -> int:
        """Process all queued events.  Returns number processed.

        Handlers may emit new events; those are processed in the
        same drain pass (breadth-first).
        """
        processed = 0
        safety = 1000  # prevent infinite loops
        while self._queue and safety > 0:
            batch = self._queue[:]
            self._queue.clear()
            for event in batch:
                name = type(event).__name__
                self._stats[name] += 1
                for handler in self._subs.get(name, []):
                    try:
                        handler(event)
                    except Exception as exc:
                        print(f"[EVENT] handler error for {name}: {exc}")
                        traceback.print_exc()
            processed += len(batch)
            safety -= 1
        return processed

    def of_type(self, event_type: type) -> list[Any]:
        """Recent events of one type, oldest first."""
        return [e for e in self.history if isinstance(e, event_type)]

    def clear(self) -> None:
        """Discard all pending events."""
        self._queue.clear()

    def stats(self) -> dict[str, int]:
        """Return cumulative event counts by type."""
        return dict(self._stats)

    def pending_count(self) -> int:
        """Number of events waiting to be drained."""
        return len(self._queue)

    def __repr__(self) -> str:
        return f"EventBus(pending={len(self._queue)}, subs={len(self._subs)})"
