"""simulation/queue.py — Time-ordered request event queue.

Every pending step of every request batch sits here, ordered by
timestamp.  Between events a request costs zero CPU.

    queue = EventQueue()
    queue.push(RequestEvent.arrived(350, cohort_id=2, amount=1, tier=Tier.BASE))
    ...
    while queue.peek_next_time() is not None and queue.peek_next_time() <= now:
        handle(queue.pop())

Equal timestamps pop in insertion order.
"""

from __future__ import annotations
import heapq
from dataclasses import dataclass, field

from components.requests import RequestEvent


@dataclass(order=True)
class _Entry:
    """Heap wrapper: ordered by ``time`` then insertion ``_seq``."""
    time: int
    # heapq tiebreaker: insertion order
    _seq: int = field(compare=True, repr=False)
    event: RequestEvent = field(compare=False, default=None)


class EventQueue:
    """Priority queue of ``RequestEvent`` ordered by timestamp."""

    def __init__(self) -> None:
        self._heap: list[_Entry] = []
        self._seq: int = 0
        # Stats
        self.events_pushed: int = 0

    def push(self, event: RequestEvent) -> None:
        self._seq += 1
        heapq.heappush(self._heap, _Entry(event.timestamp, self._seq, event))
        self.events_pushed += 1

    def peek_next_time(self) -> int | None:
        """Return the time of the next event, or None if empty."""
        if self._heap:
            return self._heap[0].time
        return None

    def pop(self) -> RequestEvent | None:
        """Remove and return the earliest event (None when empty)."""
        if not self._heap:
            return None
        return heapq.heappop(self._heap).event

    def clear(self) -> None:
        self._heap.clear()

    def __len__(self) -> int:
        return len(self._heap)

    # ── Debug ────────────────────────────────────────────────────────

    def debug_dump(self, limit: int = 20) -> list[str]:
        """Return a human-readable list of the next N events."""
        entries = sorted(self._heap)[:limit]
        return [
            f"{e.time}  {e.event.stage.value}  tier={e.event.tier.name}  "
            f"x{e.event.amount}  cohort={e.event.cohort_id}  node={e.event.node_id}"
            for e in entries
        ]
