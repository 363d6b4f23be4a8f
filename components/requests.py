"""components.requests — Request lifecycle records.

A request (or a batch of ``amount`` identical requests) moves through
three stages::

    ARRIVED  ──route──▶  ROUTED  ──process──▶  PROCESSED

Every ``RequestEvent`` is immutable; a stage transition builds a new
record with a later timestamp.  Events live only inside the
``EventQueue`` and are never persisted.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from enum import Enum

from components.economy import Tier


class Stage(Enum):
    ARRIVED = "arrived"
    ROUTED = "routed"
    PROCESSED = "processed"


@dataclass(frozen=True, slots=True)
class RequestEvent:
    """One scheduled step of a request batch.

    ``cohort_id`` is ``None`` for requests the player generated by hand.
    ``node_id`` is set from ROUTED onwards.  ``router_id`` names the node
    whose routing slot must be released when the ROUTED event fires.
    ``memory`` is the per-request memory held while PROCESSED is pending.
    """
    timestamp: int
    cohort_id: int | None
    amount: int
    tier: Tier
    malicious: bool = False
    stage: Stage = Stage.ARRIVED
    node_id: int | None = None
    router_id: int | None = None
    memory: int = 0

    @classmethod
    def arrived(cls, timestamp: int, cohort_id: int | None, amount: int,
                tier: Tier, malicious: bool = False) -> "RequestEvent":
        return cls(timestamp=timestamp, cohort_id=cohort_id, amount=amount,
                   tier=tier, malicious=malicious)

    def into_routed(self, delay: int, node_id: int,
                    router_id: int | None = None) -> "RequestEvent":
        return replace(self, timestamp=self.timestamp + delay,
                       stage=Stage.ROUTED, node_id=node_id,
                       router_id=router_id)

    def into_processed(self, start: int, duration: int,
                       memory: int) -> "RequestEvent":
        """``start`` may be later than ``timestamp`` for queued work."""
        if self.stage is not Stage.ROUTED:
            raise ValueError("cannot process a request that has not been routed")
        return replace(self, timestamp=start + duration,
                       stage=Stage.PROCESSED, router_id=None, memory=memory)


@dataclass(slots=True)
class WaitingRouteRequest:
    """A request parked in the shared routing queue (not persisted)."""
    timestamp: int
    cohort_id: int | None
    amount: int
    tier: Tier
    malicious: bool = False

    @classmethod
    def from_event(cls, event: RequestEvent) -> "WaitingRouteRequest":
        return cls(event.timestamp, event.cohort_id, event.amount,
                   event.tier, event.malicious)

    def to_event(self, now: int) -> RequestEvent:
        return RequestEvent.arrived(now, self.cohort_id, self.amount,
                                    self.tier, self.malicious)


@dataclass(slots=True)
class WaitingRequest:
    """A routed request parked in a node's local FIFO (not persisted).

    Its memory is already held on the node; a timeout eviction must
    give it back.
    """
    amount: int
    cohort_id: int | None
    tier: Tier
    memory: int
    arrival_time: int
    malicious: bool = False
