"""components.cohort — Traffic sources.

A cohort is a group of cloud users sharing a tier, a trial window and
a maliciousness flag.  Each live cohort keeps exactly one ARRIVED event
in the queue; handling it schedules the next one.
"""

from __future__ import annotations
from dataclasses import dataclass

from components.economy import Tier


@dataclass
class UserSpec:
    """A live cohort.

    ``trial_time`` is the absolute time at which the free trial ends
    and the cohort leaves; ``0`` means a permanent, always-paying cohort.
    """
    id: int
    tier: Tier = Tier.BASE
    trial_time: int = 0
    malicious: bool = False

    @property
    def permanent(self) -> bool:
        return self.trial_time == 0

    def is_paying(self, time: int) -> bool:
        return not self.malicious and time >= self.trial_time

    def trial_over(self, time: int) -> bool:
        return not self.permanent and time >= self.trial_time

    def to_dict(self) -> dict:
        return {"id": self.id, "tier": int(self.tier),
                "trial_time": self.trial_time, "malicious": self.malicious}

    @classmethod
    def from_dict(cls, data: dict) -> "UserSpec":
        return cls(id=int(data["id"]), tier=Tier(int(data.get("tier", 0))),
                   trial_time=int(data.get("trial_time", 0)),
                   malicious=bool(data.get("malicious", False)))


@dataclass(frozen=True, slots=True)
class CohortSpec:
    """Template a card uses to create a cohort.

    ``trial_duration`` is relative; it becomes an absolute
    ``trial_time`` when the cohort is created.
    """
    tier: Tier = Tier.BASE
    trial_duration: int = 0
    malicious: bool = False
