"""simulation/spam.py — Malicious traffic interception.

Malicious requests are screened once, when they first reach routing.
Interception is a Bernoulli trial whose success rate is the current
spam-protection strength (0.0 – 1.0).  Intercepted batches are counted
as *failed*, never as *dropped*: the data center did its job.

At full strength the filter also purges every malicious cohort, so no
new malicious traffic is generated.
"""

from __future__ import annotations
from typing import Any

from core.events import CohortRetired
from components.requests import RequestEvent

MAX_PROTECTION = 1.0


class SpamFilter:
    def __init__(self, engine: Any) -> None:
        self.engine = engine
        self.intercepted: int = 0

    def intercept(self, event: RequestEvent) -> bool:
        """Roll for *event*.  True means it was stopped and accounted."""
        if not event.malicious:
            return False
        state = self.engine.state
        if not self.engine.sampler.gen_bool(state.spam_protection):
            return False
        state.requests_failed += event.amount
        self.intercepted += event.amount
        return True

    def upgrade(self, strength: float) -> int:
        """Raise protection to *strength* (never lowers it).

        Returns the number of malicious cohorts purged.
        """
        state = self.engine.state
        state.spam_protection = min(MAX_PROTECTION,
                                    max(state.spam_protection, strength))
        if state.spam_protection < MAX_PROTECTION:
            return 0
        return self.purge()

    def purge(self) -> int:
        state = self.engine.state
        doomed = [c for c in state.user_specs if c.malicious]
        for cohort in doomed:
            state.remove_cohort(cohort.id)
            self.engine.bus.emit(CohortRetired(cohort_id=cohort.id,
                                               reason="purged",
                                               time=state.time))
        if doomed:
            print(f"[SPAM] Purged {len(doomed)} malicious cohort(s)")
        return len(doomed)
