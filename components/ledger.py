"""components.ledger — Electricity billing state.

Consumption is accrued in abstract energy units and only converted to
money when a bill is issued (see ``simulation.billing``).
"""

from __future__ import annotations
from dataclasses import dataclass


@dataclass
class BillingLedger:
    consumption: float = 0.0        # units accrued since the last bill
    window_consumption: float = 0.0 # units since the last major update
    consumption_rate: float = 0.0   # units/s, display only
    cost_level: int = 0
    total_due: int = 0              # issued, unpaid (millicents)
    total_paid: int = 0
    bills_issued: int = 0
    last_bill_time: int = 0
    due_since: int | None = None    # time of the oldest unpaid bill

    def to_dict(self) -> dict:
        return {
            "consumption": self.consumption,
            "consumption_rate": self.consumption_rate,
            "cost_level": self.cost_level,
            "total_due": self.total_due,
            "total_paid": self.total_paid,
            "bills_issued": self.bills_issued,
            "last_bill_time": self.last_bill_time,
            "due_since": self.due_since,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "BillingLedger":
        due_since = data.get("due_since")
        return cls(
            consumption=float(data.get("consumption", 0.0)),
            consumption_rate=float(data.get("consumption_rate", 0.0)),
            cost_level=int(data.get("cost_level", 0)),
            total_due=int(data.get("total_due", 0)),
            total_paid=int(data.get("total_paid", 0)),
            bills_issued=int(data.get("bills_issued", 0)),
            last_bill_time=int(data.get("last_bill_time", 0)),
            due_since=None if due_since is None else int(due_since),
        )
