"""simulation/billing.py — Electricity accounting.

Every completed job and every routing hop consumes energy units.  Units
pile up in the ``BillingLedger`` and turn into a bill only when both

  1. a full billing period has elapsed since the last bill, and
  2. the accrued cost is above a materiality floor,

so the player is not pestered with sub-cent invoices.

Leaving bills unpaid for a full period puts the data center into
*powersave*: a derived condition (never stored) that quarters usable
cores and slows processing fourfold.  While powersaving, nothing is
metered at all.
"""

from __future__ import annotations
from typing import Any

from core import tuning
from core.constants import TIME_UNITS_PER_SECOND
from core.events import BillArrived
from components.ledger import BillingLedger


_COST_PER_UNIT = [10.0, 7.5, 5.0, 3.0, 1.5, 0.75, 0.25, 0.0]


def bill_period() -> int:
    return int(tuning.get("billing", "period", 600_000))


def cost_per_unit(level: int) -> float:
    """Millicents per energy unit.  Non-increasing in *level*; levels
    past the end of the table keep the last (cheapest) price."""
    table = tuning.get("billing", "cost_per_unit", _COST_PER_UNIT)
    return table[min(max(level, 0), len(table) - 1)]


def accrued_cost(ledger: BillingLedger) -> int:
    """Money owed for consumption not yet billed."""
    return int(ledger.consumption * cost_per_unit(ledger.cost_level))


def is_powersaving(state: Any, now: int | None = None) -> bool:
    """True when unpaid bills exceed the threshold for a full period."""
    ledger = state.ledger
    if ledger.due_since is None:
        return False
    threshold = int(tuning.get("billing", "powersave_debt", 500_000))
    if ledger.total_due <= threshold:
        return False
    now = state.time if now is None else now
    return now - ledger.due_since >= bill_period()


# ── Metering ─────────────────────────────────────────────────────────

def _accrue(state: Any, units: float) -> None:
    if is_powersaving(state):
        return
    state.ledger.consumption += units
    state.ledger.window_consumption += units


def accrue_job(state: Any, amount: int) -> None:
    """A batch of ``amount`` requests finished processing."""
    _accrue(state, float(tuning.get("billing", "energy_per_job", 4.0)) * amount)


def accrue_hop(state: Any, amount: int) -> None:
    """A batch of ``amount`` requests went through a routing node."""
    _accrue(state, float(tuning.get("billing", "energy_per_hop", 1.0)) * amount)


def set_cost_level(ledger: BillingLedger, level: int) -> None:
    """Raise the electricity cost level (never lowers it)."""
    ledger.cost_level = max(ledger.cost_level, level)


# ── Periodic evaluation ──────────────────────────────────────────────

def update_rate(ledger: BillingLedger, elapsed: int) -> None:
    """Recompute the display-only consumption rate (units/s)."""
    if elapsed > 0:
        ledger.consumption_rate = (ledger.window_consumption
                                   * TIME_UNITS_PER_SECOND / elapsed)
    ledger.window_consumption = 0.0


def evaluate(state: Any, now: int, bus: Any = None) -> int:
    """Issue a bill if due.  Returns the billed amount (0 if none)."""
    ledger = state.ledger
    if now - ledger.last_bill_time < bill_period():
        return 0
    cost = accrued_cost(ledger)
    floor = int(tuning.get("billing", "floor", 1_000))
    if cost <= floor:
        return 0   # keep accruing until it is worth a bill

    ledger.total_due += cost
    ledger.consumption = 0.0
    ledger.last_bill_time = now
    ledger.bills_issued += 1
    if ledger.due_since is None:
        ledger.due_since = now
    print(f"[BILL] Electricity bill of {cost} mc issued "
          f"(total due {ledger.total_due} mc)")
    if bus is not None:
        bus.emit(BillArrived(amount=cost, total_due=ledger.total_due, time=now))
    return cost


def pay(state: Any) -> int:
    """Settle everything due.  Caller has checked funds.  Returns amount."""
    ledger = state.ledger
    amount = ledger.total_due
    state.funds -= amount
    state.spent += amount
    ledger.total_paid += amount
    ledger.total_due = 0
    ledger.due_since = None
    return amount
