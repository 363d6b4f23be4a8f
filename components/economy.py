"""components.economy — Money, costs, tiers and per-tier service state.

Money is an ``int`` of millicents everywhere; the helpers below exist so
call sites read ``dollars(5)`` instead of ``500000``.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import IntEnum

from core import tuning
from core.constants import MILLICENTS_PER_CENT, MILLICENTS_PER_DOLLAR


# ── Money helpers ────────────────────────────────────────────────────

def cents(amount: int) -> int:
    return int(amount) * MILLICENTS_PER_CENT


def dollars(amount: int) -> int:
    return int(amount) * MILLICENTS_PER_DOLLAR


# ── Tiers ────────────────────────────────────────────────────────────

class Tier(IntEnum):
    """The four service grades.  The value doubles as an array index."""
    BASE = 0
    SUPER = 1
    EPIC = 2
    AWESOME = 3

    @classmethod
    def parse(cls, value) -> "Tier":
        """Accept ``Tier``, int code or case-insensitive name."""
        if isinstance(value, Tier):
            return value
        if isinstance(value, str):
            return cls[value.upper()]
        return cls(int(value))


def tier_value(key: str, tier: Tier, default: list):
    """Read the per-tier array ``[tiers].key`` and pick *tier*'s entry."""
    values = tuning.get("tiers", key, default)
    return values[int(tier)]


# ── Cost ─────────────────────────────────────────────────────────────

@dataclass(frozen=True, slots=True)
class Cost:
    """Price of a purchase: money plus ops from any of the four tiers."""
    money: int = 0
    ops: tuple[int, int, int, int] = (0, 0, 0, 0)

    @classmethod
    def of(cls, money: int = 0, base: int = 0, super_: int = 0,
           epic: int = 0, awesome: int = 0) -> "Cost":
        return cls(money=money, ops=(base, super_, epic, awesome))

    def ops_for(self, tier: Tier) -> int:
        return self.ops[int(tier)]

    @property
    def is_free(self) -> bool:
        return self.money == 0 and not any(self.ops)


# ── Service state ────────────────────────────────────────────────────

@dataclass
class ServiceInfo:
    """Per-tier pricing and op counters.

    ``available`` is spendable (cards cost ops), ``total`` only grows.
    ``private`` services are unlocked for the player to click but have
    no customers until published.
    """
    price: int = 0
    entitlement: int = 0
    available: int = 0
    total: int = 0
    unlocked: bool = False
    private: bool = True

    @classmethod
    def for_tier(cls, tier: Tier) -> "ServiceInfo":
        """Starting state: base is unlocked but private, the rest locked."""
        price = tier_value("price", tier, [100, 500, 2000, 50000])
        return cls(price=price, unlocked=tier == Tier.BASE)

    def to_dict(self) -> dict:
        return {
            "price": self.price,
            "entitlement": self.entitlement,
            "available": self.available,
            "total": self.total,
            "unlocked": self.unlocked,
            "private": self.private,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ServiceInfo":
        return cls(
            price=int(data.get("price", 0)),
            entitlement=int(data.get("entitlement", 0)),
            available=int(data.get("available", 0)),
            total=int(data.get("total", 0)),
            unlocked=bool(data.get("unlocked", False)),
            private=bool(data.get("private", True)),
        )
