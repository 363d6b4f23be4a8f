"""components.hardware — Compute nodes and their upgrade tables.

A node's capacity is derived from two levels that index static,
ascending tables in ``data/tuning.toml``::

    [hardware]
    cpu_cores = [1, 2, 4, ...]      # cores per CPU level
    cpu_speed = [1.0, 1.0, ...]     # processing speed multiplier
    cpu_cost  = [0, 3000000, ...]   # price of *reaching* that level
    ram_capacity / ram_cost         # same for memory

Levels only ever go up.  Transient fields (``processing``, memory
bookkeeping, ``waiting``) are reset on load.
"""

from __future__ import annotations
from collections import deque
from dataclasses import dataclass, field

from core import tuning
from components.requests import WaitingRequest


_CPU_CORES = [1, 2, 4, 8, 16, 32, 64, 128]
_CPU_SPEED = [1.0, 1.0, 1.25, 1.25, 1.5, 1.5, 2.0, 2.0]
_CPU_COST = [0, 3_000_000, 7_000_000, 16_000_000, 35_000_000,
             78_000_000, 170_000_000, 380_000_000]
_RAM_CAPACITY = [64_000_000, 128_000_000, 256_000_000, 512_000_000,
                 1_000_000_000, 2_000_000_000, 4_000_000_000,
                 8_000_000_000, 16_000_000_000, 32_000_000_000]
_RAM_COST = [0, 2_000_000, 4_500_000, 10_000_000, 22_000_000,
             48_000_000, 100_000_000, 220_000_000, 480_000_000,
             1_000_000_000]


def cpu_table() -> list[tuple[int, float, int]]:
    """``[(cores, speed, cost), ...]`` in ascending level order."""
    cores = tuning.get("hardware", "cpu_cores", _CPU_CORES)
    speed = tuning.get("hardware", "cpu_speed", _CPU_SPEED)
    cost = tuning.get("hardware", "cpu_cost", _CPU_COST)
    return list(zip(cores, speed, cost))


def ram_table() -> list[tuple[int, int]]:
    """``[(capacity, cost), ...]`` in ascending level order."""
    capacity = tuning.get("hardware", "ram_capacity", _RAM_CAPACITY)
    cost = tuning.get("hardware", "ram_cost", _RAM_COST)
    return list(zip(capacity, cost))


@dataclass
class ComputeNode:
    """A cloud processing node and its live load."""
    id: int
    cpu_level: int = 0
    ram_level: int = 0

    # ── transient ────────────────────────────────────────────────────
    processing: int = 0        # jobs (or routing slots) in flight
    ram_usage: int = 0         # memory held by admitted requests
    ram_reserved: int = 0      # cache/software reservation
    waiting: deque[WaitingRequest] = field(default_factory=deque)

    # ── Derived capacity ─────────────────────────────────────────────

    @property
    def num_cores(self) -> int:
        return cpu_table()[self.cpu_level][0]

    @property
    def cpu_speed(self) -> float:
        return cpu_table()[self.cpu_level][1]

    @property
    def ram_capacity(self) -> int:
        return ram_table()[self.ram_level][0]

    @property
    def memory_used(self) -> int:
        return self.ram_usage + self.ram_reserved

    @property
    def memory_free(self) -> int:
        return self.ram_capacity - self.memory_used

    def effective_cores(self, powersaving: bool) -> int:
        """Cores usable right now.  Powersave keeps a quarter (at least 1)."""
        if not powersaving:
            return self.num_cores
        divisor = tuning.get("processing", "powersave_core_divisor", 4)
        return max(1, self.num_cores // divisor)

    def has_free_core(self, powersaving: bool) -> bool:
        return self.processing < self.effective_cores(powersaving)

    # ── Upgrades ─────────────────────────────────────────────────────

    def next_cpu_upgrade_cost(self) -> int | None:
        """Cost of the next CPU level, or None at the top."""
        table = cpu_table()
        if self.cpu_level + 1 >= len(table):
            return None
        return table[self.cpu_level + 1][2]

    def next_ram_upgrade_cost(self) -> int | None:
        table = ram_table()
        if self.ram_level + 1 >= len(table):
            return None
        return table[self.ram_level + 1][1]

    @property
    def fully_upgraded(self) -> bool:
        return (self.next_cpu_upgrade_cost() is None
                and self.next_ram_upgrade_cost() is None)

    def to_dict(self) -> dict:
        return {"id": self.id, "cpu_level": self.cpu_level,
                "ram_level": self.ram_level}

    @classmethod
    def from_dict(cls, data: dict) -> "ComputeNode":
        return cls(id=int(data["id"]),
                   cpu_level=int(data.get("cpu_level", 0)),
                   ram_level=int(data.get("ram_level", 0)))
