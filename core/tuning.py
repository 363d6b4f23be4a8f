"""core/tuning.py — Gameplay numbers for the data center.

Every number a designer might balance lives in ``data/tuning.toml``:

    [start]       funds, ambient demand and its growth, ops per click
    [tiers]       per-tier arrays (base, super, epic, awesome): prices,
                  reference prices, durations, memory per request,
                  software and cache reservations
    [demand]      price elasticity, batching, DoS threshold
    [hardware]    CPU and RAM level tables, node/rack/datacenter prices
    [routing]     routing latency and shared queue capacity
    [processing]  node queues, timeouts, cache, software and powersave
    [billing]     energy per job/hop, cost per unit by level, bill period
    [major]       length of the major update period

Read a value with::

    from core import tuning
    latency = tuning.get("routing", "latency", 200)

Defaults passed to ``get()`` match the shipped file, so a missing file
(or a test that never calls ``load()``) still plays the same game.
``load()`` reports shape problems (a tier array without four entries,
level tables of different lengths, a cost table that gets more
expensive) but keeps going.

Hot-reload: ``reload()`` re-reads the same file.  In-game, press F4.
"""

from __future__ import annotations
import tomllib
from pathlib import Path

TIER_COUNT = 4

_TIER_ARRAYS = ("price", "reference_price", "base_duration", "request_memory",
                "software_reserve", "cache_reserve")
# (section, keys that must have equal length)
_LEVEL_TABLES = (
    ("hardware", ("cpu_cores", "cpu_speed", "cpu_cost")),
    ("hardware", ("ram_capacity", "ram_cost")),
)
# (section, key, direction) for tables that must only go one way
_MONOTONIC = (
    ("hardware", "cpu_cores", 1),
    ("hardware", "ram_capacity", 1),
    ("billing", "cost_per_unit", -1),
    ("processing", "cache_hit_chance", 1),
)

_data: dict = {}
_path: Path | None = None


def load(path: str | Path | None = None) -> None:
    """Load (or reload) tuning constants from *path*.

    If *path* is ``None``, default to ``data/tuning.toml`` relative to
    the project root (one level above ``core/``).
    """
    global _data, _path

    if path is None:
        root = Path(__file__).resolve().parent.parent
        path = root / "data" / "tuning.toml"
    else:
        path = Path(path)

    _path = path

    if not path.exists():
        print(f"[TUNING] {path} not found — using defaults")
        _data = {}
        return

    with open(path, "rb") as f:
        _data = tomllib.load(f)

    for problem in validate(_data):
        print(f"[TUNING] {path.name}: {problem}")
    print(f"[TUNING] Loaded {_count_leaves(_data)} values from {path}")


def reload() -> None:
    """Re-read the tuning file from disk (hot-reload)."""
    load(_path)


def reset() -> None:
    """Forget every loaded value so only the code defaults apply."""
    global _data
    _data = {}


def get(section: str, key: str, default=None):
    """Read a tuning value, or *default* when it is missing.

    *section* may use dots for nested tables (``"billing.overrides"``
    looks inside ``[billing.overrides]``).

    >>> get("routing", "queue_capacity", 2000)
    2000
    """
    node = _data
    for part in section.split("."):
        node = node.get(part) if isinstance(node, dict) else None
        if node is None:
            return default
    if isinstance(node, dict):
        return node.get(key, default)
    return default


def validate(data: dict) -> list[str]:
    """Shape problems in a parsed tuning file.  Empty means fine."""
    problems: list[str] = []

    tiers = data.get("tiers", {})
    for key in _TIER_ARRAYS:
        values = tiers.get(key)
        if values is not None and len(values) != TIER_COUNT:
            problems.append(f"tiers.{key} has {len(values)} entries, "
                            f"expected {TIER_COUNT}")

    for section, keys in _LEVEL_TABLES:
        table = data.get(section, {})
        lengths = {key: len(table[key]) for key in keys if key in table}
        if len(set(lengths.values())) > 1:
            sizes = ", ".join(f"{k}={n}" for k, n in lengths.items())
            problems.append(f"{section} level tables differ in length ({sizes})")

    for section, key, direction in _MONOTONIC:
        values = data.get(section, {}).get(key)
        if not values:
            continue
        steps = zip(values, values[1:])
        if direction > 0 and any(b < a for a, b in steps):
            problems.append(f"{section}.{key} must not decrease")
        elif direction < 0 and any(b > a for a, b in steps):
            problems.append(f"{section}.{key} must not increase")

    return problems


def _count_leaves(d: dict, _n: int = 0) -> int:
    for v in d.values():
        if isinstance(v, dict):
            _n = _count_leaves(v, _n)
        else:
            _n += 1
    return _n
