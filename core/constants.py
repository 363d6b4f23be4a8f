"""core/constants.py — Shared constants used across the codebase.

Centralises magic numbers so there's exactly one place to change them.
Anything a designer might want to tweak lives in ``data/tuning.toml``
instead; what stays here are the unit definitions every module agrees on.

Unit System
-----------
    Time        tu      (time units, integer)
    Money       mc      (millicents, integer; 100 000 mc = $1)
    Memory      B       (bytes, integer)
    Demand      req/s   (float, requests per second)

Game Time Scale
~~~~~~~~~~~~~~~
The host ticks every ``MILLISECONDS_PER_CYCLE`` real milliseconds and
advances the virtual clock by ``TIME_UNITS_PER_CYCLE``.
"""

# ── Time ─────────────────────────────────────────────────────────────
TIME_UNITS_PER_MILLISECOND = 10
TIME_UNITS_PER_SECOND = TIME_UNITS_PER_MILLISECOND * 1_000
MILLISECONDS_PER_CYCLE = 50
TIME_UNITS_PER_CYCLE = TIME_UNITS_PER_MILLISECOND * MILLISECONDS_PER_CYCLE

# ── Money (millicents) ───────────────────────────────────────────────
MILLICENTS_PER_CENT = 1_000
MILLICENTS_PER_DOLLAR = 100_000

# ── Memory (bytes) ───────────────────────────────────────────────────
MB = 1_000_000

# ── Hardware layout ──────────────────────────────────────────────────
RACK_CAPACITY = 4          # nodes per rack
DATACENTER_CAPACITY = 32   # nodes per datacenter

# ── Persistence ──────────────────────────────────────────────────────
SAVE_FORMAT_VERSION = 1
