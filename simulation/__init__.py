"""simulation — The data center simulation core.

Everything that moves the world forward in time lives here.  Requests
are discrete events in a time-ordered queue; between events they cost
nothing.  The host calls ``GameEngine.update(now)`` and submits player
actions; it never mutates ``WorldState`` itself.

Submodules
----------
engine        GameEngine: owns the queue, sampler, bus and policies
queue         EventQueue: request events ordered by timestamp
sampler       Sampler: the single seedable random source
arrivals      Cohort arrival streams and the price/demand model
routing       Arrived → Routed: routing levels and the shared queue
processing    Routed → Processed: memory gates, cores, node FIFOs
billing       Electricity metering, bills and powersave
spam          Malicious request interception
major_update  The coarse periodic pass (demand, bills, timeouts)
cards         Card effects, conditions and the catalog
actions       Player actions and their interpreter
"""
