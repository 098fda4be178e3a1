"""Sahm Rule signal computation.

Modules
-------
alignment       — Trim two series to a common date range; precondition checks
transforms      — Moving average, lag, O(n) rolling minimum, ``compute_signal``
turning_points  — Rising-edge onsets and binary start/end intervals
"""
