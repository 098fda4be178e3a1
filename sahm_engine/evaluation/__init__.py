"""Scoring of signal onsets against reference recession dates.

Modules
-------
matching   — Window matching, nearest signed offsets, lead/lag summaries
evaluator  — ``evaluate()``: accuracy % and lead times as ``AccuracyStats``
"""
