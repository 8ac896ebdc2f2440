"""
Deterministic quantity calculation engine.

Pure Python math. No network, no database.
Given a line item's calculation method and measurements,
produce the raw, adjusted and rounded quantity plus a traceable formula.
"""
