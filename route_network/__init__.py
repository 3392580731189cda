"""
Route network planner

Normalizes loosely-typed point/connection records into a network graph and
supports interactive rerouting against the trace routing service.
"""

__version__ = "0.1.0"
