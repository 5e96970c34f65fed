"""Derived fleet state.

Availability is never stored; it is computed from the maintenance flag
and active checkouts whenever a checkout, return or maintenance change
needs to be pushed to observers.
"""
