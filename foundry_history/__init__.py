"""Foundry History: time-bucketed history aggregation for dashboard widgets."""

__version__ = "0.1.0"
