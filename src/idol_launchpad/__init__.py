"""Idol launchpad: Move coin publication, factory registration and trade-event aggregation on Sui."""

__version__ = "0.1.0"
