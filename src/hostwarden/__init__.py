"""Hostwarden - managed and custom host reconciliation for traffic resources."""

__version__ = "0.1.0"
