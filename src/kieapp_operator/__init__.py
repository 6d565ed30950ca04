"""Reconciliation core for the KieApp operator."""

__version__ = "0.1.0"
