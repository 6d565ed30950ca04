"""Reconciliation core for KieApp resources."""

from .reconciler import Reconciler

__all__ = ["Reconciler"]
