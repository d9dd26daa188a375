# modules/balances/__init__.py

from .reconciliation import BalanceReconciler

__all__ = ["BalanceReconciler"]
