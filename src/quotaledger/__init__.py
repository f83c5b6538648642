"""Quotaledger - installment sales and payment ledger."""

__version__ = "0.1.0"
