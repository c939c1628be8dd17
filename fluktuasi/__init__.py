"""Fluctuation (Other Income / Expenses) reconciliation for SIG Activa workbooks."""

__version__ = "0.1.0"
