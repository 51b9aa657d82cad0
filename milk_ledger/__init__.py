"""Accounts ledger for a home-delivery milk business."""

__version__ = "1.0.0"
