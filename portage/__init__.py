"""Portage Digital: assessment aggregation and sync engine for the Portage inventory."""

__version__ = "0.1.0"
