"""Utility functions."""

from portage.utils.time import describe_age, format_display_date, utc_now

__all__ = ["utc_now", "format_display_date", "describe_age"]
