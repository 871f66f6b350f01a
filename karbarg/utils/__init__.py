"""Shared helpers."""
from karbarg.utils.datetime_helpers import ensure_utc, start_of_day, utc_now, window_start

__all__ = ["ensure_utc", "start_of_day", "utc_now", "window_start"]
