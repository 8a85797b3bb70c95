import datetime

import numpy as np
import pandas as pd

# ---------------------------------------------------------
# PARSING & FORMATTING
# ---------------------------------------------------------

# ISO first, then the two day-month-year spellings used in exported plans
DATE_FORMATS = ["%Y-%m-%d", "%d-%b-%y", "%d-%b-%Y"]


def parse_date(value):
    """
    Parse a date cell into a day-resolution pd.Timestamp.

    Accepts:
      "2026-06-26"
      "26-Jun-26"
      "26-Jun-2026"
      date / datetime / Timestamp objects

    Returns None for empty or unparseable input; never raises.
    """
    if value is None:
        return None

    if isinstance(value, (pd.Timestamp, datetime.date, np.datetime64)):
        ts = pd.Timestamp(value)
        if pd.isna(ts):
            return None
        return ts.normalize()

    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    for fmt in DATE_FORMATS:
        ts = pd.to_datetime(text, format=fmt, errors="coerce")
        if not pd.isna(ts):
            return ts.normalize()

    return None


def to_iso_string(value) -> str:
    ts = parse_date(value)
    if ts is None:
        return ""
    return ts.strftime("%Y-%m-%d")


def format_ddmmmyy(value) -> str:
    """'2026-06-26' -> '26-Jun-26'"""
    ts = parse_date(value)
    if ts is None:
        return ""
    return ts.strftime("%d-%b-%y")


# ---------------------------------------------------------
# CALENDAR-DAY MATH (scheduling positions)
# ---------------------------------------------------------

def finish_date(start, dur):
    """Finish = start + dur calendar days. None when start is missing."""
    ts = parse_date(start)
    if ts is None:
        return None
    if dur is None or pd.isna(dur):
        dur = 0
    return ts + pd.Timedelta(days=int(dur))


def days_between(start, end) -> int:
    return int((parse_date(end) - parse_date(start)).days)


def calendar_span(start, dur) -> int:
    """Width of a Gantt bar in calendar days."""
    if parse_date(start) is None or dur is None or pd.isna(dur):
        return 0
    return int(dur)


def roll_to_weekday(value):
    """Saturday/Sunday move forward to Monday; weekdays are unchanged."""
    ts = parse_date(value)
    if ts is None:
        return None
    dow = ts.dayofweek
    if dow == 5:
        return ts + pd.Timedelta(days=2)
    if dow == 6:
        return ts + pd.Timedelta(days=1)
    return ts


# ---------------------------------------------------------
# BUSINESS-DAY MATH (reporting / variance)
# ---------------------------------------------------------

def _as_day(ts):
    return np.datetime64(ts.date(), "D")


def add_business_days(value, days):
    """
    Step `days` weekdays forward (or backward when negative), skipping
    Saturday and Sunday. Zero returns the date unchanged.
    """
    ts = parse_date(value)
    if ts is None:
        return None

    n = int(days or 0)
    if n == 0:
        return ts

    # Sat + 1 = Mon, Sat - 1 = Fri
    roll = "backward" if n > 0 else "forward"
    return pd.Timestamp(np.busday_offset(_as_day(ts), n, roll=roll))


def count_business_days(start, end) -> int:
    """
    Business days strictly after `start` up to and including `end`.
    Friday -> following Monday is 1.
    """
    s = parse_date(start)
    e = parse_date(end)
    if s is None or e is None or e <= s:
        return 0
    return int(np.busday_count(_as_day(s) + 1, _as_day(e) + 1))
