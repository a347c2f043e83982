"""
Legislature calendar and date windows.

A legislature lasts four years, from February 1st to January 31st.
Legislature 57 started on 2023-02-01.
"""

from datetime import date, timedelta
from typing import List, Optional, Tuple

REFERENCE_LEGISLATURE = 57
REFERENCE_START_YEAR = 2023


def legislature_period(legislatura: int) -> Tuple[date, date]:
    """First and last day of a legislature"""
    start_year = REFERENCE_START_YEAR + 4 * (legislatura - REFERENCE_LEGISLATURE)
    return date(start_year, 2, 1), date(start_year + 4, 1, 31)


def current_legislature(today: Optional[date] = None) -> int:
    today = today or date.today()
    year = today.year if today >= date(today.year, 2, 1) else today.year - 1
    return REFERENCE_LEGISLATURE + (year - REFERENCE_START_YEAR) // 4


def date_windows(start: date, end: date, days: int) -> List[Tuple[date, date]]:
    """
    Split [start, end] into consecutive windows of at most ``days`` days.

    The upstream process search rejects ranges longer than a year.
    """
    if days < 1:
        raise ValueError("days must be at least 1")
    windows = []
    cursor = start
    while cursor <= end:
        window_end = min(cursor + timedelta(days=days - 1), end)
        windows.append((cursor, window_end))
        cursor = window_end + timedelta(days=1)
    return windows
