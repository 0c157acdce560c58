"""Inactivity decay of rating deviation.

Run as a maintenance job. The comparison path never applies decay; the next
recorded comparison recomputes RD from the match count.
"""

from __future__ import annotations

from datetime import UTC, datetime

SECONDS_PER_DAY = 86_400


def as_utc(moment: datetime) -> datetime:
    """Treat naive datetimes (as returned by some databases) as UTC."""
    return moment.replace(tzinfo=UTC) if moment.tzinfo is None else moment


def days_between(earlier: datetime, later: datetime) -> float:
    """Whole and fractional days from ``earlier`` to ``later``."""
    return (as_utc(later) - as_utc(earlier)).total_seconds() / SECONDS_PER_DAY


def decayed_rating_deviation(
    rating_deviation: float,
    days_inactive: float,
    decay_rate: float,
    ceiling: float,
) -> float:
    """Grow RD by ``decay_rate`` per inactive day, capped at ``ceiling``.

    Args:
        rating_deviation: Current RD.
        days_inactive: Days since the item was last compared.
        decay_rate: Fractional daily RD increase (0.015 means 1.5% per day).
        ceiling: Maximum RD, normally the initial RD.

    Returns:
        The decayed RD. Unchanged when ``days_inactive`` is not positive.
    """
    if days_inactive <= 0:
        return rating_deviation
    return min(ceiling, rating_deviation * (1 + decay_rate) ** days_inactive)
