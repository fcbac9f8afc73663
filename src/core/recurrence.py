"""Recurrence utilities for recurring task templates."""

from datetime import datetime, timedelta

from croniter import croniter


# Ticks fire at midnight UTC; weekly on Mondays, monthly on the 1st
_PATTERN_CRON: dict[str, str] = {
    "daily": "0 0 * * *",
    "weekly": "0 0 * * 1",
    "monthly": "0 0 1 * *",
}


def pattern_to_cron(pattern: str) -> str:
    """Map a recurrence pattern (daily/weekly/monthly) to a CRON expression.

    Args:
        pattern: Recurrence pattern name, case-insensitive

    Returns:
        CRON expression for the pattern

    Raises:
        ValueError: If the pattern is not recognised
    """
    cron = _PATTERN_CRON.get(pattern.strip().lower())
    if cron is None:
        msg = f"Invalid recurrence pattern: '{pattern}'. Use one of: {', '.join(_PATTERN_CRON)}"
        raise ValueError(msg)
    return cron


def latest_tick(pattern: str, *, after: datetime, now: datetime) -> datetime | None:
    """Return the most recent tick in ``(after, now]``, or None if there is none.

    Ticks missed in between collapse into the latest one.
    """
    # croniter.get_prev is strictly-before, so nudge past ``now`` to include it
    tick = croniter(pattern_to_cron(pattern), now + timedelta(seconds=1)).get_prev(datetime)
    if tick <= after:
        return None
    return tick
