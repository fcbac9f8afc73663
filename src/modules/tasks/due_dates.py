"""Due-date policy: derive an instance's due date from its template's deadline spec."""

from datetime import datetime, timedelta

from dateutil.relativedelta import relativedelta

from src.domain.task import DeadlineUnit


def _parse_magnitude(magnitude: str | int | None) -> int | None:
    if magnitude is None or isinstance(magnitude, bool):
        return None
    try:
        return int(str(magnitude).strip())
    except ValueError:
        return None


def compute_due_date(
    unit: DeadlineUnit | str | None,
    magnitude: str | int | None,
    reference: datetime,
) -> datetime | None:
    """Return ``reference`` advanced by ``magnitude`` units, or None.

    None is returned when either input is missing, the magnitude is not an
    integer, or the unit is unknown. Month arithmetic clamps to the last day
    of the target month (Jan 31 + 1 month is Feb 28/29).
    """
    if not unit:
        return None
    amount = _parse_magnitude(magnitude)
    if amount is None:
        return None

    match str(unit).strip().lower():
        case DeadlineUnit.DAYS:
            return reference + timedelta(days=amount)
        case DeadlineUnit.WEEKS:
            return reference + timedelta(weeks=amount)
        case DeadlineUnit.MONTHS:
            return reference + relativedelta(months=amount)
        case _:
            return None
