"""Date helpers shared by the payment and quota services."""

from datetime import date, datetime, time, timedelta, timezone


def utc_now() -> datetime:
    """Current timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def utc_today() -> date:
    """Current calendar date in UTC."""
    return utc_now().date()


def is_past_due(expiration_date: date, today: date | None = None) -> bool:
    """
    Check whether an expiration date is already behind us.

    A quota that expires today is not past due yet.

    Examples:
        >>> is_past_due(date(2024, 1, 1), today=date(2024, 1, 2))
        True
        >>> is_past_due(date(2024, 1, 2), today=date(2024, 1, 2))
        False
    """
    return expiration_date < (today or utc_today())


def day_range(start: date | None, end: date | None) -> tuple[datetime | None, datetime | None]:
    """
    Convert an inclusive date range into a half-open UTC datetime range.

    The end date is inclusive, so the upper bound is the start of the next day.

    Examples:
        >>> day_range(date(2024, 1, 1), date(2024, 1, 31))[1]
        datetime.datetime(2024, 2, 1, 0, 0, tzinfo=datetime.timezone.utc)
    """
    lower = datetime.combine(start, time.min, tzinfo=timezone.utc) if start else None
    upper = (
        datetime.combine(end + timedelta(days=1), time.min, tzinfo=timezone.utc)
        if end
        else None
    )
    return lower, upper
