"""Time and datetime utilities."""

from datetime import date, datetime, timezone


def utc_now() -> datetime:
    """Get current UTC datetime.

    Returns:
        Current datetime in UTC timezone
    """
    return datetime.now(timezone.utc)


def format_display_date(value: datetime | date) -> str:
    """Format a date the way reports print it (dd/mm/yyyy)."""
    return value.strftime("%d/%m/%Y")


def age_in_years_and_months(birth_date: date, today: date) -> tuple[int, int]:
    """Whole years and months between two calendar dates.

    Only year and month are compared; the day of month is ignored.
    """
    years = today.year - birth_date.year
    months = today.month - birth_date.month
    if months < 0:
        years -= 1
        months += 12
    return years, months


def describe_age(birth_date: date, today: date) -> str:
    """Human readable age, e.g. "3 anos e 4 meses"."""
    years, months = age_in_years_and_months(birth_date, today)
    return f"{years} anos e {months} meses"
