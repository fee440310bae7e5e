from datetime import date, datetime, timezone


def now_utc() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def today_utc() -> date:
    return now_utc().date()


def parse_iso_date(value: str | date | None) -> date | None:
    """Accept ``YYYY-MM-DD`` strings (or dates); blank means ``None``."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    return date.fromisoformat(text[:10])


def fmt_issue_date(value: str | date | None) -> str:
    """Human-readable calendar date, e.g. ``5 March 2025``."""
    parsed = parse_iso_date(value)
    if not parsed:
        return ""
    day = parsed.strftime("%d").lstrip("0")
    return f"{day} {parsed.strftime('%B %Y')}"


def fmt_dt(value: datetime | date | None) -> str:
    """Format datetimes without seconds; dates use D MMM YYYY."""
    if not value:
        return ""
    if isinstance(value, datetime):
        return value.strftime("%-d %b %Y %H:%M")
    if isinstance(value, date):
        return value.strftime("%-d %b %Y")
    return str(value)
