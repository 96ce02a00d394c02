"""
Cron expression validation and fire-time computation using croniter.
"""

from datetime import datetime, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from croniter import croniter

from etlflow.core.exceptions import InvalidScheduleError

CRON_FIELD_COUNT = 5


def validate_cron_expression(expression: str | None) -> str | None:
    """
    Check that an expression is a well-formed five-field cron schedule.

    Args:
        expression: Candidate expression (e.g. "0 */6 * * *")

    Returns:
        None when valid, otherwise a description of the problem
    """
    if not isinstance(expression, str) or not expression.strip():
        return "Cron expression must be a non-empty string"

    fields = expression.split()
    if len(fields) != CRON_FIELD_COUNT:
        return f"Cron expression must have {CRON_FIELD_COUNT} fields, got {len(fields)}"

    if not croniter.is_valid(expression):
        return "Cron expression contains an invalid field value"

    return None


def require_valid_cron(expression: str | None) -> str:
    """
    Raises:
        InvalidScheduleError: If the expression is rejected
    """
    error = validate_cron_expression(expression)
    if error:
        raise InvalidScheduleError(expression, error)
    return " ".join(expression.split())


def resolve_timezone(name: str | None) -> tzinfo:
    """
    Raises:
        ValueError: If the zone name is unknown
    """
    if not name or name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {name}") from e


def next_fire_time(expression: str, after: datetime | None = None, tz: tzinfo | str | None = None) -> datetime:
    """
    Next time the schedule fires strictly after `after` (default: now).

    Args:
        expression: Valid five-field cron expression
        after: Reference time; naive values are taken to be in `tz`
        tz: Zone the cron fields are evaluated in (default UTC)

    Returns:
        Timezone-aware datetime in `tz`
    """
    zone = tz if isinstance(tz, tzinfo) else resolve_timezone(tz)
    if after is None:
        base = datetime.now(zone)
    elif after.tzinfo is None:
        base = after.replace(tzinfo=zone)
    else:
        base = after.astimezone(zone)
    return croniter(expression, base).get_next(datetime)
