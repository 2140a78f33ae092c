"""
Timestamp and duration rendering shared by all JSON payloads
"""

from datetime import datetime, timedelta, timezone


def format_instant(moment: datetime) -> str:
    """
    Render an aware datetime as an ISO-8601 UTC instant, e.g. 2024-05-01T10:15:30.123456Z

    Args:
        moment: Timezone-aware datetime (naive values are assumed to be UTC)

    Returns:
        ISO-8601 string with a trailing "Z"
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def format_duration(delta: timedelta) -> str:
    """
    Render a timedelta as an ISO-8601 duration using hours, minutes and seconds only

    Examples: PT0S, PT0.5S, PT1M2.25S, PT26H3M

    Args:
        delta: Duration to render

    Returns:
        ISO-8601 duration string
    """
    micros = (delta.days * 86_400 + delta.seconds) * 1_000_000 + delta.microseconds
    if micros == 0:
        return "PT0S"

    sign = "-" if micros < 0 else ""
    micros = abs(micros)
    hours, rem = divmod(micros, 3_600_000_000)
    minutes, rem = divmod(rem, 60_000_000)
    seconds, fraction = divmod(rem, 1_000_000)

    parts = ["PT"]
    if hours:
        parts.append(f"{sign}{hours}H")
    if minutes:
        parts.append(f"{sign}{minutes}M")
    if seconds or fraction:
        text = str(seconds)
        if fraction:
            text += "." + f"{fraction:06d}".rstrip("0")
        parts.append(f"{sign}{text}S")
    return "".join(parts)
