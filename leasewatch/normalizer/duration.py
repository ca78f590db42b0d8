import re
from datetime import timedelta
from typing import Optional

# h/m/s как в Go-длительностях, плюс дни, недели, месяцы (30d) и годы (365d)
_UNIT_SECONDS = {
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 24 * 3600,
    "D": 24 * 3600,
    "w": 7 * 24 * 3600,
    "W": 7 * 24 * 3600,
    "M": 30 * 24 * 3600,
    "y": 365 * 24 * 3600,
    "Y": 365 * 24 * 3600,
}

_TOKEN = re.compile(r"(\d*\.\d+|\d+)([a-zA-Z])")
_FULL = re.compile(r"^(?:(?:\d*\.\d+|\d+)[smhdDwWMyY])+$")


def parse_duration(value) -> Optional[timedelta]:
    """
    "30d", "-1.5w", "3Y4M5d", "12h30m" -> timedelta.
    Пустая строка / None -> None (срок не задан), "0" -> timedelta(0).
    """
    if value is None:
        return None
    if isinstance(value, timedelta):
        return value
    if isinstance(value, (int, float)):
        # число без единицы допустимо только 0 ("не удалять")
        if value == 0:
            return timedelta(0)
        raise ValueError(f"duration {value!r} has no unit, use e.g. \"30d\" or \"12h\"")

    s = str(value).strip()
    if not s:
        return None

    negative = s.startswith("-")
    if negative:
        s = s[1:]

    if s == "0":
        return timedelta(0)

    if not _FULL.match(s):
        raise ValueError(f"invalid duration string: {value!r}")

    seconds = 0.0
    for number, unit in _TOKEN.findall(s):
        seconds += float(number) * _UNIT_SECONDS[unit]

    return timedelta(seconds=-seconds if negative else seconds)


def format_duration(value: Optional[timedelta]) -> str:
    if value is None or value <= timedelta(0):
        return "never"
    days = value.days
    hours, rest = divmod(value.seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    parts = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if not parts:
        # меньше минуты
        parts.append(f"{seconds}s")
    return "".join(parts)
