"""Розбір специфікаторів часу (FROM/TO) у абсолютні UTC-інстанти.

Підтримувані форми:
    • unix epoch у секундах: `1678864718`;
    • стиснений ISO8601 UTC: `20160201T130405`;
    • відносний час у стилі Grafana: `now`, `now-5m`, `now + 2h`.

Усі обчислення ведуться в UTC; таймзона хоста не впливає на результат.
"""

from __future__ import annotations

import datetime as dt
from typing import Optional

SECONDS_IN_MINUTE = 60
SECONDS_IN_HOUR = 60 * SECONDS_IN_MINUTE
SECONDS_IN_DAY = 24 * SECONDS_IN_HOUR
# Фіксований 365-денний рік, без врахування високосних.
SECONDS_IN_YEAR = 365 * SECONDS_IN_DAY

UNIT_SECONDS = {
    "s": 1,
    "m": SECONDS_IN_MINUTE,
    "h": SECONDS_IN_HOUR,
    "d": SECONDS_IN_DAY,
    "y": SECONDS_IN_YEAR,
}

COMPACT_EXAMPLE = "20160201T130405"
RELATIVE_PREFIX = "now"
TIMESTAMP_WIDTH = len("13:04:05")

INSTANT_FORMS_HELP = (
    "valid values for FROM/TO are condensed ISO8601 UTC datetime '20160201T130405', "
    "grafana relative 'now-5m', or unix epoch '1678864718'"
)

_EPOCH = dt.datetime(1970, 1, 1, tzinfo=dt.timezone.utc)


def _parse_compact(time_s: str) -> Optional[int]:
    # YYYY MM DD T HH MM SS
    fields = (
        time_s[0:4],
        time_s[4:6],
        time_s[6:8],
        time_s[9:11],
        time_s[11:13],
        time_s[13:15],
    )
    if not all(field.isdecimal() for field in fields):
        return None
    year, month, day, hour, minute, second = (int(field) for field in fields)
    try:
        moment = dt.datetime(year, month, day, hour, minute, second, tzinfo=dt.timezone.utc)
    except ValueError:
        return None
    return int((moment - _EPOCH).total_seconds())


def _parse_relative(rest: str, now: int) -> Optional[int]:
    rest = rest.lstrip()
    if not rest:
        return now
    sign_char = rest[0]
    if sign_char not in "+-":
        return None
    unit = UNIT_SECONDS.get(rest[-1]) if len(rest) > 1 else None
    if unit is None:
        return None
    digits = rest[1:-1].strip()
    if not digits.isdecimal():
        return None
    sign = -1 if sign_char == "-" else 1
    return now + sign * int(digits) * unit


def parse_instant(time_s: str, now: int) -> Optional[int]:
    """Перетворює специфікатор часу у секунди від UTC epoch.

    Args:
        time_s: Рядок FROM/TO у одній з підтримуваних форм.
        now: Опорний "зараз" (секунди) для відносної форми.

    Returns:
        Інстант у секундах або None, якщо рядок не розпізнано.
        Функція ніколи не кидає винятків.
    """

    time_s = (time_s or "").strip()
    if time_s.isdecimal():
        return int(time_s)
    if len(time_s) == len(COMPACT_EXAMPLE) and time_s[8] == "T":
        return _parse_compact(time_s)
    if time_s.startswith(RELATIVE_PREFIX):
        return _parse_relative(time_s[len(RELATIVE_PREFIX):], now)
    return None


def format_timestamp(instant: int) -> str:
    """Повертає мітку `HH:MM:SS` (UTC) фіксованої ширини 8 символів."""

    moment = _EPOCH + dt.timedelta(seconds=int(instant))
    return moment.strftime("%H:%M:%S")
