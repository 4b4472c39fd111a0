"""
System functions available as `{{$name args}}` references.

Functions:
- guid                                  fresh random UUID
- randomInt <min> <max>                 integer in [min, max)
- timestamp [<offset> <unit>]           UTC epoch seconds
- datetime <format> [<offset> <unit>]   formatted UTC time
- localDatetime <format> [<offset> <unit>]  formatted local time

Offset units are y, M (months), w, d, h, m (minutes), s and ms. Formats are
`iso8601`, `rfc1123` or a quoted custom pattern such as "'dd MMM yyyy'".

Every failure (unknown function, malformed arguments, unknown format) is
reported through ParseResult; callers keep the reference text unchanged.
"""

import random
import re
import uuid
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Callable, Final
from dateutil.relativedelta import relativedelta
from restfile.models.dataModel import ParseResult
from restfile.lib.parser.base import PatternTokenParser
from restfile.lib.log import LOG

SYSTEM_FUNCTION: Final[re.Pattern[str]] = re.compile(
    r"\{\{\$([a-zA-Z]+)(?:\s+([^}]+))?\}\}"
)

INTEGER: Final[re.Pattern[str]] = re.compile(r"[+-]?[0-9]+")

DOTNET_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"yyyy|yy|MMMM|MMM|MM|M|dddd|ddd|dd|d|HH|H|hh|h|mm|m|ss|s|fff|ff|f|tt|zzz"
)

MONTH_NAMES: Final[tuple[str, ...]] = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
DAY_NAMES: Final[tuple[str, ...]] = (
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
)


def clock_now(local: bool = False) -> datetime:
    """
    Current time as an aware datetime.

    :param local: Return local time instead of UTC.
    :return: The current instant.
    """
    if local:
        return datetime.now().astimezone()
    return datetime.now(timezone.utc)


def arguments_split(raw: str) -> list[str]:
    """
    Split function arguments on whitespace, keeping quoted runs together.

    Quote characters stay in the emitted token, so "'dd MMM'" comes back as
    one argument including its quotes.

    :param raw: Argument text.
    :return: The argument list.
    """
    parts: list[str] = []
    current: list[str] = []
    quote: str | None = None

    for char in raw:
        if quote is None and char in ("'", '"'):
            quote = char
            current.append(char)
        elif quote is not None and char == quote:
            quote = None
            current.append(char)
        elif quote is None and char.isspace():
            if current:
                parts.append("".join(current))
                current = []
        else:
            current.append(char)

    if current:
        parts.append("".join(current))
    return parts


def offset_apply(base: datetime, shift: str) -> datetime:
    """
    Shift a datetime by an `<offset> <unit>` string.

    Upper-case `M` means months; every other unit is matched
    case-insensitively, so `m` and `MS` are minutes and milliseconds.

    :param base: Time to shift.
    :param shift: Offset string, e.g. "-1 d" or "3 M".
    :return: The shifted datetime.
    :raises ValueError: On a malformed offset or unknown unit.
    """
    parts: list[str] = shift.split()
    if len(parts) != 2:
        raise ValueError(f"Invalid offset: {shift}. Expected format: 'offset unit'")

    if not INTEGER.fullmatch(parts[0]):
        raise ValueError(f"Invalid offset value: {parts[0]}. Must be an integer")
    amount: int = int(parts[0])

    unit: str = parts[1]
    if unit == "M":
        return base + relativedelta(months=amount)

    deltas: dict[str, relativedelta] = {
        "y": relativedelta(years=amount),
        "w": relativedelta(weeks=amount),
        "d": relativedelta(days=amount),
        "h": relativedelta(hours=amount),
        "m": relativedelta(minutes=amount),
        "s": relativedelta(seconds=amount),
        "ms": relativedelta(microseconds=amount * 1000),
    }
    delta: relativedelta | None = deltas.get(unit.lower())
    if delta is None:
        raise ValueError(
            f"Unknown time unit: {unit}. Supported units: y, M, w, d, h, m, s, ms"
        )
    return base + delta


def quoted_check(value: str) -> bool:
    return len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"')


def utcOffset_format(moment: datetime) -> str:
    offset = moment.utcoffset()
    minutes: int = int(offset.total_seconds() // 60) if offset else 0
    sign: str = "-" if minutes < 0 else "+"
    hours, minutes = divmod(abs(minutes), 60)
    return f"{sign}{hours:02d}:{minutes:02d}"


def pattern_format(moment: datetime, pattern: str) -> str:
    """
    Render a datetime using a .NET-style custom format pattern.

    Recognised tokens are replaced; every other character is copied.

    :param moment: Time to render.
    :param pattern: Pattern such as "yyyy-MM-dd HH:mm".
    :return: The rendered text.
    """
    hour12: int = moment.hour % 12 or 12
    fields: dict[str, Callable[[], str]] = {
        "yyyy": lambda: f"{moment.year:04d}",
        "yy": lambda: f"{moment.year % 100:02d}",
        "MMMM": lambda: MONTH_NAMES[moment.month - 1],
        "MMM": lambda: MONTH_NAMES[moment.month - 1][:3],
        "MM": lambda: f"{moment.month:02d}",
        "M": lambda: str(moment.month),
        "dddd": lambda: DAY_NAMES[moment.weekday()],
        "ddd": lambda: DAY_NAMES[moment.weekday()][:3],
        "dd": lambda: f"{moment.day:02d}",
        "d": lambda: str(moment.day),
        "HH": lambda: f"{moment.hour:02d}",
        "H": lambda: str(moment.hour),
        "hh": lambda: f"{hour12:02d}",
        "h": lambda: str(hour12),
        "mm": lambda: f"{moment.minute:02d}",
        "m": lambda: str(moment.minute),
        "ss": lambda: f"{moment.second:02d}",
        "s": lambda: str(moment.second),
        "fff": lambda: f"{moment.microsecond // 1000:03d}",
        "ff": lambda: f"{moment.microsecond // 10000:02d}",
        "f": lambda: str(moment.microsecond // 100000),
        "tt": lambda: "AM" if moment.hour < 12 else "PM",
        "zzz": lambda: utcOffset_format(moment),
    }
    return DOTNET_PATTERN.sub(lambda m: fields[m.group(0)](), pattern)


def datetime_format(moment: datetime, fmt: str) -> str:
    """
    Render a datetime as iso8601, rfc1123 or a quoted custom pattern.

    :raises ValueError: On an unknown, unquoted format name.
    """
    lowered: str = fmt.lower()
    if lowered == "rfc1123":
        return format_datetime(moment.astimezone(timezone.utc), usegmt=True)
    if lowered == "iso8601":
        return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"
    if quoted_check(fmt):
        return pattern_format(moment, fmt[1:-1])
    raise ValueError(
        f"Unknown datetime format: {fmt}. Supported formats: rfc1123, iso8601, "
        "or custom format in quotes"
    )


def guid_generate(args: str) -> str:
    return str(uuid.uuid4())


def randomInt_generate(args: str) -> str:
    parts: list[str] = args.split()
    if len(parts) != 2:
        raise ValueError("randomInt requires exactly two parameters: min max")
    if not all(INTEGER.fullmatch(part) for part in parts):
        raise ValueError("randomInt parameters must be valid integers")
    low, high = int(parts[0]), int(parts[1])
    if low >= high:
        raise ValueError("randomInt min parameter must be less than max parameter")
    return str(random.randrange(low, high))


def timestamp_generate(args: str) -> str:
    moment: datetime = clock_now()
    if args:
        moment = offset_apply(moment, args)
    return str(int(moment.timestamp()))


def _datetime_generate(args: str, local: bool) -> str:
    moment: datetime = clock_now(local)
    fmt: str = "iso8601"
    if args:
        parts: list[str] = arguments_split(args)
        if parts:
            fmt = parts[0]
        if len(parts) > 1:
            moment = offset_apply(moment, " ".join(parts[1:]))
    return datetime_format(moment, fmt)


def datetime_generate(args: str) -> str:
    return _datetime_generate(args, local=False)


def localDatetime_generate(args: str) -> str:
    return _datetime_generate(args, local=True)


FUNCTIONS: Final[dict[str, Callable[[str], str]]] = {
    "guid": guid_generate,
    "randomint": randomInt_generate,
    "timestamp": timestamp_generate,
    "datetime": datetime_generate,
    "localdatetime": localDatetime_generate,
}


def function_apply(name: str, raw_args: str | None = None) -> ParseResult:
    """
    Evaluate one system function.

    :param name: Function name, matched case-insensitively.
    :param raw_args: Argument text after the name, if any.
    :return: ParseResult with the generated text, or the failure reason.
    """
    generator: Callable[[str], str] | None = FUNCTIONS.get(name.lower())
    if generator is None:
        msg: str = f"Unknown system function: ${name}"
        LOG(msg)
        return ParseResult(text="", error=msg, success=False)

    try:
        return ParseResult(text=generator((raw_args or "").strip()), error=None, success=True)
    except (ValueError, OverflowError) as e:
        LOG(f"System function ${name} failed: {e}")
        return ParseResult(text="", error=str(e), success=False)


def systemFunctions_resolve(text: str | None) -> str | None:
    """
    Replace every `{{$name args}}` reference in text.

    :param text: Text to process.
    :return: Text with successful calls substituted; failures kept literally.
    """
    if not text:
        return text

    from restfile.lib.parser.resolvers import (
        SystemFunctionResolver,
    )  # Import here to avoid circular import

    return PatternTokenParser(SYSTEM_FUNCTION, SystemFunctionResolver()).parse(text).text
