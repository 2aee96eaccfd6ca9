"""W3C extended-log style per-request field accumulation.

A :class:`W3CStats` declares the ordered field list once. Each request gets
its own :class:`RequestFields` value, created at request entry and passed
down the call path; it renders to one space-separated access-log line.
"""

from __future__ import annotations

import ipaddress
import logging
import zlib
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any, Callable, Iterator, Sequence, TypeVar

from runstats.errors import UnregisteredFieldError
from runstats.lib.logger import get_logger
from runstats.stats.registry import DevNullStats, Stats
from runstats.stats.timing import duration_ms, duration_ns

T = TypeVar("T")

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address

MISSING = "-"
_DATE_FORMAT = "%d-%b-%Y %H:%M:%S"

log = get_logger(__name__)


def date_format(date: datetime) -> str:
    """Format as ``dd-Mon-YYYY HH:MM:SS`` (e.g. ``01-Jan-1970 00:00:00``)."""

    return date.strftime(_DATE_FORMAT)


def datetime_format(date: datetime) -> tuple[str, str]:
    """Split a formatted date into its ``(date, time)`` parts."""

    day, clock = date_format(date).split(" ")
    return day, clock


def _render(value: Any) -> str:
    if isinstance(value, datetime):
        return date_format(value).replace(" ", "_")
    if isinstance(value, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return str(value)
    if isinstance(value, (str, int, float)):
        return str(value)
    return MISSING


class RequestFields:
    """Field values collected while handling one request."""

    def __init__(self, owner: "W3CStats") -> None:
        self._owner = owner
        self._values: dict[str, Any] = {}

    def _store(self, name: str, value: Any) -> None:
        self._owner.check_field(name)
        self._values[name] = value

    def log(self, name: str, value: str | int | datetime | IPAddress) -> None:
        """Record a value; strings comma-accumulate, integers sum, the rest overwrite."""

        current = self._values.get(name)
        if isinstance(value, bool):
            value = str(value).lower()
        if isinstance(value, str):
            self._store(name, f"{current},{value}" if isinstance(current, str) else value)
        elif isinstance(value, int):
            self._store(name, (current if isinstance(current, int) else 0) + value)
        else:
            self._store(name, value)

    def get(self, name: str) -> Any:
        return self._values.get(name)

    def clear(self) -> None:
        self._values.clear()

    def time(self, name: str, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run ``fn``, log its duration in milliseconds and record it as a timing."""

        result, elapsed = duration_ms(fn, *args, **kwargs)
        self.log(name, elapsed)
        self._owner.stats.add_timing(name, elapsed)
        return result

    def time_nanos(self, name: str, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        result, elapsed = duration_ns(fn, *args, **kwargs)
        self.log(name, elapsed)
        self._owner.stats.add_timing(name, elapsed)
        return result

    def incr(self, name: str, by: int = 1) -> None:
        self.log(name, by)
        self._owner.stats.incr(name, by)

    def entry(self) -> str:
        """Return the log line: declared fields in order, ``-`` where nothing was logged."""

        return " ".join(_render(self._values.get(name)) for name in self._owner.fields)


class W3CStats:
    """Declared W3C field list plus header helpers.

    With ``strict`` set, logging an undeclared field raises
    :class:`UnregisteredFieldError`; otherwise an error is logged and the
    value is kept anyway.
    """

    def __init__(
        self,
        fields: Sequence[str],
        stats: Stats | None = None,
        logger: logging.Logger | None = None,
        strict: bool = True,
    ) -> None:
        self.fields = tuple(fields)
        self._field_set = frozenset(self.fields)
        self.stats = stats if stats is not None else DevNullStats()
        self.logger = logger or log
        self.strict = strict

    def check_field(self, name: str) -> None:
        if name in self._field_set:
            return
        if self.strict:
            raise UnregisteredFieldError(name)
        log.error("w3c.field.unregistered", extra={"field": name})

    def begin(self) -> RequestFields:
        return RequestFields(self)

    @contextmanager
    def transaction(self) -> Iterator[RequestFields]:
        """Yield a fresh request context and always log its entry on exit."""

        fields = self.begin()
        try:
            yield fields
        finally:
            self.logger.info(fields.entry())

    def fields_header(self) -> str:
        return "#Fields: " + " ".join(self.fields)

    def crc32_header(self, fields_header: str | None = None) -> str:
        header = fields_header if fields_header is not None else self.fields_header()
        return f"#CRC: {zlib.crc32(header.encode('utf-8'))}"

    def date_header(self, date: datetime | None = None) -> str:
        return f"#Date: {date_format(date or datetime.now(tz=UTC))}"

    def log_header(self, date: datetime | None = None) -> str:
        fields = self.fields_header()
        return "\n".join(["#Version: 1.0", self.date_header(date), self.crc32_header(fields), fields])
