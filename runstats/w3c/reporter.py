"""Write flat stats mappings as W3C log lines, re-emitting headers when fields change."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Mapping

from runstats.w3c.fields import W3CStats


class W3CReporter:
    """Emit one W3C line per report.

    Fields are the sorted keys of each report. Whenever that set changes
    (compared by CRC of the ``#Fields`` header) a full header block is logged
    before the line, so every line in the file is self-describing.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self.logger = logger
        self._last_crc: str | None = None

    def report(self, values: Mapping[str, Any], now: datetime | None = None) -> str:
        w3c = W3CStats(sorted(values), strict=True)
        crc = w3c.crc32_header()
        if crc != self._last_crc:
            self.logger.info(w3c.log_header(now))
            self._last_crc = crc

        fields = w3c.begin()
        for name in w3c.fields:
            value = values[name]
            if isinstance(value, float):
                value = f"{value:.6f}".rstrip("0").rstrip(".") or "0"
            fields.log(name, value)
        line = fields.entry()
        self.logger.info(line)
        return line
