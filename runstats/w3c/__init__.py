"""W3C extended-log field accumulation and reporting."""

from runstats.w3c.fields import RequestFields, W3CStats
from runstats.w3c.reporter import W3CReporter

__all__ = ["RequestFields", "W3CReporter", "W3CStats"]
