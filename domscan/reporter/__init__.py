"""Report generation for domscan."""

from domscan.reporter.console import ConsoleReporter
from domscan.reporter.json_report import JSONReporter

__all__ = ["ConsoleReporter", "JSONReporter"]
