"""Reporters for protocols and session results."""

from protoguard.reporters.base import BaseReporter
from protoguard.reporters.console import ConsoleReporter
from protoguard.reporters.json_report import JSONReporter

__all__ = ["BaseReporter", "ConsoleReporter", "JSONReporter"]
