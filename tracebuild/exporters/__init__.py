"""Telemetry backends and the router that selects between them."""

from tracebuild.exporters.base import (
    MetricsExporter,
    NoopMetricsExporter,
    NoopTraceExporter,
    TraceExporter,
)
from tracebuild.exporters.router import ExporterRouter, select_exporters

__all__ = [
    "ExporterRouter",
    "MetricsExporter",
    "NoopMetricsExporter",
    "NoopTraceExporter",
    "TraceExporter",
    "select_exporters",
]
