"""
OTLP JSON trace exporter.

Writes each batch as one OTLP JSON line (NDJSON) that can be piped to an
OTLP collector or kept as a ``.jsonl`` file.
"""

import json
import sys
from typing import IO, Optional

from tracebuild import __version__
from tracebuild.constants import APP_NAME
from tracebuild.exporters.base import TraceExporter
from tracebuild.telemetry.events import SpanRecord


class StdoutTraceExporter(TraceExporter):
    name = "stdout"

    def __init__(self, service_name: str = APP_NAME, output: Optional[IO] = None):
        self.service_name = service_name
        self.output = output
        self._spans: list[SpanRecord] = []

    def export_span(self, span: SpanRecord) -> None:
        self._spans.append(span)

    def to_otlp(self) -> dict:
        return {
            "resourceSpans": [
                {
                    "resource": {
                        "attributes": [
                            {
                                "key": "service.name",
                                "value": {"stringValue": self.service_name},
                            },
                        ]
                    },
                    "scopeSpans": [
                        {
                            "scope": {"name": APP_NAME, "version": __version__},
                            "spans": [s.to_otlp() for s in self._spans],
                        }
                    ],
                }
            ]
        }

    def flush(self, timeout: float) -> None:
        if not self._spans:
            return
        output = self.output or sys.stdout
        line = json.dumps(self.to_otlp(), separators=(",", ":"))
        output.write(line + "\n")
        output.flush()
        self._spans.clear()
