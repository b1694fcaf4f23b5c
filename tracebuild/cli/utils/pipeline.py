import sys

from tracebuild.cli.utils.logging import logger
from tracebuild.config import ExporterSettings
from tracebuild.errors import ConfigurationError, ExportFailure
from tracebuild.exporters import ExporterRouter
from tracebuild.telemetry.events import SpanRecord
from tracebuild.telemetry.metrics import sample_for_span


def install_router() -> ExporterRouter:
    """Select the backends from the environment, or quit on bad configuration."""
    try:
        return ExporterRouter.from_settings(ExporterSettings.from_env())
    except ConfigurationError as e:
        log_error_and_quit(logger, f"Invalid exporter configuration: {e}", e.exit_code)


def report(router: ExporterRouter, span: SpanRecord) -> list[ExportFailure]:
    """Export a span and its duration sample, then flush both backends."""
    router.export_span(span)
    router.export_metric(sample_for_span(span))
    return router.flush()


def log_error_and_quit(logger, error, exit_code: int = 1):
    logger.error(error)
    sys.exit(exit_code)
