import io
import logging
import os

import pytest

from tests.fixtures import RecordingMetricsExporter, RecordingTraceExporter
from tracebuild.cli.utils import logging as cli_logging
from tracebuild.exporters import ExporterRouter


@pytest.fixture
def capture_logs():
    """Fixture to capture log output during tests."""
    log_stream = io.StringIO()
    handler = logging.StreamHandler(log_stream)
    logger = logging.getLogger("tracebuild")
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)

    yield log_stream  # Yield the stream to the test function

    # Cleanup after the test
    logger.removeHandler(handler)
    log_stream.close()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's OTEL_* and TRACEBUILD_* settings out of tests."""
    for name in list(os.environ):
        if name.startswith(("OTEL_", "TRACEBUILD_")):
            monkeypatch.delenv(name, raising=False)

    yield

    # CliRunner streams are closed once a test is done
    cli_logging.logger.removeHandler(cli_logging._handler)


@pytest.fixture
def recording_router(monkeypatch):
    """
    Route CLI telemetry into in-memory exporters instead of real backends.

    Spans and samples land in ``router.traces.spans`` and
    ``router.metrics.samples``.
    """
    router = ExporterRouter(RecordingTraceExporter(), RecordingMetricsExporter())

    def _install_router():
        return router

    for module in ("tracebuild.cli.cmd", "tracebuild.cli.step", "tracebuild.cli.build"):
        monkeypatch.setattr(f"{module}.install_router", _install_router)
    return router
