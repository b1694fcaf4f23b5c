"""Exporter configuration read from the process environment.

The variable names follow the OpenTelemetry SDK environment specification
where one exists, so that CI systems configured for other OpenTelemetry
tools work unchanged.
"""

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

import humanfriendly

from tracebuild.constants import APP_NAME, DEFAULT_FLUSH_TIMEOUT, ENV_FLUSH_TIMEOUT
from tracebuild.errors import ConfigurationError

TRACES_EXPORTERS = ("otlp", "jaeger", "stdout", "none")
METRICS_EXPORTERS = ("prometheus", "none")

DEFAULT_TRACES_EXPORTER = "otlp"
DEFAULT_METRICS_EXPORTER = "none"
DEFAULT_OTLP_ENDPOINT = "https://localhost:4317"
DEFAULT_JAEGER_AGENT_HOST = "localhost"
DEFAULT_JAEGER_AGENT_PORT = 6831
DEFAULT_PROMETHEUS_HOST = "0.0.0.0"
DEFAULT_PROMETHEUS_PORT = 9464


def _first(env: Mapping[str, str], *names: str, default: Optional[str] = None):
    for name in names:
        value = env.get(name)
        if value:
            return value
    return default


def _as_bool(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


def _as_port(name: str, value: str) -> int:
    try:
        port = int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be a port number, got {value!r}")
    if not 0 < port < 65536:
        raise ConfigurationError(f"{name} must be between 1 and 65535, got {port}")
    return port


def _as_millis(name: str, value: Optional[str], default: float) -> float:
    """OpenTelemetry timeouts are given in milliseconds; return seconds."""
    if value is None:
        return default
    try:
        return int(value) / 1000
    except ValueError:
        raise ConfigurationError(f"{name} must be milliseconds, got {value!r}")


def parse_headers(raw: Optional[str]) -> dict[str, str]:
    """Parse ``key1=value1,key2=value2`` as used by ``OTEL_EXPORTER_OTLP_HEADERS``."""
    headers: dict[str, str] = {}
    if not raw:
        return headers
    for item in raw.split(","):
        if not item.strip():
            continue
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise ConfigurationError(f"Malformed header {item!r}, expected key=value")
        headers[key.strip().lower()] = value.strip()
    return headers


@dataclass
class OtlpSettings:
    endpoint: str = DEFAULT_OTLP_ENDPOINT
    insecure: bool = False
    certificate: Optional[str] = None
    headers: dict[str, str] = field(default_factory=dict)
    timeout: float = DEFAULT_FLUSH_TIMEOUT


@dataclass
class JaegerSettings:
    agent_host: str = DEFAULT_JAEGER_AGENT_HOST
    agent_port: int = DEFAULT_JAEGER_AGENT_PORT
    collector_endpoint: Optional[str] = None
    user: Optional[str] = None
    password: Optional[str] = None
    timeout: float = DEFAULT_FLUSH_TIMEOUT


@dataclass
class PrometheusSettings:
    host: str = DEFAULT_PROMETHEUS_HOST
    port: int = DEFAULT_PROMETHEUS_PORT

    @property
    def gateway(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass
class ExporterSettings:
    """Which backends to use and how to reach them."""

    traces_exporter: str = DEFAULT_TRACES_EXPORTER
    metrics_exporter: str = DEFAULT_METRICS_EXPORTER
    service_name: str = APP_NAME
    flush_timeout: float = DEFAULT_FLUSH_TIMEOUT
    otlp: OtlpSettings = field(default_factory=OtlpSettings)
    jaeger: JaegerSettings = field(default_factory=JaegerSettings)
    prometheus: PrometheusSettings = field(default_factory=PrometheusSettings)

    def __post_init__(self):
        if self.traces_exporter not in TRACES_EXPORTERS:
            raise ConfigurationError(
                f"Unsupported traces exporter {self.traces_exporter}. "
                f"Supported are: {', '.join(TRACES_EXPORTERS)}"
            )
        if self.metrics_exporter not in METRICS_EXPORTERS:
            raise ConfigurationError(
                f"Unsupported metrics exporter {self.metrics_exporter}. "
                f"Supported are: {', '.join(METRICS_EXPORTERS)}"
            )

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "ExporterSettings":
        if env is None:
            env = os.environ

        raw_timeout = env.get(ENV_FLUSH_TIMEOUT)
        if raw_timeout:
            try:
                flush_timeout = humanfriendly.parse_timespan(raw_timeout)
            except humanfriendly.InvalidTimespan:
                raise ConfigurationError(
                    f"Invalid {ENV_FLUSH_TIMEOUT} value: {raw_timeout}"
                )
        else:
            flush_timeout = DEFAULT_FLUSH_TIMEOUT

        otlp = OtlpSettings(
            endpoint=_first(
                env,
                "OTEL_EXPORTER_OTLP_TRACES_ENDPOINT",
                "OTEL_EXPORTER_OTLP_ENDPOINT",
                default=DEFAULT_OTLP_ENDPOINT,
            ),
            insecure=_as_bool(
                _first(
                    env,
                    "OTEL_EXPORTER_OTLP_TRACES_INSECURE",
                    "OTEL_EXPORTER_OTLP_INSECURE",
                )
            ),
            certificate=_first(
                env,
                "OTEL_EXPORTER_OTLP_TRACES_CERTIFICATE",
                "OTEL_EXPORTER_OTLP_CERTIFICATE",
            ),
            headers=parse_headers(
                _first(
                    env, "OTEL_EXPORTER_OTLP_TRACES_HEADERS", "OTEL_EXPORTER_OTLP_HEADERS"
                )
            ),
            timeout=_as_millis(
                "OTEL_EXPORTER_OTLP_TIMEOUT",
                _first(env, "OTEL_EXPORTER_OTLP_TRACES_TIMEOUT", "OTEL_EXPORTER_OTLP_TIMEOUT"),
                flush_timeout,
            ),
        )

        jaeger = JaegerSettings(
            agent_host=_first(
                env, "OTEL_EXPORTER_JAEGER_AGENT_HOST", default=DEFAULT_JAEGER_AGENT_HOST
            ),
            agent_port=_as_port(
                "OTEL_EXPORTER_JAEGER_AGENT_PORT",
                _first(
                    env,
                    "OTEL_EXPORTER_JAEGER_AGENT_PORT",
                    default=str(DEFAULT_JAEGER_AGENT_PORT),
                ),
            ),
            collector_endpoint=_first(env, "OTEL_EXPORTER_JAEGER_ENDPOINT"),
            user=_first(env, "OTEL_EXPORTER_JAEGER_USER"),
            password=_first(env, "OTEL_EXPORTER_JAEGER_PASSWORD"),
            timeout=_as_millis(
                "OTEL_EXPORTER_JAEGER_TIMEOUT",
                _first(env, "OTEL_EXPORTER_JAEGER_TIMEOUT"),
                flush_timeout,
            ),
        )

        prometheus = PrometheusSettings(
            host=_first(env, "OTEL_EXPORTER_PROMETHEUS_HOST", default=DEFAULT_PROMETHEUS_HOST),
            port=_as_port(
                "OTEL_EXPORTER_PROMETHEUS_PORT",
                _first(
                    env,
                    "OTEL_EXPORTER_PROMETHEUS_PORT",
                    default=str(DEFAULT_PROMETHEUS_PORT),
                ),
            ),
        )

        return cls(
            traces_exporter=_first(
                env, "OTEL_TRACES_EXPORTER", default=DEFAULT_TRACES_EXPORTER
            ).strip().lower(),
            metrics_exporter=_first(
                env, "OTEL_METRICS_EXPORTER", default=DEFAULT_METRICS_EXPORTER
            ).strip().lower(),
            service_name=_first(env, "OTEL_SERVICE_NAME", default=APP_NAME),
            flush_timeout=flush_timeout,
            otlp=otlp,
            jaeger=jaeger,
            prometheus=prometheus,
        )
