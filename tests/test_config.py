"""Tests for exporter settings read from the environment."""

import pytest

from tracebuild.config import (
    DEFAULT_OTLP_ENDPOINT,
    ExporterSettings,
    parse_headers,
)
from tracebuild.constants import DEFAULT_FLUSH_TIMEOUT
from tracebuild.errors import ConfigurationError


class TestDefaults:
    @pytest.mark.short
    def test_empty_environment(self):
        settings = ExporterSettings.from_env({})
        assert settings.traces_exporter == "otlp"
        assert settings.metrics_exporter == "none"
        assert settings.service_name == "tracebuild"
        assert settings.flush_timeout == DEFAULT_FLUSH_TIMEOUT
        assert settings.otlp.endpoint == DEFAULT_OTLP_ENDPOINT
        assert settings.otlp.insecure is False
        assert settings.jaeger.agent_host == "localhost"
        assert settings.jaeger.agent_port == 6831
        assert settings.prometheus.gateway == "0.0.0.0:9464"

    @pytest.mark.short
    def test_reads_os_environ_by_default(self, monkeypatch):
        monkeypatch.setenv("OTEL_TRACES_EXPORTER", "none")
        assert ExporterSettings.from_env().traces_exporter == "none"


class TestSelection:
    @pytest.mark.short
    def test_exporter_names_are_case_insensitive(self):
        settings = ExporterSettings.from_env(
            {"OTEL_TRACES_EXPORTER": " Jaeger ", "OTEL_METRICS_EXPORTER": "PROMETHEUS"}
        )
        assert settings.traces_exporter == "jaeger"
        assert settings.metrics_exporter == "prometheus"

    @pytest.mark.short
    def test_unknown_traces_exporter(self):
        with pytest.raises(ConfigurationError, match="zipkin"):
            ExporterSettings.from_env({"OTEL_TRACES_EXPORTER": "zipkin"})

    @pytest.mark.short
    def test_unknown_metrics_exporter(self):
        with pytest.raises(ConfigurationError, match="statsd"):
            ExporterSettings.from_env({"OTEL_METRICS_EXPORTER": "statsd"})

    @pytest.mark.short
    def test_configuration_error_exit_code(self):
        with pytest.raises(ConfigurationError) as excinfo:
            ExporterSettings(traces_exporter="zipkin")
        assert excinfo.value.exit_code == 78


class TestOtlp:
    @pytest.mark.short
    def test_traces_specific_variables_win(self):
        settings = ExporterSettings.from_env(
            {
                "OTEL_EXPORTER_OTLP_ENDPOINT": "http://generic:4317",
                "OTEL_EXPORTER_OTLP_TRACES_ENDPOINT": "http://traces:4317",
                "OTEL_EXPORTER_OTLP_INSECURE": "true",
                "OTEL_EXPORTER_OTLP_TIMEOUT": "2500",
            }
        )
        assert settings.otlp.endpoint == "http://traces:4317"
        assert settings.otlp.insecure is True
        assert settings.otlp.timeout == 2.5

    @pytest.mark.short
    def test_timeout_must_be_milliseconds(self):
        with pytest.raises(ConfigurationError):
            ExporterSettings.from_env({"OTEL_EXPORTER_OTLP_TIMEOUT": "5s"})

    @pytest.mark.short
    def test_headers(self):
        assert parse_headers(None) == {}
        assert parse_headers("Api-Key=secret, x-team = ci,") == {
            "api-key": "secret",
            "x-team": "ci",
        }
        with pytest.raises(ConfigurationError):
            parse_headers("novalue")


class TestJaegerAndPrometheus:
    @pytest.mark.short
    def test_jaeger_collector(self):
        settings = ExporterSettings.from_env(
            {
                "OTEL_EXPORTER_JAEGER_ENDPOINT": "http://jaeger:14268/api/traces",
                "OTEL_EXPORTER_JAEGER_USER": "ci",
                "OTEL_EXPORTER_JAEGER_PASSWORD": "pw",
                "OTEL_EXPORTER_JAEGER_AGENT_PORT": "6832",
            }
        )
        assert settings.jaeger.collector_endpoint == "http://jaeger:14268/api/traces"
        assert settings.jaeger.user == "ci"
        assert settings.jaeger.password == "pw"
        assert settings.jaeger.agent_port == 6832

    @pytest.mark.short
    @pytest.mark.parametrize("port", ["http", "0", "70000"])
    def test_invalid_ports(self, port):
        with pytest.raises(ConfigurationError):
            ExporterSettings.from_env({"OTEL_EXPORTER_PROMETHEUS_PORT": port})

    @pytest.mark.short
    def test_prometheus_gateway(self):
        settings = ExporterSettings.from_env(
            {"OTEL_EXPORTER_PROMETHEUS_HOST": "gateway", "OTEL_EXPORTER_PROMETHEUS_PORT": "9091"}
        )
        assert settings.prometheus.gateway == "gateway:9091"


class TestFlushTimeout:
    @pytest.mark.short
    def test_human_friendly_timespan(self):
        settings = ExporterSettings.from_env({"TRACEBUILD_FLUSH_TIMEOUT": "1m"})
        assert settings.flush_timeout == 60
        assert settings.otlp.timeout == 60
        assert settings.jaeger.timeout == 60

    @pytest.mark.short
    def test_invalid_timespan(self):
        with pytest.raises(ConfigurationError):
            ExporterSettings.from_env({"TRACEBUILD_FLUSH_TIMEOUT": "soon"})
