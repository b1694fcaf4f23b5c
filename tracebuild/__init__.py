"""Instrument builds made of short-lived processes with traces and metrics."""

__version__ = "0.3.0"
