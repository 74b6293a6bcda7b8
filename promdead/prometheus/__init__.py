"""Prometheus HTTP API access."""

from .http import PrometheusError, PrometheusHttpClient, PrometheusHttpConfig

__all__ = ["PrometheusError", "PrometheusHttpClient", "PrometheusHttpConfig"]
