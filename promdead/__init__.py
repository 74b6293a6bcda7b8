"""promdead - dead-selector linter for Prometheus rules."""

__version__ = "0.1.0"
