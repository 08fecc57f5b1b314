"""BuildKit metrics agent: polls the Control API and exports Prometheus metrics."""

__version__ = "0.1.0"
