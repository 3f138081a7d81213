"""Event telemetry (labels, spans, metrics, log output, agent JSON types) and Go source tree walking."""

__version__ = "0.1.0"