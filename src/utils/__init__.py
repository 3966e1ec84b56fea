"""
Shared infrastructure for the index advisor

Provides:
- logging: Structured logging setup and formatters
- metrics: Prometheus metric registration helpers
- tracing: OpenTelemetry spans
"""

__version__ = "0.3.0"
__all__ = ["logging", "metrics", "tracing"]
