"""
Telemetry package.

Provides the telemetry sink that records forwarded blob events and metrics.
"""
