"""
Publisher package for sending events to message brokers.

This package provides functionality to publish enriched blob events
to RabbitMQ for consumption by other services.
"""
