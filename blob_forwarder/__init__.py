"""Blob Event Forwarder.

This service receives storage blob notifications pushed by Event Grid and
forwards them, enriched with blob metadata, to RabbitMQ.
"""
