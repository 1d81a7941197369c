"""Pydantic schemas for inbound events and outbound messages."""
