"""Logging and metrics utilities."""
