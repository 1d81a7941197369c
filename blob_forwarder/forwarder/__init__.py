"""
Forwarder package.

Classifies blob notifications and forwards them to the message queue.
"""
