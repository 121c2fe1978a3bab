"""Publish/subscribe broker and clients with MQTT-style topics over a pluggable transport."""

__version__ = "1.0.0"

__all__ = [
    "broker",
    "broker_topic",
    "errors",
    "logger",
    "macaddrlist",
    "messages",
    "persistence",
    "pubsub",
    "transport",
]