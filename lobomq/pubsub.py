"""Client side of the protocol: topic validation, publish and (un)subscribe."""

from __future__ import annotations

import logging
from typing import Optional

from .errors import ESPConfigError, InvalidTopicError, LMQError, SendError
from .logger import disable_logger
from .macaddrlist import format_mac
from .messages import (
    MAX_TOPIC_LENGTH,
    MessageType,
    PayloadContent,
    PublishContent,
    SubscribeAnnouncement,
    UnsubscribeAnnouncement,
)
from .transport import Transport

_PEER_ERRORS = (LMQError, OSError, ValueError)


def _resolve_logger(logger: Optional[logging.Logger]) -> logging.Logger:
    return logger if logger is not None else disable_logger()


def fix_topic(topic: Optional[str]) -> str:
    """Strip one leading and one trailing '/' and check the topic's length.

    Raises InvalidTopicError if the topic is missing, empty, longer than
    MAX_TOPIC_LENGTH bytes, or empty once the slashes are removed.
    """
    if topic is None:
        raise InvalidTopicError("No topic given")
    length = len(topic.encode("utf-8"))
    if length == 0 or length > MAX_TOPIC_LENGTH:
        raise InvalidTopicError(f"Topic must have between 1 and {MAX_TOPIC_LENGTH} bytes: {topic!r}")
    if topic.startswith("/"):
        topic = topic[1:]
        if not topic:
            raise InvalidTopicError("Topic is only a separator")
    if topic.endswith("/"):
        topic = topic[:-1]
        if not topic:
            raise InvalidTopicError("Topic is only a separator")
    return topic


def _is_ascii(char: str) -> bool:
    return ord(char) <= 127


def pub_topic_check(topic: Optional[str]) -> str:
    """Return the fixed topic if it can be published to, else raise InvalidTopicError."""
    topic = fix_topic(topic)
    for char in topic:
        if char in "+#" or not _is_ascii(char):
            raise InvalidTopicError(f"Invalid publish topic: {topic!r}")
    return topic


def sub_topic_check(topic: Optional[str]) -> str:
    """Return the fixed topic if it can be subscribed to, else raise InvalidTopicError.

    '+' must fill a whole level; '#' must fill the whole last level.
    """
    topic = fix_topic(topic)
    prev = ""
    for position, char in enumerate(topic):
        following = topic[position + 1] if position + 1 < len(topic) else ""
        if not _is_ascii(char):
            raise InvalidTopicError(f"Non-ASCII character in topic: {topic!r}")
        if char == "+":
            if prev not in ("", "/") or following not in ("", "/"):
                raise InvalidTopicError(f"Misplaced '+' in topic: {topic!r}")
        elif char == "#":
            if prev not in ("", "/") or following != "":
                raise InvalidTopicError(f"Misplaced '#' in topic: {topic!r}")
        prev = char
    return topic


def configure_peer(transport: Transport, mac, logger: Optional[logging.Logger] = None) -> None:
    """Make sure the broker ``mac`` is a registered peer of ``transport``."""
    logger = _resolve_logger(logger)
    mac = bytes(mac)
    try:
        logger.debug("Setting up connection with broker at %s.", format_mac(mac))
        if not transport.has_peer(mac):
            transport.add_peer(mac)
    except _PEER_ERRORS as exc:
        logger.error("Couldn't register peer: %s.", exc)
        raise ESPConfigError(f"Couldn't register peer: {exc}") from exc


def _send(transport: Transport, mac, data: bytes, logger: logging.Logger) -> None:
    try:
        transport.send(mac, data)
    except SendError as exc:
        logger.error("Error sending message: %s.", exc)
        raise


def publish(transport: Transport, mac, topic, payload, logger: Optional[logging.Logger] = None) -> PublishContent:
    """Publish ``payload`` to ``topic`` through the broker ``mac``; return the message sent."""
    logger = _resolve_logger(logger)
    configure_peer(transport, mac, logger)
    try:
        topic = pub_topic_check(topic)
    except InvalidTopicError:
        logger.error("Invalid topic: '%s'", topic)
        raise
    message = PublishContent(topic, bytes(payload))
    _send(transport, mac, message.to_bytes(), logger)
    logger.info("Message of %dB published successfully to '%s'.", message.content_size, topic)
    return message


def subscribe(transport: Transport, mac, topic, logger: Optional[logging.Logger] = None) -> SubscribeAnnouncement:
    """Ask the broker ``mac`` for messages matching ``topic``; return the message sent."""
    logger = _resolve_logger(logger)
    configure_peer(transport, mac, logger)
    try:
        topic = sub_topic_check(topic)
    except InvalidTopicError:
        logger.error("Invalid topic: '%s'.", topic)
        raise
    message = SubscribeAnnouncement(topic)
    _send(transport, mac, message.to_bytes(), logger)
    logger.info("Subscribed to '%s'.", topic)
    return message


def unsubscribe(transport: Transport, mac, topic, logger: Optional[logging.Logger] = None) -> UnsubscribeAnnouncement:
    """Tell the broker ``mac`` to stop sending messages matching ``topic``."""
    logger = _resolve_logger(logger)
    configure_peer(transport, mac, logger)
    try:
        topic = sub_topic_check(topic)
    except InvalidTopicError:
        logger.error("Invalid topic: '%s'.", topic)
        raise
    message = UnsubscribeAnnouncement(topic)
    _send(transport, mac, message.to_bytes(), logger)
    logger.info("Unsubscribed from '%s'.", topic)
    return message


def is_lmq_message(data) -> bool:
    """Return whether ``data`` is a publication of this protocol."""
    data = bytes(data)
    return bool(data) and data[0] == MessageType.PUBLISH


def get_lmq_payload(data) -> PayloadContent:
    """Extract the payload of an encoded publication."""
    return PayloadContent(PublishContent.from_bytes(data).content)