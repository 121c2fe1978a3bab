"""Wire format of the messages exchanged between broker and clients."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass
from typing import ClassVar, Union

MAX_TOPIC_LENGTH = 24
MAX_CONTENT_SIZE = 30
# The content field is an array of MAX_CONTENT_SIZE 32-bit pointers.
CONTENT_CAPACITY = MAX_CONTENT_SIZE * 4

_ANNOUNCEMENT = struct.Struct(f"<B{MAX_TOPIC_LENGTH}s")
_PUBLISH = struct.Struct(f"<B{MAX_TOPIC_LENGTH}s3xI{CONTENT_CAPACITY}s")


class MessageType(enum.IntEnum):
    """Kind of message, stored in the first byte of every message."""

    SUBSCRIBE = 0
    UNSUBSCRIBE = 1
    PUBLISH = 2


def _encode_topic(topic: str) -> bytes:
    raw = topic.encode("utf-8")
    if len(raw) > MAX_TOPIC_LENGTH:
        raise ValueError(f"topic longer than {MAX_TOPIC_LENGTH} bytes: {topic!r}")
    return raw


def _decode_topic(raw: bytes) -> str:
    return raw.split(b"\0", 1)[0].decode("utf-8", errors="replace")


def _check_header(data: bytes, size: int, expected: MessageType) -> None:
    if len(data) < size:
        raise ValueError(f"message too short: {len(data)} bytes, expected {size}")
    if data[0] != expected:
        raise ValueError(f"not a {expected.name} message (type byte {data[0]})")


def _pack_announcement(kind: MessageType, topic: str) -> bytes:
    return _ANNOUNCEMENT.pack(kind, _encode_topic(topic))


def _unpack_announcement(data, kind: MessageType) -> str:
    data = bytes(data)
    _check_header(data, _ANNOUNCEMENT.size, kind)
    _, topic = _ANNOUNCEMENT.unpack_from(data)
    return _decode_topic(topic)


@dataclass(frozen=True)
class SubscribeAnnouncement:
    """A subscriber's request to receive messages on a topic."""

    topic: str

    TYPE: ClassVar[MessageType] = MessageType.SUBSCRIBE

    def to_bytes(self) -> bytes:
        """Encode the announcement as it travels on the wire."""
        return _pack_announcement(self.TYPE, self.topic)

    @classmethod
    def from_bytes(cls, data) -> "SubscribeAnnouncement":
        """Decode an announcement, raising ValueError on malformed data."""
        return cls(_unpack_announcement(data, cls.TYPE))


@dataclass(frozen=True)
class UnsubscribeAnnouncement:
    """A subscriber's request to stop receiving messages on a topic."""

    topic: str

    TYPE: ClassVar[MessageType] = MessageType.UNSUBSCRIBE

    def to_bytes(self) -> bytes:
        """Encode the announcement as it travels on the wire."""
        return _pack_announcement(self.TYPE, self.topic)

    @classmethod
    def from_bytes(cls, data) -> "UnsubscribeAnnouncement":
        """Decode an announcement, raising ValueError on malformed data."""
        return cls(_unpack_announcement(data, cls.TYPE))


@dataclass(frozen=True)
class PublishContent:
    """A message published to a topic, carrying up to CONTENT_CAPACITY bytes."""

    topic: str
    content: bytes = b""

    TYPE: ClassVar[MessageType] = MessageType.PUBLISH

    def __post_init__(self) -> None:
        content = bytes(self.content)
        if len(content) > CONTENT_CAPACITY:
            raise ValueError(f"content larger than {CONTENT_CAPACITY} bytes")
        object.__setattr__(self, "content", content)

    @property
    def content_size(self) -> int:
        return len(self.content)

    def to_bytes(self) -> bytes:
        """Encode the publication as it travels on the wire."""
        return _PUBLISH.pack(self.TYPE, _encode_topic(self.topic), self.content_size, self.content)

    @classmethod
    def from_bytes(cls, data) -> "PublishContent":
        """Decode a publication, raising ValueError on malformed data."""
        data = bytes(data)
        _check_header(data, _PUBLISH.size, cls.TYPE)
        _, topic, size, content = _PUBLISH.unpack_from(data)
        if size > CONTENT_CAPACITY:
            raise ValueError(f"content size {size} exceeds {CONTENT_CAPACITY} bytes")
        return cls(_decode_topic(topic), content[:size])


@dataclass(frozen=True)
class PayloadContent:
    """The payload extracted from a received publication."""

    content: bytes = b""

    @property
    def content_size(self) -> int:
        return len(self.content)


Message = Union[SubscribeAnnouncement, UnsubscribeAnnouncement, PublishContent]

_DECODERS = {
    MessageType.SUBSCRIBE: SubscribeAnnouncement,
    MessageType.UNSUBSCRIBE: UnsubscribeAnnouncement,
    MessageType.PUBLISH: PublishContent,
}


def message_type(data) -> MessageType:
    """Return the type of an encoded message, raising ValueError if unknown."""
    data = bytes(data)
    if not data:
        raise ValueError("empty message")
    try:
        return MessageType(data[0])
    except ValueError:
        raise ValueError(f"unknown message type {data[0]}") from None


def decode_message(data) -> Message:
    """Decode any message into its matching class."""
    return _DECODERS[message_type(data)].from_bytes(data)