"""A topic held by the broker together with its subscribers."""

from __future__ import annotations

import logging
from typing import List, MutableSequence, Optional, Tuple

from .errors import LMQError, SendError
from .logger import disable_logger
from .macaddrlist import format_mac, parse_mac
from .messages import MAX_TOPIC_LENGTH, PublishContent
from .transport import Transport

_PEER_ERRORS = (LMQError, OSError, ValueError)
_MAX_FILENAME_BYTES = MAX_TOPIC_LENGTH * 2 - 1


def _truncate(text: str, limit: int) -> str:
    return text.encode("utf-8")[:limit].decode("utf-8", errors="ignore")


def _as_mac(mac) -> bytes:
    if isinstance(mac, str):
        return parse_mac(mac)
    mac = bytes(mac)
    if len(mac) != 6:
        raise ValueError(f"a MAC address has 6 bytes, got {len(mac)}")
    return mac


def has_wildcard(topic: str) -> bool:
    """Return whether ``topic`` contains a '+' or '#' wildcard."""
    return "+" in topic or "#" in topic


class BrokerTopic:
    """A subscribed topic, its subscribers and the file it is stored under."""

    def __init__(self, topic: str, transport: Transport, logger: Optional[logging.Logger] = None) -> None:
        self.topic = _truncate(topic, MAX_TOPIC_LENGTH - 1)
        self.has_wildcards = has_wildcard(self.topic)
        self._transport = transport
        self._logger = logger if logger is not None else disable_logger()
        self._subscribers: List[bytes] = []
        self._filename = ""
        self._logger.debug("[BROKER TOPIC %s] Created.", self.topic)

    @property
    def filename(self) -> str:
        """Name of the file the topic is stored under, without extension."""
        return self._filename

    @filename.setter
    def filename(self, value: str) -> None:
        self._filename = _truncate(value, _MAX_FILENAME_BYTES)

    @property
    def subscribers(self) -> Tuple[bytes, ...]:
        return tuple(self._subscribers)

    def __len__(self) -> int:
        return len(self._subscribers)

    def subscribe(self, mac) -> bool:
        """Add ``mac`` as a subscriber unless already subscribed."""
        mac = _as_mac(mac)
        if mac not in self._subscribers:
            self._subscribers.append(mac)
        return True

    def unsubscribe(self, mac) -> bool:
        """Remove ``mac`` and drop it as a peer; return False if it wasn't subscribed."""
        mac = _as_mac(mac)
        if mac not in self._subscribers:
            return False
        self._subscribers.remove(mac)
        try:
            self._transport.remove_peer(mac)
        except _PEER_ERRORS as exc:
            self._logger.debug("[BROKER TOPIC %s] Couldn't remove peer %s: %s", self.topic, format_mac(mac), exc)
        return True

    def is_subscribed(self, mac) -> bool:
        """Return whether ``mac`` is a subscriber."""
        try:
            return _as_mac(mac) in self._subscribers
        except ValueError:
            return False

    def subscribers_string(self) -> str:
        """Return every subscriber formatted, each followed by a newline."""
        return "".join(format_mac(mac) + "\n" for mac in self._subscribers)

    def publish(self, content: PublishContent, already_sent: MutableSequence[bytes]) -> List[bytes]:
        """Send ``content`` to every subscriber not yet in ``already_sent``.

        Reached subscribers are appended to ``already_sent`` and also returned.
        """
        data = content.to_bytes()
        reached: List[bytes] = []
        for subscriber in self._subscribers:
            if subscriber in already_sent:
                continue
            try:
                if not self._transport.has_peer(subscriber):
                    self._transport.add_peer(subscriber)
            except _PEER_ERRORS:
                self._logger.error(
                    "[BROKER TOPIC %s] Couldn't add peer %s, it won't receive.", self.topic, format_mac(subscriber)
                )
                continue
            try:
                self._transport.send(subscriber, data)
            except SendError as exc:
                self._logger.debug("[BROKER TOPIC %s] Send to %s failed: %s", self.topic, format_mac(subscriber), exc)
            already_sent.append(subscriber)
            reached.append(subscriber)
        self._logger.debug("[BROKER TOPIC %s] Sent message to %d subscribers.", self.topic, len(self._subscribers))
        return reached

    def is_publishable(self, publish_topic: str) -> bool:
        """Return whether a message published to ``publish_topic`` matches this topic."""
        if publish_topic == self.topic:
            return True
        if not self.has_wildcards:
            return False
        pub, sub = publish_topic, self.topic
        i = j = 0
        while i < len(pub) and j < len(sub):
            pub_char, sub_char = pub[i], sub[j]
            if pub_char != sub_char and sub_char not in "+#":
                return False
            if sub_char == "+":
                while i < len(pub) and pub[i] != "/":
                    i += 1
                j += 1
            elif sub_char == "#":
                return True
            else:
                i += 1
                j += 1
        return i >= len(pub) and j >= len(sub)

    def __str__(self) -> str:
        return f"Topic: {self.topic}\nSubscribers:\n{self.subscribers_string()}"

    def __repr__(self) -> str:
        return f"BrokerTopic({self.topic!r}, subscribers={[format_mac(m) for m in self._subscribers]!r})"