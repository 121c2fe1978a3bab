"""A de-duplicated, ordered list of MAC addresses."""

from __future__ import annotations

import re
from typing import Iterable, Iterator, List, Optional

_MAC_RE = re.compile(r"\s*" + ":".join([r"([0-9A-Fa-f]{1,2})"] * 6))


def format_mac(mac) -> str:
    """Format a 6-byte address as ``AA:BB:CC:DD:EE:FF``."""
    mac = bytes(mac)
    if len(mac) != 6:
        raise ValueError(f"a MAC address has 6 bytes, got {len(mac)}")
    return ":".join(f"{octet:02X}" for octet in mac)


def parse_mac(text: str) -> bytes:
    """Parse ``AA:BB:CC:DD:EE:FF`` into 6 bytes; trailing text is ignored."""
    match = _MAC_RE.match(text)
    if match is None:
        raise ValueError(f"not a MAC address: {text!r}")
    return bytes(int(group, 16) for group in match.groups())


def _to_mac(mac) -> Optional[bytes]:
    if isinstance(mac, str):
        try:
            return parse_mac(mac)
        except ValueError:
            return None
    try:
        raw = bytes(mac)
    except (TypeError, ValueError):
        return None
    return raw if len(raw) == 6 else None


class MACAddrList:
    """MAC addresses kept in insertion order without duplicates.

    Addresses may be given as 6-byte values, sequences of 6 ints or strings
    like ``"AA:BB:CC:DD:EE:FF"``; malformed strings are ignored.
    """

    def __init__(self, addresses: Iterable = ()) -> None:
        self._addresses: List[bytes] = []
        self.extend(addresses)

    def __contains__(self, mac) -> bool:
        normalized = _to_mac(mac)
        return normalized is not None and normalized in self._addresses

    def __len__(self) -> int:
        return len(self._addresses)

    def __iter__(self) -> Iterator[bytes]:
        return iter(list(self._addresses))

    def __repr__(self) -> str:
        return f"MACAddrList({[format_mac(mac) for mac in self._addresses]!r})"

    def add(self, mac) -> bool:
        """Add an address unless present or malformed; return whether it was added."""
        normalized = _to_mac(mac)
        if normalized is None or normalized in self._addresses:
            return False
        self._addresses.append(normalized)
        return True

    def extend(self, macs: Iterable) -> None:
        """Add every address of ``macs``."""
        for mac in macs:
            self.add(mac)

    def remove(self, mac) -> bool:
        """Remove an address; return False if it was not in the list."""
        normalized = _to_mac(mac)
        if normalized is None or normalized not in self._addresses:
            return False
        self._addresses.remove(normalized)
        return True

    def clear(self) -> None:
        """Remove every address."""
        self._addresses.clear()

    def to_string(self) -> str:
        """Return every address formatted, each followed by a newline."""
        return "".join(format_mac(mac) + "\n" for mac in self._addresses)