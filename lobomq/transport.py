"""Point-to-point datagram transport with explicit peer registration."""

from __future__ import annotations

import abc
import threading
from typing import Callable, Dict, Optional, Set

from .errors import SendError

MAC_LENGTH = 6
MAX_DATA_LENGTH = 250

ReceiveCallback = Callable[[bytes, bytes], None]


def _check_mac(mac) -> bytes:
    mac = bytes(mac)
    if len(mac) != MAC_LENGTH:
        raise ValueError(f"a MAC address has {MAC_LENGTH} bytes, got {len(mac)}")
    return mac


class Transport(abc.ABC):
    """A link that sends datagrams to registered peers by MAC address."""

    @abc.abstractmethod
    def has_peer(self, mac) -> bool:
        """Return whether ``mac`` is a registered peer."""

    @abc.abstractmethod
    def add_peer(self, mac) -> None:
        """Register ``mac`` as a peer; registering it again does nothing."""

    @abc.abstractmethod
    def remove_peer(self, mac) -> bool:
        """Unregister ``mac``; return False if it was not a peer."""

    @abc.abstractmethod
    def send(self, mac, data) -> None:
        """Send ``data`` to the peer ``mac``, raising SendError on failure."""


class MemoryNetwork:
    """An in-process network connecting MemoryTransport endpoints."""

    def __init__(self) -> None:
        self._endpoints: Dict[bytes, MemoryTransport] = {}
        self._lock = threading.Lock()

    def endpoint(self, mac, on_receive: Optional[ReceiveCallback] = None) -> "MemoryTransport":
        """Create and attach an endpoint with address ``mac``."""
        return MemoryTransport(self, mac, on_receive)

    def _register(self, transport: "MemoryTransport") -> None:
        with self._lock:
            if transport.mac in self._endpoints:
                raise ValueError(f"address already on the network: {transport.mac.hex(':')}")
            self._endpoints[transport.mac] = transport

    def _deliver(self, sender: bytes, destination: bytes, data: bytes) -> None:
        with self._lock:
            target = self._endpoints.get(destination)
        if target is not None and target.on_receive is not None:
            target.on_receive(sender, data)


class MemoryTransport(Transport):
    """An endpoint on a MemoryNetwork; delivery is synchronous."""

    def __init__(self, network: MemoryNetwork, mac, on_receive: Optional[ReceiveCallback] = None) -> None:
        self.mac = _check_mac(mac)
        self.on_receive = on_receive
        self._network = network
        self._peers: Set[bytes] = set()
        self._lock = threading.Lock()
        network._register(self)

    def has_peer(self, mac) -> bool:
        with self._lock:
            return _check_mac(mac) in self._peers

    def add_peer(self, mac) -> None:
        mac = _check_mac(mac)
        with self._lock:
            self._peers.add(mac)

    def remove_peer(self, mac) -> bool:
        mac = _check_mac(mac)
        with self._lock:
            if mac not in self._peers:
                return False
            self._peers.remove(mac)
            return True

    def send(self, mac, data) -> None:
        mac = _check_mac(mac)
        data = bytes(data)
        if len(data) > MAX_DATA_LENGTH:
            raise SendError(f"data of {len(data)} bytes exceeds {MAX_DATA_LENGTH} bytes")
        if not self.has_peer(mac):
            raise SendError(f"peer {mac.hex(':')} is not registered")
        self._network._deliver(self.mac, mac, data)