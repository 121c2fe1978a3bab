"""The broker: receives announcements and publications and forwards them."""

from __future__ import annotations

import logging
import queue
import threading
import time
from typing import Callable, Iterable, List, Optional, Tuple

from .broker_topic import BrokerTopic
from .errors import TaskCreateError
from .logger import LoggerClass, initialize_serial_logger
from .macaddrlist import MACAddrList, format_mac
from .messages import (
    MessageType,
    PublishContent,
    SubscribeAnnouncement,
    UnsubscribeAnnouncement,
    decode_message,
    message_type,
)
from .persistence import TopicStore, replace_chars
from .transport import Transport

QUEUE_SIZE = 10
QUEUE_SEND_TIMEOUT = 1.0


class Broker:
    """Keeps topics and their subscribers, and forwards publications to them.

    Incoming data is handed to :meth:`on_data_recv`, which queues it for
    worker threads started by :meth:`start`. If ``whitelist`` is given, data
    from addresses not in it is ignored. If ``persistence_root`` is given,
    topics are stored under it and restored when the broker starts.
    """

    def __init__(
        self,
        transport: Transport,
        whitelist: Optional[Iterable] = None,
        logger: Optional[logging.Logger] = None,
        persistence_root=None,
    ) -> None:
        self.transport = transport
        if whitelist is not None and not isinstance(whitelist, MACAddrList):
            whitelist = MACAddrList(whitelist)
        self.whitelist: Optional[MACAddrList] = whitelist
        self.logger = logger if logger is not None else initialize_serial_logger(LoggerClass.BROKER)
        self.persistence_root = persistence_root
        self._store: Optional[TopicStore] = None
        self._topics: List[BrokerTopic] = []
        self._lock = threading.RLock()
        self._queues = {
            MessageType.SUBSCRIBE: queue.Queue(QUEUE_SIZE),
            MessageType.UNSUBSCRIBE: queue.Queue(QUEUE_SIZE),
            MessageType.PUBLISH: queue.Queue(QUEUE_SIZE),
        }
        self._threads: List[threading.Thread] = []

    @property
    def topics(self) -> Tuple[BrokerTopic, ...]:
        """The topics currently held, in creation order."""
        with self._lock:
            return tuple(self._topics)

    @property
    def persistence(self) -> bool:
        """Whether topics are being stored."""
        return self._store is not None

    @property
    def running(self) -> bool:
        return bool(self._threads)

    def start(self) -> "Broker":
        """Set up persistence, hook the receive callback and start the workers."""
        if self._threads:
            raise RuntimeError("broker is already running")
        self.logger.debug("Initializing broker...")

        if self.persistence_root is not None:
            store = TopicStore(self.persistence_root, self.logger)
            if store.initialize():
                self.logger.info("SD card initialized for persistence.")
                self._store = store
                with self._lock:
                    self._topics.extend(store.restore(self.transport))
            else:
                self.logger.warning("Couldn't initialize SD card for persistence, continuing without it.")
                self._store = None

        if hasattr(self.transport, "on_receive"):
            self.transport.on_receive = self.on_data_recv

        workers: List[Tuple[str, MessageType, Callable]] = [
            ("SubscribeTask1", MessageType.SUBSCRIBE, self.handle_subscribe),
            ("UnsubscribeTask1", MessageType.UNSUBSCRIBE, self.handle_unsubscribe),
            ("PublishTask1", MessageType.PUBLISH, self.handle_publish),
        ]
        for name, kind, handler in workers:
            thread = threading.Thread(
                target=self._work, args=(self._queues[kind], handler), name=name, daemon=True
            )
            try:
                thread.start()
            except RuntimeError as exc:
                self.logger.critical("Couldn't create the %s, aborting!", name)
                self.stop()
                raise TaskCreateError(f"Couldn't start {name}: {exc}") from exc
            self._threads.append(thread)

        address = getattr(self.transport, "mac", None)
        shown = format_mac(address) if address is not None else "unknown address"
        self.logger.info("Broker is running at %s!", shown)
        return self

    def stop(self) -> None:
        """Stop the workers once they have handled what is already queued."""
        threads, self._threads = self._threads, []
        for _ in threads:
            pass
        for work_queue in self._queues.values():
            if threads:
                work_queue.put(None)
        for thread in threads:
            thread.join()

    def __enter__(self) -> "Broker":
        return self.start()

    def __exit__(self, *args) -> None:
        self.stop()

    def _work(self, work_queue: "queue.Queue", handler: Callable) -> None:
        while True:
            item = work_queue.get()
            try:
                if item is None:
                    return
                handler(*item)
            except Exception:
                self.logger.exception("Error while handling a message.")
            finally:
                work_queue.task_done()

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Wait until every queued message has been handled; False on timeout."""
        deadline = None if timeout is None else time.monotonic() + timeout
        for work_queue in self._queues.values():
            with work_queue.all_tasks_done:
                remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
                if not work_queue.all_tasks_done.wait_for(lambda: work_queue.unfinished_tasks == 0, remaining):
                    return False
        return True

    def on_data_recv(self, mac, data) -> bool:
        """Queue received data for handling; return whether it was queued."""
        mac = bytes(mac)
        shown = format_mac(mac)
        if self.whitelist is not None and mac not in self.whitelist:
            self.logger.info("Ignored message from %s, it's not in the whitelist.", shown)
            return False
        try:
            kind = message_type(data)
            message = decode_message(data)
        except ValueError:
            self.logger.info("Invalid message type received from %s.", shown)
            return False

        label = {
            MessageType.SUBSCRIBE: "subscribe",
            MessageType.UNSUBSCRIBE: "unsubscribe",
            MessageType.PUBLISH: "publish",
        }[kind]
        self.logger.debug("Received a %s message from %s, adding it to the queue.", label, shown)
        try:
            self._queues[kind].put((mac, message), timeout=QUEUE_SEND_TIMEOUT)
        except queue.Full:
            self.logger.error("Couldn't send the %s message to the queue.", label)
            return False
        return True

    def _find(self, topic: str) -> Optional[BrokerTopic]:
        return next((candidate for candidate in self._topics if candidate.topic == topic), None)

    def handle_subscribe(self, mac, announcement: SubscribeAnnouncement) -> BrokerTopic:
        """Subscribe ``mac`` to the announced topic, creating it if needed."""
        mac = bytes(mac)
        self.logger.info("Subscribing to '%s' by %s.", announcement.topic, format_mac(mac))
        with self._lock:
            existing = self._find(announcement.topic)
            if existing is not None:
                if not existing.is_subscribed(mac):
                    existing.subscribe(mac)
                    if self._store is not None:
                        self._store.write(existing)
                else:
                    self.logger.info("\tAlready subscribed to '%s'.", existing.topic)
                return existing

            self.logger.info("Topic '%s' not found, creating a new topic.", announcement.topic)
            new_topic = BrokerTopic(announcement.topic, self.transport, self.logger)
            new_topic.subscribe(mac)
            if self._store is not None:
                new_topic.filename = replace_chars(announcement.topic)
                self._store.write(new_topic)
            self._topics.append(new_topic)
            return new_topic

    def handle_unsubscribe(self, mac, announcement: UnsubscribeAnnouncement) -> bool:
        """Unsubscribe ``mac`` from the announced topic; return whether it was subscribed."""
        mac = bytes(mac)
        self.logger.info("Unsubscribing %s from '%s'.", format_mac(mac), announcement.topic)
        with self._lock:
            for topic in self._topics:
                if topic.topic != announcement.topic or not topic.is_subscribed(mac):
                    continue
                topic.unsubscribe(mac)
                if not len(topic):
                    self.logger.info("Topic '%s' has no subscribers, is being deleted.", topic.topic)
                    if self._store is not None:
                        self._store.delete(topic.filename)
                    self._topics.remove(topic)
                elif self._store is not None:
                    self._store.write(topic)
                return True
        self.logger.info("\tTopic '%s' not found, it was not subscribed.", announcement.topic)
        return False

    def handle_publish(self, mac, content: PublishContent) -> List[bytes]:
        """Forward ``content`` to every matching subscriber once; return who was reached."""
        mac = bytes(mac)
        already_sent: List[bytes] = []
        sent = False
        with self._lock:
            for topic in self._topics:
                if topic.is_publishable(content.topic):
                    topic.publish(content, already_sent)
                    sent = True
        self.logger.info(
            "Received a %dB message by %s with topic '%s':", content.content_size, format_mac(mac), content.topic
        )
        if not sent:
            self.logger.info(
                "\tTopic '%s' not found (has no subscribers, so it isn't published).", content.topic
            )
        else:
            self.logger.info("\tSent to %d subscribers.", len(already_sent))
        return already_sent