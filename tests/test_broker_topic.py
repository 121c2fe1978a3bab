import pytest

from lobomq.broker_topic import BrokerTopic, has_wildcard
from lobomq.macaddrlist import format_mac
from lobomq.messages import MAX_TOPIC_LENGTH, PublishContent, decode_message
from lobomq.transport import MemoryNetwork, Transport

BROKER_MAC = bytes([0x02, 0, 0, 0, 0, 0x01])
SUB_A = bytes([0x02, 0, 0, 0, 0, 0x0A])
SUB_B = bytes([0x02, 0, 0, 0, 0, 0x0B])


@pytest.fixture
def net():
    network = MemoryNetwork()
    inbox = {SUB_A: [], SUB_B: []}
    broker = network.endpoint(BROKER_MAC)
    for mac, box in inbox.items():
        network.endpoint(mac, lambda sender, data, box=box: box.append(data))
    return broker, inbox


class _NoPeerTransport(Transport):
    def has_peer(self, mac):
        return False

    def add_peer(self, mac):
        raise OSError("peer table full")

    def remove_peer(self, mac):
        return False

    def send(self, mac, data):
        raise AssertionError("must not send without a peer")


def test_has_wildcard():
    assert has_wildcard("a/+/b") is True
    assert has_wildcard("a/#") is True
    assert has_wildcard("a/b") is False


def test_subscribe_is_deduplicated(net):
    broker, _ = net
    topic = BrokerTopic("home/temp", broker)
    assert topic.subscribe(SUB_A) is True
    assert topic.subscribe(SUB_A) is True
    assert topic.subscribers == (SUB_A,)
    assert topic.is_subscribed(SUB_A)
    assert not topic.is_subscribed(SUB_B)


def test_subscribe_accepts_string(net):
    broker, _ = net
    topic = BrokerTopic("home", broker)
    topic.subscribe(format_mac(SUB_B))
    assert topic.subscribers == (SUB_B,)


def test_unsubscribe_removes_peer(net):
    broker, _ = net
    topic = BrokerTopic("home", broker)
    topic.subscribe(SUB_A)
    broker.add_peer(SUB_A)
    assert topic.unsubscribe(SUB_A) is True
    assert len(topic) == 0
    assert not broker.has_peer(SUB_A)
    assert topic.unsubscribe(SUB_A) is False


def test_topic_is_truncated():
    topic = BrokerTopic("a" * 30, _NoPeerTransport())
    assert topic.topic == "a" * (MAX_TOPIC_LENGTH - 1)


def test_filename_defaults_empty_and_is_settable():
    topic = BrokerTopic("home", _NoPeerTransport())
    assert topic.filename == ""
    topic.filename = "home"
    assert topic.filename == "home"
    topic.filename = "x" * 100
    assert len(topic.filename) == MAX_TOPIC_LENGTH * 2 - 1


def test_string_forms(net):
    broker, _ = net
    topic = BrokerTopic("home/temp", broker)
    topic.subscribe(SUB_A)
    topic.subscribe(SUB_B)
    assert topic.subscribers_string() == format_mac(SUB_A) + "\n" + format_mac(SUB_B) + "\n"
    assert str(topic) == "Topic: home/temp\nSubscribers:\n" + topic.subscribers_string()


def test_publish_reaches_every_subscriber_once(net):
    broker, inbox = net
    first = BrokerTopic("home/temp", broker)
    second = BrokerTopic("home/+", broker)
    for t in (first, second):
        t.subscribe(SUB_A)
    second.subscribe(SUB_B)
    message = PublishContent("home/temp", b"21")
    already_sent = []
    assert first.publish(message, already_sent) == [SUB_A]
    assert second.publish(message, already_sent) == [SUB_B]
    assert already_sent == [SUB_A, SUB_B]
    assert [decode_message(d) for d in inbox[SUB_A]] == [message]
    assert [decode_message(d) for d in inbox[SUB_B]] == [message]


def test_publish_skips_unreachable_peer():
    topic = BrokerTopic("home", _NoPeerTransport())
    topic.subscribe(SUB_A)
    already_sent = []
    assert topic.publish(PublishContent("home", b""), already_sent) == []
    assert already_sent == []


@pytest.mark.parametrize(
    "subscribed, published, expected",
    [
        ("home/temp", "home/temp", True),
        ("home/temp", "home/hum", False),
        ("home/+", "home/temp", True),
        ("home/+", "home/temp/x", False),
        ("+/temp", "home/temp", True),
        ("+", "home", True),
        ("home/#", "home/temp/x", True),
        ("#", "anything/at/all", True),
        ("home/#", "home", False),
        ("home/+/x", "home/temp/y", False),
        ("office/+", "home/temp", False),
    ],
)
def test_is_publishable(subscribed, published, expected):
    topic = BrokerTopic(subscribed, _NoPeerTransport())
    assert topic.is_publishable(published) is expected