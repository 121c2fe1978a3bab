import json

import pytest

from lobomq.broker_topic import BrokerTopic
from lobomq.macaddrlist import format_mac
from lobomq.persistence import FILE_FORMAT, TopicStore, replace_chars
from lobomq.transport import MemoryNetwork

BROKER_MAC = bytes([0x02, 0, 0, 0, 0, 0x01])
SUB_A = bytes([0x02, 0, 0, 0, 0, 0x0A])
SUB_B = bytes([0x02, 0, 0, 0, 0, 0x0B])


@pytest.fixture
def transport():
    return MemoryNetwork().endpoint(BROKER_MAC)


@pytest.fixture
def store(tmp_path):
    topic_store = TopicStore(tmp_path)
    assert topic_store.initialize() is True
    return topic_store


def _topic(name, transport, *macs):
    topic = BrokerTopic(name, transport)
    for mac in macs:
        topic.subscribe(mac)
    topic.filename = replace_chars(name)
    return topic


def test_replace_chars_maps_forbidden_characters():
    assert replace_chars("a/b") == "a\u221ab"
    assert replace_chars("<>:\"\\|?*") == "\u00ab\u00bb\u00f7\u00aa\u00ec\u2502\u00bf\u00ba"
    assert replace_chars("plain_topic") == "plain_topic"


def test_initialize_creates_directory(tmp_path):
    store = TopicStore(tmp_path)
    assert store.initialize() is True
    assert store.directory.is_dir()
    assert store.directory.relative_to(tmp_path).parts == ("LoboMQ", "topics")


def test_initialize_fails_when_root_is_a_file(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("x")
    assert TopicStore(blocker).initialize() is False


def test_write_produces_json_document(store, transport):
    topic = _topic("home/temp", transport, SUB_A)
    assert store.write(topic) is True
    path = store.directory / (replace_chars("home/temp") + FILE_FORMAT)
    assert json.loads(path.read_text(encoding="utf-8")) == {
        "topic": "home/temp",
        "subscribers": [format_mac(SUB_A)],
    }


def test_write_restore_round_trip(store, transport):
    store.write(_topic("home/+", transport, SUB_A, SUB_B))
    store.write(_topic("office", transport, SUB_B))
    restored = {t.topic: t for t in store.restore(transport)}
    assert set(restored) == {"home/+", "office"}
    assert restored["home/+"].subscribers == (SUB_A, SUB_B)
    assert restored["home/+"].filename == replace_chars("home/+")
    assert restored["office"].subscribers == (SUB_B,)


def test_restore_skips_topics_without_subscribers(store, transport):
    store.write(_topic("empty", transport))
    assert store.restore(transport) == []


def test_restore_skips_broken_and_foreign_files(store, transport):
    store.write(_topic("kept", transport, SUB_A))
    (store.directory / ("broken" + FILE_FORMAT)).write_text("{not json", encoding="utf-8")
    (store.directory / "notes.txt").write_text("ignored", encoding="utf-8")
    (store.directory / ("folder" + FILE_FORMAT)).mkdir()
    restored = store.restore(transport)
    assert [t.topic for t in restored] == ["kept"]


def test_restore_without_directory_returns_nothing(tmp_path, transport):
    assert TopicStore(tmp_path / "missing").restore(transport) == []


def test_delete_removes_file(store, transport):
    topic = _topic("home", transport, SUB_A)
    store.write(topic)
    assert store.delete(topic.filename) is True
    assert list(store.directory.iterdir()) == []
    assert store.restore(transport) == []


def test_delete_missing_file_is_not_an_error(store):
    assert store.delete("never_written") is True