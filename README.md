# lobomq

`lobomq` is a small publish/subscribe message broker. Clients tell a broker
which topics they want, publishers send short messages to the broker, and the
broker forwards each message to every subscriber whose topic matches. Topics
follow the MQTT conventions, including the `+` and `#` wildcards.

Messages travel over a `Transport` (`lobomq.transport`): an object that knows
peers by their 6-byte MAC address and sends raw bytes to them. The package
ships `MemoryNetwork` and `MemoryTransport`, an in-process network with
synchronous delivery, for tests and local experiments.

## Installing

```
pip install .
```

To run the test suite:

```
pip install .[test]
pytest
```

## Topics

* A topic is 1 to 24 bytes long. One leading and one trailing `/` are
  stripped before it is checked; a topic that is only `/` is invalid.
* Every character must be ASCII.
* Publish topics may not contain `+` or `#`.
* Subscribe topics may use `+` for exactly one whole level (`home/+/temp`) and
  `#` for all remaining levels, only as the whole last level (`home/#`).

In `lobomq.pubsub`, `fix_topic` strips the slashes and checks the length;
`pub_topic_check` and `sub_topic_check` return the cleaned topic or raise
`InvalidTopicError`.

## Example

```python
from lobomq.broker import Broker
from lobomq.logger import disable_logger
from lobomq.macaddrlist import parse_mac
from lobomq.pubsub import get_lmq_payload, is_lmq_message, publish, subscribe
from lobomq.transport import MemoryNetwork

BROKER_MAC = parse_mac("02:00:00:00:00:01")
SENSOR_MAC = parse_mac("02:00:00:00:00:02")
DISPLAY_MAC = parse_mac("02:00:00:00:00:03")

network = MemoryNetwork()
logger = disable_logger()


def on_display(mac, data):
    if is_lmq_message(data):
        print("received", get_lmq_payload(data).content)


broker = Broker(network.endpoint(BROKER_MAC), None, logger, None)
sensor = network.endpoint(SENSOR_MAC)
display = network.endpoint(DISPLAY_MAC, on_display)

with broker:
    subscribe(display, BROKER_MAC, "kitchen/+", logger)
    broker.wait_idle(5)
    publish(sensor, BROKER_MAC, "kitchen/temperature", b"21.5", logger)
    broker.wait_idle(5)
```

`Broker.start` (or entering the `with` block) sets the transport's
`on_receive` callback to `Broker.on_data_recv` and starts one worker thread
each for subscriptions, unsubscriptions and publications. Received data is
put on a queue of 10 entries per message kind; if a queue stays full for one
second the message is dropped and `on_data_recv` returns `False`.
`wait_idle(timeout)` waits until every queued message has been handled, and
`stop` lets the workers finish what is queued before they exit.

`handle_subscribe`, `handle_unsubscribe` and `handle_publish` do the work for
one message and may also be called directly. A topic with no subscribers left
is removed. A publication is sent at most once to each subscriber, even when
several of its topics match; `handle_publish` returns the addresses reached.
`Broker.topics` holds the current `BrokerTopic` objects.

## Clients

`publish`, `subscribe` and `unsubscribe` in `lobomq.pubsub` register the
broker as a peer (`configure_peer`), validate the topic, send the message and
return it. On the receiving side, `is_lmq_message` tells whether data is a
publication and `get_lmq_payload` returns its `PayloadContent`.

## Messages

`lobomq.messages` defines the wire format: `SubscribeAnnouncement`,
`UnsubscribeAnnouncement` and `PublishContent`, each with `to_bytes` and
`from_bytes`. The first byte is the `MessageType`; topics take 24 bytes; a
publication carries up to 120 bytes of content. `message_type` and
`decode_message` read any message, raising `ValueError` on malformed data.
`MemoryTransport.send` refuses data over 250 bytes.

## Whitelisting peers

`MACAddrList` (`lobomq.macaddrlist`) is an ordered list of addresses without
duplicates. Addresses may be bytes, sequences of six ints, or strings such as
`"02:00:00:00:00:02"`; malformed entries are ignored. It supports `in`,
`len`, iteration, `add`, `extend`, `remove`, `clear` and `to_string`.
`format_mac` and `parse_mac` convert between bytes and the text form.

Pass a `MACAddrList` (or any iterable of addresses) as the broker's
`whitelist` and data from any other address is ignored. `None` allows every
peer.

## Persistence

Give `Broker` a directory as `persistence_root` and it keeps one JSON file per
topic under `<root>/LoboMQ/topics`, holding the topic and its subscribers.
File names are the topic with characters that file names can't hold replaced
by look-alike symbols (`replace_chars`). Stored topics with subscribers are
restored when the broker starts. If the directory can't be created the broker
carries on without persistence. `TopicStore` in `lobomq.persistence` does the
file handling.

## Logging

`lobomq.logger` builds standard `logging` loggers named after a
`LoggerClass`: `initialize_serial_logger` logs to standard error,
`initialize_file_logger` appends to a file (default `LMQ.log`, falling back to
the console if it can't be opened), and `disable_logger` returns a logger
that only lets emergency records through.

## Errors

Failures raise subclasses of `LMQError` from `lobomq.errors`, each carrying an
`ErrorCode`: `InvalidTopicError` for a bad topic, `ESPConfigError` when the
broker can't be registered as a peer, `SendError` when the transport can't
send, and `TaskCreateError` when a broker worker can't be started.
`QueueCreateError` is defined for the matching code but queue creation does
not fail here.

## What it does not do

There is no command-line program and no radio or network transport: only the
in-process `MemoryNetwork` is included. To run brokers and clients across
machines or devices, implement `Transport` (`has_peer`, `add_peer`,
`remove_peer`, `send`) for your link and call `Broker.on_data_recv` with
whatever it receives.