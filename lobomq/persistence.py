"""Storing broker topics as JSON files so they survive a restart."""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import List, Optional

from .broker_topic import BrokerTopic
from .logger import disable_logger
from .macaddrlist import format_mac, parse_mac
from .transport import Transport

FILE_PATH = "/LoboMQ/topics"
FILE_FORMAT = ".json"

_FILENAME_TABLE = str.maketrans(
    {
        "<": "\u00ab",
        ">": "\u00bb",
        ":": "\u00f7",
        '"': "\u00aa",
        "/": "\u221a",
        "\\": "\u00ec",
        "|": "\u2502",
        "?": "\u00bf",
        "*": "\u00ba",
    }
)


def replace_chars(text: str) -> str:
    """Replace the characters that filenames can't hold with look-alike symbols."""
    return text.translate(_FILENAME_TABLE)


class TopicStore:
    """A directory of JSON files, one per broker topic."""

    def __init__(self, root, logger: Optional[logging.Logger] = None) -> None:
        self.directory = Path(root).joinpath(*FILE_PATH.strip("/").split("/"))
        self._logger = logger if logger is not None else disable_logger()
        self._lock = threading.Lock()

    def _path(self, filename: str) -> Path:
        return self.directory / (filename + FILE_FORMAT)

    def initialize(self) -> bool:
        """Create the topic directory; return False if it couldn't be created."""
        with self._lock:
            try:
                self.directory.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                self._logger.error("[BT SD] Couldn't create folder (%s): %s", self.directory, exc)
                return False
        return True

    def restore(self, transport: Transport) -> List[BrokerTopic]:
        """Load every stored topic that still has subscribers."""
        topics: List[BrokerTopic] = []
        with self._lock:
            try:
                entries = sorted(self.directory.iterdir())
            except OSError:
                self._logger.error("[BT SD] Couldn't open main directory %s.", self.directory)
                return topics
            for entry in entries:
                if entry.is_dir() or not entry.name.endswith(FILE_FORMAT):
                    continue
                try:
                    doc = json.loads(entry.read_text(encoding="utf-8"))
                    name = doc["topic"]
                    subscribers = doc.get("subscribers") or []
                    if not isinstance(name, str) or not isinstance(subscribers, list):
                        raise ValueError("unexpected document layout")
                except (OSError, ValueError, KeyError, TypeError, AttributeError):
                    self._logger.error("[BT SD] Error parsing JSON file %s.", entry.name)
                    continue
                if not subscribers:
                    self._logger.warning(
                        "[BT SD] No subscribers found in topic '%s' of the SD card, skipped.", name
                    )
                    continue
                topic = BrokerTopic(name, transport, self._logger)
                for mac in subscribers:
                    try:
                        topic.subscribe(parse_mac(str(mac)))
                    except ValueError:
                        self._logger.warning("[BT SD] Ignored malformed address %r in topic '%s'.", mac, name)
                if not len(topic):
                    continue
                topic.filename = entry.name.replace(FILE_FORMAT, "")
                topics.append(topic)
                self._logger.info("[BT SD] Created topic '%s' found on SD card.", name)
        return topics

    def write(self, topic: BrokerTopic) -> bool:
        """Store ``topic`` under its filename; return False if it couldn't be written."""
        doc = {"topic": topic.topic, "subscribers": [format_mac(mac) for mac in topic.subscribers]}
        path = self._path(topic.filename)
        with self._lock:
            try:
                path.write_text(json.dumps(doc, indent=2, ensure_ascii=False), encoding="utf-8")
            except OSError:
                self._logger.error("[BT SD] Couldn't open file for writing (%s).", path)
                return False
        self._logger.debug("[BT SD] Wrote topic '%s' to file '%s' successfully.", topic.topic, path.name)
        return True

    def delete(self, filename: str) -> bool:
        """Delete the file of a topic; a missing file counts as deleted."""
        path = self._path(filename)
        with self._lock:
            try:
                path.unlink(missing_ok=True)
            except OSError:
                self._logger.error("[BT SD] Couldn't delete file (%s).", path)
                return False
        self._logger.debug("[BT SD] Deleted file %s successfully.", path.name)
        return True