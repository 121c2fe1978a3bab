"""Error codes and the exceptions raised by the library."""

from __future__ import annotations

import enum
from typing import ClassVar, Optional


class ErrorCode(enum.IntEnum):
    """Every result code the library knows about."""

    SUCCESS = 0
    VALID_TOPIC = 1
    INVAL_TOPIC = 2
    BAD_ESP_CONFIG = 3
    ESP_SEND_FAIL = 4
    XQUEUECREATE_FAIL = 5
    XTASKCREATE_FAIL = 6


class LMQError(Exception):
    """Base class of every error raised by the library."""

    code: ClassVar[Optional[ErrorCode]] = None
    default_message: ClassVar[str] = "LoboMQ operation failed"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(self.default_message if message is None else message)


class InvalidTopicError(LMQError):
    """The topic is missing, too long, misuses wildcards or is not ASCII."""

    code = ErrorCode.INVAL_TOPIC
    default_message = "Invalid topic"


class ESPConfigError(LMQError):
    """The transport could not be set up."""

    code = ErrorCode.BAD_ESP_CONFIG
    default_message = "Couldn't configure the transport"


class SendError(LMQError):
    """A message could not be sent."""

    code = ErrorCode.ESP_SEND_FAIL
    default_message = "Couldn't send the message"


class QueueCreateError(LMQError):
    """A broker message queue could not be created."""

    code = ErrorCode.XQUEUECREATE_FAIL
    default_message = "Couldn't create the broker queue"


class TaskCreateError(LMQError):
    """A broker worker could not be started."""

    code = ErrorCode.XTASKCREATE_FAIL
    default_message = "Couldn't create the broker task"