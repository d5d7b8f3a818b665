"""Module containing the exceptions raised by respwire."""

import collections.abc
import dataclasses

__all__: collections.abc.Sequence[str] = (
    "RedisError",
    "ConnectionError",
    "StateError",
    "ProtocolError",
    "OutOfSyncError",
    "ResponseError",
    "EncodingError",
    "PoolTimeoutError",
)


class RedisError(Exception):
    ...


class ConnectionError(RedisError):  # noqa: A001
    ...


class StateError(RedisError):
    ...


class ProtocolError(RedisError):
    """The byte stream did not follow the wire format.

    The connection that produced it can no longer be trusted to be in sync.
    """


class OutOfSyncError(ProtocolError):
    ...


class EncodingError(RedisError):
    """A command could not be encoded; nothing was sent."""


class PoolTimeoutError(RedisError):
    ...


@dataclasses.dataclass
class ResponseError(RedisError):
    code: str
    message: str

    def __str__(self) -> str:
        return self.message

    @classmethod
    def from_response(cls, response: bytes) -> "ResponseError":
        message = response.decode("utf-8", errors="replace")
        code, _, _ = message.partition(" ")
        return cls(code, message)
