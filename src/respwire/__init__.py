"""An asyncio client for the Redis RESP protocol with connection pooling."""

from respwire.client import Redis
from respwire.command import KEYWORDS, Command, Encoding, Keyword, encode
from respwire.config import PoolConfig, ServerSpec
from respwire.connection import Connection
from respwire.error import (
    ConnectionError,
    EncodingError,
    OutOfSyncError,
    PoolTimeoutError,
    ProtocolError,
    RedisError,
    ResponseError,
    StateError,
)
from respwire.pool import ConnectionPool, validate
from respwire.pubsub import subscribe
from respwire.reply import Reply, SimpleString, parse_reply

__all__ = (
    "KEYWORDS",
    "Command",
    "Connection",
    "ConnectionError",
    "ConnectionPool",
    "Encoding",
    "EncodingError",
    "Keyword",
    "OutOfSyncError",
    "PoolConfig",
    "PoolTimeoutError",
    "ProtocolError",
    "Redis",
    "RedisError",
    "Reply",
    "ResponseError",
    "ServerSpec",
    "SimpleString",
    "StateError",
    "encode",
    "parse_reply",
    "subscribe",
    "validate",
)
