"""Module containing the table of supported Redis commands.

Each entry names the command, the encoding its arguments are sent with, and
the transform applied to its reply. Commands taking a value send it as the
trailing bulk payload.
"""

import collections.abc
import types
import typing

from respwire import command, error, reply, transform

__all__: collections.abc.Sequence[str] = ("COMMANDS", "CommandSpec", "lookup")


class CommandSpec(typing.NamedTuple):
    """Wrapper type for a command table entry."""

    name: str
    kind: command.Encoding
    post_process: typing.Callable[[reply.Reply], typing.Any] = transform.identity

    def build(self, *args: command.Argument) -> command.Command:
        """Create the command for this entry with the given arguments."""
        return command.Command(self.name, *args, kind=self.kind)


_INLINE = command.Encoding.INLINE
_BULK = command.Encoding.BULK

_TABLE: typing.Final[collections.abc.Sequence[CommandSpec]] = (
    # Connection
    CommandSpec("AUTH", _INLINE, transform.transform_status),
    CommandSpec("ECHO", _BULK),
    CommandSpec("PING", _INLINE),
    CommandSpec("SELECT", _INLINE, transform.transform_status),
    # Keys
    CommandSpec("DEL", _INLINE),
    CommandSpec("EXISTS", _INLINE, transform.transform_bool),
    CommandSpec("EXPIRE", _INLINE, transform.transform_bool),
    CommandSpec("KEYS", _INLINE),
    CommandSpec("MOVE", _INLINE, transform.transform_bool),
    CommandSpec("RANDOMKEY", _INLINE),
    CommandSpec("RENAME", _INLINE, transform.transform_status),
    CommandSpec("RENAMENX", _INLINE, transform.transform_bool),
    CommandSpec("SORT", _INLINE),
    CommandSpec("TTL", _INLINE),
    CommandSpec("TYPE", _INLINE),
    # Strings
    CommandSpec("APPEND", _BULK),
    CommandSpec("DECR", _INLINE),
    CommandSpec("DECRBY", _INLINE),
    CommandSpec("GET", _INLINE),
    CommandSpec("GETSET", _BULK),
    CommandSpec("INCR", _INLINE),
    CommandSpec("INCRBY", _INLINE),
    CommandSpec("MGET", _INLINE),
    CommandSpec("SET", _BULK, transform.transform_status),
    CommandSpec("SETNX", _BULK, transform.transform_bool),
    # Hashes
    CommandSpec("HDEL", _INLINE),
    CommandSpec("HEXISTS", _INLINE, transform.transform_bool),
    CommandSpec("HGET", _INLINE),
    CommandSpec("HGETALL", _INLINE, transform.transform_pairs),
    CommandSpec("HLEN", _INLINE),
    CommandSpec("HSET", _BULK),
    # Lists
    CommandSpec("LINDEX", _INLINE),
    CommandSpec("LLEN", _INLINE),
    CommandSpec("LPOP", _INLINE),
    CommandSpec("LPUSH", _BULK),
    CommandSpec("LRANGE", _INLINE),
    CommandSpec("LREM", _BULK),
    CommandSpec("LSET", _BULK, transform.transform_status),
    CommandSpec("LTRIM", _INLINE, transform.transform_status),
    CommandSpec("RPOP", _INLINE),
    CommandSpec("RPUSH", _BULK),
    # Sets
    CommandSpec("SADD", _BULK, transform.transform_bool),
    CommandSpec("SCARD", _INLINE),
    CommandSpec("SINTER", _INLINE, transform.transform_set),
    CommandSpec("SISMEMBER", _BULK, transform.transform_bool),
    CommandSpec("SMEMBERS", _INLINE, transform.transform_set),
    CommandSpec("SREM", _BULK, transform.transform_bool),
    CommandSpec("SUNION", _INLINE, transform.transform_set),
    # Sorted sets
    CommandSpec("ZADD", _BULK, transform.transform_bool),
    CommandSpec("ZCARD", _INLINE),
    CommandSpec("ZRANGE", _INLINE),
    CommandSpec("ZRANGEBYSCORE", _INLINE),
    CommandSpec("ZREM", _BULK, transform.transform_bool),
    CommandSpec("ZREVRANGE", _INLINE),
    CommandSpec("ZSCORE", _BULK),
    # Pub/sub
    CommandSpec("PUBLISH", _BULK),
    # Server
    CommandSpec("DBSIZE", _INLINE),
    CommandSpec("FLUSHALL", _INLINE, transform.transform_status),
    CommandSpec("FLUSHDB", _INLINE, transform.transform_status),
    CommandSpec("INFO", _INLINE, transform.transform_info),
    CommandSpec("LASTSAVE", _INLINE),
    CommandSpec("SAVE", _INLINE, transform.transform_status),
)

COMMANDS: typing.Final[collections.abc.Mapping[str, CommandSpec]] = types.MappingProxyType(
    {spec.name: spec for spec in _TABLE},
)


def lookup(name: str) -> CommandSpec:
    """Find the table entry for the command called ``name``, in any case."""
    try:
        return COMMANDS[name.upper()]

    except KeyError:
        msg = f"Unknown command: {name!r}"
        raise error.EncodingError(msg) from None
