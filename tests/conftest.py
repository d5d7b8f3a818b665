from __future__ import annotations

import asyncio
from typing import Any

import pytest


def bulk(value: bytes | None) -> bytes:
    if value is None:
        return b"$-1\r\n"
    return b"$%i\r\n%s\r\n" % (len(value), value)


def array(*items: bytes) -> bytes:
    return b"*%i\r\n" % len(items) + b"".join(items)


def push(*fields: bytes) -> bytes:
    return array(*(bulk(field) for field in fields))


class FakeRedis:
    """A scripted in-process server speaking just enough of the protocol for tests.

    Commands arrive inline; the commands in ``BULK_COMMANDS`` carry their last
    argument as a trailing length-prefixed payload.
    """

    BULK_COMMANDS = frozenset({"SET", "ECHO", "PUBLISH", "SADD", "GETSET", "HSET"})

    def __init__(
        self,
        *,
        password: str | None = None,
        pushes: tuple[bytes, ...] = (),
        ping_reply: bytes = b"+PONG\r\n",
    ) -> None:
        self.password = password
        self.pushes = pushes
        self.ping_reply = ping_reply
        self.data: dict[bytes, bytes] = {}
        self.hashes: dict[bytes, dict[bytes, bytes]] = {}
        self.received: list[tuple[Any, ...]] = []
        self.connections = 0
        self.port = 0
        self.unsubscribed: asyncio.Event | None = None
        self._server: asyncio.base_events.Server | None = None
        self._writers: list[asyncio.StreamWriter] = []

    async def __aenter__(self) -> FakeRedis:
        self.unsubscribed = asyncio.Event()
        self._server = await asyncio.start_server(self._handle, "127.0.0.1", 0)
        self.port = self._server.sockets[0].getsockname()[1]
        return self

    async def __aexit__(self, *_exc: object) -> None:
        assert self._server is not None
        self._server.close()
        for writer in self._writers:
            writer.close()
        await asyncio.sleep(0)

    def names(self) -> list[str]:
        return [entry[0] for entry in self.received]

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.connections += 1
        self._writers.append(writer)
        try:
            while True:
                line = await reader.readuntil(b"\r\n")
                tokens = line[:-2].split(b" ")
                name = tokens[0].decode().upper()
                args = tokens[1:]
                if name in self.BULK_COMMANDS:
                    length = int(args[-1])
                    args[-1] = (await reader.readexactly(length + 2))[:-2]
                self.received.append((name, *args))

                response = self._respond(name, args)
                if response is not None:
                    writer.write(response)
                    await writer.drain()
        except (asyncio.IncompleteReadError, ConnectionError):
            return
        finally:
            writer.close()

    def _respond(self, name: str, args: list[bytes]) -> bytes | None:  # noqa: C901, PLR0911
        if name == "PING":
            return self.ping_reply
        if name == "AUTH":
            if self.password is not None and args[0].decode() == self.password:
                return b"+OK\r\n"
            return b"-WRONGPASS invalid username-password pair\r\n"
        if name == "SELECT":
            return b"+OK\r\n"
        if name == "SET":
            self.data[args[0]] = args[1]
            return b"+OK\r\n"
        if name == "HSET":
            fields = self.hashes.setdefault(args[0], {})
            added = args[1] not in fields
            fields[args[1]] = args[2]
            return b":%i\r\n" % int(added)
        if name == "HGETALL":
            fields = self.hashes.get(args[0], {})
            return array(*(bulk(item) for pair in fields.items() for item in pair))
        if name == "GET":
            return bulk(self.data.get(args[0]))
        if name == "ECHO":
            return bulk(args[0])
        if name == "EXISTS":
            return b":%i\r\n" % int(args[0] in self.data)
        if name == "DEL":
            removed = [key for key in args if self.data.pop(key, None) is not None]
            return b":%i\r\n" % len(removed)
        if name == "SMEMBERS":
            return push(b"a", b"b")
        if name == "INFO":
            return bulk(b"# Server\r\nredis_version:7.2.0\r\n\r\n# Clients\r\nconnected_clients:1\r\n")
        if name == "SUBSCRIBE":
            confirmation = array(bulk(b"subscribe"), bulk(args[0]), b":1\r\n")
            return confirmation + b"".join(self.pushes)
        if name == "UNSUBSCRIBE":
            assert self.unsubscribed is not None
            self.unsubscribed.set()
            return array(bulk(b"unsubscribe"), bulk(args[0]), b":0\r\n")
        if name == "BROKEN":
            return b"!oops\r\n"
        if name == "HANG":
            return None
        return b"-ERR unknown command '%s'\r\n" % name.encode()


@pytest.fixture
def fake_redis() -> type[FakeRedis]:
    return FakeRedis
