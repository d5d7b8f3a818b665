"""Module containing the connection implementation."""

import asyncio
import collections.abc
import dataclasses
import logging
import socket
import time
import typing

from respwire import command, config, error, protocol, reply

if typing.TYPE_CHECKING:
    import typing_extensions

__all__: collections.abc.Sequence[str] = ("Connection",)

_LOGGER = logging.getLogger(__name__)

ConnectHook: typing.TypeAlias = typing.Callable[
    ["Connection"],
    typing.Coroutine[typing.Any, typing.Any, None],
]


async def _authenticate(con: "Connection") -> None:
    await command.Command("AUTH", typing.cast(str, con.password)).execute(con)


async def _select_db(con: "Connection") -> None:
    await command.Command("SELECT", con.db).execute(con)


@dataclasses.dataclass(slots=True)
class Connection:
    """Low-level connection implementation.

    This connection can make connections to Redis, and both send and receive
    commands. It does not implement any higher-level commands.

    ``timeout`` is in milliseconds and bounds connecting, writing and reading
    a reply.
    """

    host: str
    port: int
    password: str | None = dataclasses.field(default=None, repr=False)
    db: int = 0
    timeout: int = config.DEFAULT_TIMEOUT
    buffer_limit: int = 2**16
    created_at: float = dataclasses.field(default_factory=time.monotonic)
    idle_since: float = dataclasses.field(default_factory=time.monotonic)
    _post_connect_hooks: dict[str, ConnectHook] = dataclasses.field(
        default_factory=dict,
        repr=False,
    )
    _reader: asyncio.StreamReader | None = dataclasses.field(default=None, repr=False)
    _writer: asyncio.StreamWriter | None = dataclasses.field(default=None, repr=False)

    @classmethod
    async def from_spec(cls, spec: config.ServerSpec, /) -> "typing_extensions.Self":
        """Connect to the Redis server described by ``spec``.

        Authenticates and selects the database when the spec asks for it.
        """
        self = cls(
            host=spec.host,
            port=spec.port,
            password=spec.password,
            db=spec.db,
            timeout=spec.timeout,
        )

        if self.password is not None:
            self._post_connect_hooks["AUTH"] = _authenticate

        if self.db:
            self._post_connect_hooks["SELECT"] = _select_db

        await self.connect()
        return self

    @classmethod
    async def from_url(cls, url: str, /) -> "typing_extensions.Self":
        """Connect to the provided Redis url."""
        return await cls.from_spec(config.ServerSpec.from_url(url))

    def __del__(self) -> None:
        if getattr(self, "_writer", None):
            self._close()

    @property
    def _timeout_seconds(self) -> float | None:
        return self.timeout / 1000 if self.timeout else None

    def _close(self) -> asyncio.StreamWriter:
        assert self._writer

        writer = self._writer
        writer.close()
        self._writer = self._reader = None

        return writer

    def is_alive(self) -> bool:
        """Check whether this connection has an active redis connection."""
        return self._reader is not None and self._writer is not None

    async def connect(self) -> None:
        """Connect to Redis with the connection parameters provided at instantiation."""
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port, limit=self.buffer_limit),
                self._timeout_seconds,
            )
            sock: socket.socket = writer.transport.get_extra_info("socket")
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)

        except (OSError, asyncio.TimeoutError) as exc:
            msg = f"Failed to connect to '{self.host}:{self.port}'."
            raise error.ConnectionError(msg) from exc

        self._reader = reader
        self._writer = writer
        self.created_at = self.idle_since = time.monotonic()
        _LOGGER.debug("connected to %s:%s", self.host, self.port)

        try:
            for hook in self._post_connect_hooks.values():
                await hook(self)

        except BaseException:
            if self.is_alive():
                self._close()
            raise

    async def disconnect(self) -> None:
        """Close the connection with Redis."""
        if not self.is_alive():
            msg = "The connection is already closed."
            raise error.StateError(msg)

        closing_writer = self._close()
        _LOGGER.debug("disconnected from %s:%s", self.host, self.port)
        await closing_writer.wait_closed()

    async def write_command(self, command: protocol.CommandProto, /) -> None:
        """Write a command to the connected Redis instance.

        This requires this connection to be alive. The command is encoded
        before anything is written, so an encoding error leaves the
        connection untouched.

        ``read_response`` *must* be called after this.
        """
        if not self.is_alive():
            msg = "Cannot send commands to a closed connection."
            raise error.StateError(msg)

        assert self._writer is not None

        data = command.encode()

        try:
            self._writer.write(data)
            await asyncio.wait_for(self._writer.drain(), self._timeout_seconds)

        except (OSError, asyncio.TimeoutError) as exc:
            self._close()

            if len(exc.args) < 2:  # noqa: PLR2004
                error_code = "UNKNOWN"
                error_msg = exc.args[0] if exc.args else type(exc).__name__

            else:
                error_code, error_msg, *_ = exc.args

            msg = f"Writing to '{self.host}:{self.port}' raised {error_code}: {error_msg}"
            raise error.ConnectionError(msg) from exc

        except BaseException:
            self._close()
            raise

    async def read_response(
        self,
        *,
        disconnect_on_error: bool = True,
        block: bool = False,
    ) -> reply.Reply:
        """Read the response to a previously executed command.

        This requires this connection to be alive. Unless ``block`` is set,
        the read is bounded by the connection timeout.

        Error replies are raised as ``ResponseError`` and leave the connection
        usable. Any other failure disconnects it when ``disconnect_on_error``
        is set, as the stream can no longer be trusted to be in sync.
        """
        if not self.is_alive():
            msg = "Cannot read from a closed connection."
            raise error.StateError(msg)

        assert self._reader is not None

        try:
            return await asyncio.wait_for(
                reply.parse_reply(self._reader),
                None if block else self._timeout_seconds,
            )

        except error.ResponseError:
            raise

        except (OSError, asyncio.TimeoutError) as exc:
            if disconnect_on_error and self.is_alive():
                self._close()

            msg = f"Failed to read from '{self.host}:{self.port}': {exc!r}"
            raise error.ConnectionError(msg) from exc

        except BaseException:
            if disconnect_on_error and self.is_alive():
                self._close()

            raise
