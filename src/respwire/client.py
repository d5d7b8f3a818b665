"""Module containing Redis client implementation."""

import asyncio
import collections.abc
import contextlib
import dataclasses
import logging
import types
import typing

from respwire import command, commands, config, connection, pool, protocol, pubsub, reply

if typing.TYPE_CHECKING:
    import typing_extensions

__all__: collections.abc.Sequence[str] = ("Redis",)

_LOGGER = logging.getLogger(__name__)

T = typing.TypeVar("T")


@dataclasses.dataclass(slots=True)
class Redis:
    """Redis client implementation.

    The client keeps one connection pool per distinct ``ServerSpec``. Pools
    are created on first use and live until ``close`` is called. Every
    operation takes an optional ``spec``; by default the client's own
    ``spec`` is used.
    """

    spec: config.ServerSpec = dataclasses.field(default_factory=config.ServerSpec)
    pool_config: config.PoolConfig = dataclasses.field(default_factory=config.PoolConfig)
    connection_class: type[connection.Connection] = connection.Connection

    _pools: dict[config.ServerSpec, pool.ConnectionPool] = dataclasses.field(
        default_factory=dict,
        init=False,
        repr=False,
    )

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        pool_config: config.PoolConfig | None = None,
    ) -> "Redis":
        """Create a Redis client from a Redis url.

        This performs URL validation, but does *not* make any connections.
        """
        return cls(
            config.ServerSpec.from_url(url),
            pool_config or config.PoolConfig(),
        )

    def init_pool(self, spec: config.ServerSpec | None = None) -> pool.ConnectionPool:
        """Return the pool for ``spec``, creating it if this is its first use.

        Calls after the first one for a given spec return the existing pool.
        """
        spec = spec or self.spec
        existing = self._pools.get(spec)
        if existing is not None:
            return existing

        async def _factory() -> protocol.ConnectionProto:
            return await self.connection_class.from_spec(spec)

        created = pool.ConnectionPool(_factory, self.pool_config)
        self._pools[spec] = created
        _LOGGER.debug("created connection pool for %s", spec.address)
        return created

    def pool_status(self, spec: config.ServerSpec | None = None) -> tuple[int, int, int]:
        """Return the active count, idle count and maximum of the pool for ``spec``."""
        return self.init_pool(spec).status()

    def connection(
        self,
        spec: config.ServerSpec | None = None,
    ) -> contextlib.AbstractAsyncContextManager[protocol.ConnectionProto]:
        """Borrow a pooled connection for the duration of an ``async with`` block."""
        return self.init_pool(spec).connection()

    async def with_pooled_connection(
        self,
        spec: config.ServerSpec | None,
        body: typing.Callable[[protocol.ConnectionProto], typing.Awaitable[T]],
    ) -> T:
        """Run ``body`` with a pooled connection, always releasing it afterwards.

        The connection is destroyed instead of reused if ``body`` fails with
        anything other than an error reply.
        """
        async with self.connection(spec) as con:
            return await body(con)

    async def _send(self, cmd: command.Command, spec: config.ServerSpec | None) -> reply.Reply:
        # Encode up front so argument errors surface before a connection is borrowed.
        cmd.encode()

        async with self.connection(spec) as con:
            return await cmd.execute(con)

    async def execute(
        self,
        name: str | bytes,
        *args: command.Argument,
        kind: command.Encoding = command.Encoding.INLINE,
        spec: config.ServerSpec | None = None,
    ) -> reply.Reply:
        """Send a single command over a pooled connection and read its reply.

        Error replies are raised as ``ResponseError``.
        """
        return await self._send(command.Command(name, *args, kind=kind), spec)

    async def call(
        self,
        name: str,
        *args: command.Argument,
        spec: config.ServerSpec | None = None,
    ) -> typing.Any:  # noqa: ANN401
        """Run the command ``name`` as described by the command table.

        The command is encoded with its table encoding and its reply passes
        through the table's transform.
        """
        entry = commands.lookup(name)
        response = await self._send(entry.build(*args), spec)
        return entry.post_process(response)

    async def subscribe(
        self,
        channel: str | bytes,
        on_message: pubsub.MessageCallback,
        *,
        cancel: asyncio.Event,
        spec: config.ServerSpec | None = None,
    ) -> None:
        """Listen on ``channel`` until ``cancel`` is set.

        This holds one pooled connection for its whole duration. The
        connection is destroyed afterwards rather than returned to the pool.
        """
        target = self.init_pool(spec)
        con = await target.borrow()
        try:
            await pubsub.subscribe(con, channel, on_message, cancel=cancel)

        finally:
            await target.release(con, discard=True)

    async def close(self) -> None:
        """Close all connection pools of this client."""
        pools = list(self._pools.values())
        self._pools.clear()
        await asyncio.gather(*[p.close() for p in pools])

    async def __aenter__(self) -> "typing_extensions.Self":
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_value: BaseException | None,
        _exc_tb: types.TracebackType | None,
    ) -> None:
        await self.close()
