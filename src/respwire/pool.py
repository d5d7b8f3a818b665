"""Module containing the connection pool implementation."""

import asyncio
import collections
import collections.abc
import contextlib
import dataclasses
import logging
import time
import typing

from respwire import command, config, error, protocol, reply

__all__: collections.abc.Sequence[str] = ("ConnectionPool", "validate")

_LOGGER = logging.getLogger(__name__)

ConnectionFactory: typing.TypeAlias = typing.Callable[
    [],
    typing.Awaitable[protocol.ConnectionProto],
]


async def validate(con: protocol.ConnectionProto) -> bool:
    """Check that ``con`` answers ``PING`` with exactly ``+PONG``.

    Any failure, including a reply other than ``+PONG``, means the
    connection is invalid.
    """
    try:
        await con.write_command(command.Command("PING"))
        response = await con.read_response()

    except Exception as exc:  # noqa: BLE001
        _LOGGER.debug("liveness check failed: %r", exc)
        return False

    return isinstance(response, reply.SimpleString) and response == b"PONG"


@dataclasses.dataclass(slots=True)
class ConnectionPool:
    """A bounded pool of reusable connections.

    Connections are created by ``factory`` on demand, up to
    ``pool_config.max_active`` at a time. Borrowing from an exhausted pool waits
    until a connection is returned, or up to ``pool_config.max_wait``
    milliseconds when that is set.

    A background task started on first use periodically sweeps the idle
    connections, destroying those that are too old or fail validation. It
    only ever takes connections out of the idle set, so connections that are
    checked out are never touched.
    """

    factory: ConnectionFactory
    pool_config: config.PoolConfig = dataclasses.field(default_factory=config.PoolConfig)

    _idle: collections.deque[protocol.ConnectionProto] = dataclasses.field(
        default_factory=collections.deque,
        init=False,
        repr=False,
    )
    _active: int = dataclasses.field(default=0, init=False)
    _evicting: int = dataclasses.field(default=0, init=False)
    _closed: bool = dataclasses.field(default=False, init=False)
    _condition: asyncio.Condition = dataclasses.field(
        default_factory=asyncio.Condition,
        init=False,
        repr=False,
    )
    _evictor: asyncio.Task[None] | None = dataclasses.field(default=None, init=False, repr=False)

    @property
    def num_active(self) -> int:
        return self._active

    @property
    def num_idle(self) -> int:
        return len(self._idle)

    @property
    def closed(self) -> bool:
        return self._closed

    def status(self) -> tuple[int, int, int]:
        """Return the number of active and idle connections, and the maximum."""
        return self._active, len(self._idle), self.pool_config.max_active

    def _total(self) -> int:
        return self._active + len(self._idle) + self._evicting

    def _can_checkout(self) -> bool:
        return self._closed or bool(self._idle) or self._total() < self.pool_config.max_active

    def start(self) -> None:
        """Start the background eviction task, if it isn't running yet.

        This requires a running event loop.
        """
        if self._closed or self._evictor is not None or self.pool_config.eviction_interval <= 0:
            return

        self._evictor = asyncio.get_running_loop().create_task(self._run_evictor())

    async def _checkout(self) -> protocol.ConnectionProto | None:
        # Returns an idle connection, or None when a slot was reserved for a
        # new connection.
        max_wait = self.pool_config.max_wait
        async with self._condition:
            try:
                # A zero wait still hands out a connection that is available now.
                if not self._can_checkout():
                    await asyncio.wait_for(
                        self._condition.wait_for(self._can_checkout),
                        max_wait / 1000 if max_wait is not None else None,
                    )

            except asyncio.TimeoutError as exc:
                msg = f"Timed out after {max_wait}ms waiting for a pooled connection"
                raise error.PoolTimeoutError(msg) from exc

            if self._closed:
                msg = "The connection pool is closed."
                raise error.StateError(msg)

            self._active += 1
            if self._idle:
                return self._idle.popleft()

            return None

    async def _discard_active(self, con: protocol.ConnectionProto | None) -> None:
        if con is not None:
            await self.destroy(con)

        async with self._condition:
            self._active -= 1
            self._condition.notify()

    async def borrow(self) -> protocol.ConnectionProto:
        """Check a connection out of the pool.

        Idle connections are handed out oldest first. With
        ``pool_config.test_on_borrow`` they are validated first; connections
        failing validation are destroyed and the borrow is retried.
        """
        self.start()

        while True:
            con = await self._checkout()

            if con is None:
                try:
                    con = await self.factory()

                except BaseException:
                    await self._discard_active(None)
                    raise

                _LOGGER.debug("created pooled connection %r", con)
                return con

            if self.pool_config.test_on_borrow:
                try:
                    valid = await validate(con)

                except BaseException:
                    await self._discard_active(con)
                    raise

                if not valid:
                    _LOGGER.debug("discarding connection that failed validation on borrow")
                    await self._discard_active(con)
                    continue

            return con

    async def release(self, con: protocol.ConnectionProto, *, discard: bool = False) -> None:
        """Return a borrowed connection to the pool.

        Connections that were closed while in use, released with ``discard``,
        or returned after the pool was closed are destroyed instead.
        """
        async with self._condition:
            self._active -= 1
            keep = not discard and not self._closed and con.is_alive()
            if keep:
                con.idle_since = time.monotonic()
                self._idle.append(con)

            self._condition.notify()

        if not keep:
            await self.destroy(con)

    async def destroy(self, con: protocol.ConnectionProto) -> None:
        """Close ``con``, suppressing errors raised while closing it.

        A connection that timed out server-side may already have a broken
        transport.
        """
        if not con.is_alive():
            return

        try:
            await con.disconnect()

        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning("ignoring error while closing connection %r: %r", con, exc)

        else:
            _LOGGER.debug("destroyed pooled connection %r", con)

    def _is_expired(self, con: protocol.ConnectionProto, now: float) -> bool:
        max_idle = self.pool_config.min_evictable_idle
        return max_idle is not None and (now - con.idle_since) * 1000 >= max_idle

    async def evict(self) -> None:
        """Sweep the connections that are idle when the sweep starts.

        Each connection is taken out of the idle set while it is examined, so
        it cannot be borrowed concurrently.
        """
        async with self._condition:
            count = len(self._idle)

        evicted = 0
        for _ in range(count):
            async with self._condition:
                if self._closed or not self._idle:
                    break

                con = self._idle.popleft()
                self._evicting += 1

            keep = con.is_alive() and not self._is_expired(con, time.monotonic())
            if keep and self.pool_config.test_while_idle:
                try:
                    keep = await validate(con)

                except BaseException:
                    async with self._condition:
                        self._evicting -= 1
                        self._condition.notify()

                    await self.destroy(con)
                    raise

            async with self._condition:
                self._evicting -= 1
                keep = keep and not self._closed
                if keep:
                    self._idle.append(con)

                self._condition.notify()

            if not keep:
                evicted += 1
                await self.destroy(con)

        _LOGGER.debug("eviction sweep examined %s idle connections, evicted %s", count, evicted)

    async def _run_evictor(self) -> None:
        interval = self.pool_config.eviction_interval / 1000
        while True:
            await asyncio.sleep(interval)
            try:
                await self.evict()

            except Exception:
                _LOGGER.exception("idle connection eviction sweep failed")

    @contextlib.asynccontextmanager
    async def connection(self) -> collections.abc.AsyncIterator[protocol.ConnectionProto]:
        """Borrow a connection for the duration of the ``async with`` block.

        The connection is always released. It is destroyed if the block
        failed with anything other than an error reply, as a command may have
        been sent without its reply being read.
        """
        con = await self.borrow()
        discard = False
        try:
            yield con

        except error.ResponseError:
            raise

        except BaseException:
            discard = True
            raise

        finally:
            await self.release(con, discard=discard)

    async def close(self) -> None:
        """Stop the evictor and destroy all idle connections.

        Further borrows fail with ``StateError``. Connections still checked
        out are destroyed when they are released.
        """
        async with self._condition:
            if self._closed:
                return

            self._closed = True
            idle = list(self._idle)
            self._idle.clear()
            self._condition.notify_all()

        if self._evictor is not None:
            self._evictor.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._evictor

        await asyncio.gather(*[self.destroy(con) for con in idle])
