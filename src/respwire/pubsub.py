"""Module containing the publish/subscribe listening loop."""

import asyncio
import collections.abc
import inspect
import logging
import typing

from respwire import command, error, protocol, reply

__all__: collections.abc.Sequence[str] = ("MessageCallback", "subscribe")

_LOGGER = logging.getLogger(__name__)

_STANDARD_PUSH_LENGTH: typing.Final = 3
_KEYED_PUSH_LENGTH: typing.Final = 4

MessageCallback: typing.TypeAlias = typing.Callable[
    [reply.Reply, reply.Reply],
    typing.Awaitable[None] | None,
]


def _as_bytes(value: str | bytes) -> bytes:
    return value.encode() if isinstance(value, str) else value


def _unpack_message(push: reply.Reply, channel: bytes) -> tuple[reply.Reply, reply.Reply]:
    # Pushes are either [kind, channel, payload] or [kind, channel, key, value].
    if not isinstance(push, list) or len(push) not in (_STANDARD_PUSH_LENGTH, _KEYED_PUSH_LENGTH):
        msg = f"Expected a pushed message array, got {push!r}"
        raise error.ProtocolError(msg)

    if push[1] != channel:
        msg = f"{channel!r}: subscribed channel out of sync, received a message for {push[1]!r}"
        raise error.OutOfSyncError(msg)

    if len(push) == _STANDARD_PUSH_LENGTH:
        return push[1], push[2]

    return push[2], push[3]


async def _unsubscribe(con: protocol.ConnectionProto, channel: bytes) -> None:
    if con.is_alive():
        await con.write_command(command.Command("UNSUBSCRIBE", channel))
        _LOGGER.debug("unsubscribed from %r", channel)


async def subscribe(
    con: protocol.ConnectionProto,
    channel: str | bytes,
    on_message: MessageCallback,
    *,
    cancel: asyncio.Event,
) -> None:
    """Subscribe ``con`` to ``channel`` and feed each message to ``on_message``.

    This blocks until ``cancel`` is set or an error occurs. Cancellation is
    checked between messages, so a pending read only notices it once the next
    message arrives.

    ``on_message`` receives the message key and value; for a plain
    ``[b"message", channel, payload]`` push that is the channel and payload.
    It may be a coroutine function.

    On every exit path an ``UNSUBSCRIBE`` is sent before returning. When the
    loop failed, a failure to send it is logged and the original error is
    raised. The confirmation is left unread, so the connection should not be
    reused for regular commands afterwards.
    """
    channel = _as_bytes(channel)

    await con.write_command(command.Command("SUBSCRIBE", channel))
    await con.read_response()
    _LOGGER.debug("subscribed to %r", channel)

    try:
        while not cancel.is_set():
            push = await con.read_response(block=True)
            key, value = _unpack_message(push, channel)

            result = on_message(key, value)
            if inspect.isawaitable(result):
                await result

    except BaseException:
        # The loop's own error takes precedence over a failed unsubscribe.
        try:
            await _unsubscribe(con, channel)

        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning("failed to unsubscribe from %r: %r", channel, exc)

        raise

    await _unsubscribe(con, channel)
