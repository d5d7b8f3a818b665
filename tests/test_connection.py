from __future__ import annotations

import asyncio
import socket

import pytest

from respwire import command, config, connection, error, reply


def _spec(server, **kwargs) -> config.ServerSpec:
    return config.ServerSpec(port=server.port, **kwargs)


def test_ping_round_trip(fake_redis) -> None:
    async def _run() -> reply.Reply:
        async with fake_redis() as server:
            con = await connection.Connection.from_spec(_spec(server))
            result = await command.Command("PING").execute(con)
            await con.disconnect()
            return result

    assert asyncio.run(_run()) == reply.SimpleString(b"PONG")


def test_bulk_command_round_trip(fake_redis) -> None:
    async def _run() -> tuple[reply.Reply, reply.Reply]:
        async with fake_redis() as server:
            con = await connection.Connection.from_spec(_spec(server))
            stored = await command.Command("SET", "greeting", "hello", kind=command.Encoding.BULK).execute(con)
            fetched = await command.Command("GET", "greeting").execute(con)
            await con.disconnect()
            return stored, fetched

    assert asyncio.run(_run()) == (b"OK", b"hello")


def test_connect_authenticates_and_selects_db(fake_redis) -> None:
    async def _run() -> list[tuple]:
        async with fake_redis(password="hunter2") as server:
            con = await connection.Connection.from_spec(_spec(server, password="hunter2", db=2))
            await con.disconnect()
            return server.received

    assert asyncio.run(_run()) == [("AUTH", b"hunter2"), ("SELECT", b"2")]


def test_connect_with_wrong_password_fails(fake_redis) -> None:
    async def _run() -> None:
        async with fake_redis(password="hunter2") as server:
            with pytest.raises(error.ResponseError) as exc_info:
                await connection.Connection.from_spec(_spec(server, password="nope"))

            assert exc_info.value.code == "WRONGPASS"

    asyncio.run(_run())


def test_connect_refused() -> None:
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]

    async def _run() -> None:
        with pytest.raises(error.ConnectionError, match="Failed to connect"):
            await connection.Connection.from_spec(config.ServerSpec(port=port))

    asyncio.run(_run())


def test_error_reply_keeps_connection_usable(fake_redis) -> None:
    async def _run() -> None:
        async with fake_redis() as server:
            con = await connection.Connection.from_spec(_spec(server))

            with pytest.raises(error.ResponseError, match="unknown command"):
                await command.Command("NOSUCHCOMMAND").execute(con)

            assert con.is_alive()
            assert await command.Command("PING").execute(con) == b"PONG"
            await con.disconnect()

    asyncio.run(_run())


def test_framing_error_closes_connection(fake_redis) -> None:
    async def _run() -> None:
        async with fake_redis() as server:
            con = await connection.Connection.from_spec(_spec(server))

            with pytest.raises(error.ProtocolError, match="Unknown reply type"):
                await command.Command("BROKEN").execute(con)

            assert not con.is_alive()
            with pytest.raises(error.StateError):
                await command.Command("PING").execute(con)

    asyncio.run(_run())


def test_read_timeout_closes_connection(fake_redis) -> None:
    async def _run() -> None:
        async with fake_redis() as server:
            con = await connection.Connection.from_spec(_spec(server, timeout=50))

            with pytest.raises(error.ConnectionError, match="Failed to read"):
                await command.Command("HANG").execute(con)

            assert not con.is_alive()

    asyncio.run(_run())


def test_encoding_error_sends_nothing(fake_redis) -> None:
    async def _run() -> list[tuple]:
        async with fake_redis() as server:
            con = await connection.Connection.from_spec(_spec(server))

            with pytest.raises(error.EncodingError):
                await con.write_command(command.Command("SORT", "list", command.Keyword("sideways")))

            assert con.is_alive()
            await command.Command("PING").execute(con)
            await con.disconnect()
            return server.received

    assert asyncio.run(_run()) == [("PING",)]


def test_disconnect_twice(fake_redis) -> None:
    async def _run() -> None:
        async with fake_redis() as server:
            con = await connection.Connection.from_url(f"redis://127.0.0.1:{server.port}")
            await con.disconnect()

            with pytest.raises(error.StateError):
                await con.disconnect()

    asyncio.run(_run())
