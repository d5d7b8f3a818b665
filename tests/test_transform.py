from __future__ import annotations

import pytest

from respwire import command, commands, error, reply, transform


def test_transform_bool() -> None:
    assert transform.transform_bool(1) is True
    assert transform.transform_bool(0) is False

    with pytest.raises(error.ProtocolError):
        transform.transform_bool(b"1")


def test_transform_status() -> None:
    assert transform.transform_status(reply.SimpleString(b"OK")) is True
    assert transform.transform_status(b"OK") is False


def test_transform_set() -> None:
    assert transform.transform_set([b"a", b"b", b"a"]) == {b"a", b"b"}
    assert transform.transform_set(None) == set()


def test_transform_pairs() -> None:
    assert transform.transform_pairs([b"one", b"1", b"two", b"2"]) == {b"one": b"1", b"two": b"2"}
    assert transform.transform_pairs(None) == {}

    with pytest.raises(ValueError):
        transform.transform_pairs([b"odd"])


def test_transform_info() -> None:
    data = b"# Server\r\nredis_version:7.2.0\r\nos:Linux\r\n\r\n# Clients\r\nconnected_clients:3\r\n"

    assert transform.transform_info(data) == {
        "redis_version": "7.2.0",
        "os": "Linux",
        "connected_clients": "3",
    }


def test_lookup_is_case_insensitive() -> None:
    entry = commands.lookup("set")

    assert entry.name == "SET"
    assert entry.kind is command.Encoding.BULK
    assert entry.post_process is transform.transform_status


def test_lookup_unknown_command() -> None:
    with pytest.raises(error.EncodingError, match="FROBNICATE"):
        commands.lookup("FROBNICATE")


def test_table_entry_builds_command() -> None:
    cmd = commands.lookup("rpush").build("queue", "job")

    assert cmd.encode() == b"RPUSH queue 3\r\njob\r\n"


def test_hash_commands_in_table() -> None:
    assert commands.lookup("hgetall").post_process is transform.transform_pairs
    assert commands.lookup("hexists").post_process is transform.transform_bool
    assert commands.lookup("hset").build("h", "f", "v").encode() == b"HSET h f 1\r\nv\r\n"


def test_table_is_read_only() -> None:
    with pytest.raises(TypeError):
        commands.COMMANDS["NEW"] = commands.lookup("GET")  # type: ignore[index]
