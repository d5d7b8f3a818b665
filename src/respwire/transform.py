"""Module containing reply transformers for table-driven Redis commands."""

import collections.abc
import typing

from respwire import error, reply

__all__: collections.abc.Sequence[str] = (
    "identity",
    "transform_bool",
    "transform_info",
    "transform_pairs",
    "transform_set",
    "transform_status",
)


def identity(data: reply.Reply) -> reply.Reply:
    return data


def _pairwise_to_dict(arg: collections.abc.Iterable[typing.Any]) -> dict[typing.Any, typing.Any]:
    arg_iter = iter(arg)
    return dict(zip(arg_iter, arg_iter, strict=True))


def transform_bool(data: reply.Reply) -> bool:
    """Transform an integer reply such as ``EXISTS`` output into a bool."""
    if not isinstance(data, int):
        msg = f"Expected an integer reply, got {data!r}"
        raise error.ProtocolError(msg)

    return data == 1


def transform_status(data: reply.Reply) -> bool:
    """Transform a ``+OK`` status reply into ``True``."""
    return isinstance(data, reply.SimpleString) and data == b"OK"


def transform_set(data: reply.Reply) -> set[typing.Any]:
    """Transform an array reply such as ``SMEMBERS`` output into a set."""
    return set(data) if isinstance(data, list) else set()


def transform_pairs(data: reply.Reply) -> dict[typing.Any, typing.Any]:
    """Transform a flat ``[key 1, value 1, key 2, value 2, ...]`` array into a dict.

    This is the shape of ``HGETALL`` output.
    """
    if data is None:
        return {}

    if not isinstance(data, list):
        msg = f"Expected an array reply, got {data!r}"
        raise error.ProtocolError(msg)

    return _pairwise_to_dict(data)


def transform_info(data: reply.Reply) -> dict[str, str]:
    """Transform ``INFO`` output into a dict.

    The reply is a bulk string of ``field:value`` lines, with ``# Section``
    headers and blank lines in between.
    """
    if not isinstance(data, bytes):
        msg = f"Expected a bulk string reply, got {data!r}"
        raise error.ProtocolError(msg)

    info: dict[str, str] = {}
    for line in data.decode("utf-8", errors="replace").splitlines():
        if not line or line.startswith("#"):
            continue

        field, _, value = line.partition(":")
        info[field] = value

    return info
