"""Module containing protocols that prescribe respwire implementations."""

import collections.abc
import typing

if typing.TYPE_CHECKING:
    from respwire import reply

__all__: collections.abc.Sequence[str] = ("CommandProto", "ConnectionProto")


class CommandProto(typing.Protocol):
    """Redis command protocol."""

    name: str

    def encode(self) -> bytes:
        """Encode this command to raw protocol bytes."""
        ...


class ConnectionProto(typing.Protocol):
    """Redis connection protocol."""

    created_at: float
    idle_since: float

    async def connect(self) -> None:
        """Connect to Redis with the connection parameters provided at instantiation."""
        ...

    async def disconnect(self) -> None:
        """Close the connection with Redis."""
        ...

    def is_alive(self) -> bool:
        """Check whether this connection has an active redis connection."""
        ...

    async def write_command(self, command: CommandProto, /) -> None:
        """Write a command to the connected Redis instance.

        This requires this connection to be alive.

        ``read_response`` *must* be called after this.
        """
        ...

    async def read_response(
        self,
        *,
        disconnect_on_error: bool = True,
        block: bool = False,
    ) -> "reply.Reply":
        """Read the response to a previously executed command.

        This requires this connection to be alive. With ``block`` the read
        waits for as long as it takes, for replies pushed by the server.
        """
        ...
