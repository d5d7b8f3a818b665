"""Module containing server and pool configuration."""

import collections.abc
import dataclasses
import typing
import urllib.parse

if typing.TYPE_CHECKING:
    import typing_extensions

__all__: collections.abc.Sequence[str] = ("PoolConfig", "ServerSpec")


DEFAULT_HOST: typing.Final = "127.0.0.1"
DEFAULT_PORT: typing.Final = 6379
DEFAULT_TIMEOUT: typing.Final = 5000


@dataclasses.dataclass(frozen=True, slots=True)
class ServerSpec:
    """Parameters of a single Redis server session.

    Instances are hashable; each distinct spec gets its own connection pool.
    ``timeout`` is in milliseconds.
    """

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    password: str | None = dataclasses.field(default=None, repr=False)
    db: int = 0
    timeout: int = DEFAULT_TIMEOUT

    @classmethod
    def from_url(cls, url: str, /) -> "typing_extensions.Self":
        """Create a server spec from a url.

        Urls take the shape ``redis://[:password@]host[:port][/db][?timeout=ms]``.
        """
        parsed = urllib.parse.urlparse(url)
        if not parsed.hostname or parsed.scheme != "redis":
            msg = "Only urls of scheme 'redis://host:port' are supported"
            raise ValueError(msg)

        path = parsed.path.strip("/")
        if path and not path.isdigit():
            msg = f"Database index must be an integer, got {path!r}"
            raise ValueError(msg)

        query = urllib.parse.parse_qs(parsed.query)
        timeout = int(query["timeout"][-1]) if "timeout" in query else DEFAULT_TIMEOUT

        return cls(
            host=parsed.hostname,
            port=parsed.port or DEFAULT_PORT,
            password=urllib.parse.unquote(parsed.password) if parsed.password else None,
            db=int(path) if path else 0,
            timeout=timeout,
        )

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


@dataclasses.dataclass(frozen=True, slots=True)
class PoolConfig:
    """Connection pool policy. Durations are in milliseconds."""

    max_active: int = 330
    eviction_interval: int = 30000
    test_on_borrow: bool = True
    test_while_idle: bool = True
    # None blocks until a connection is returned.
    max_wait: int | None = None
    # None keeps idle connections regardless of their age.
    min_evictable_idle: int | None = 1_800_000

    def __post_init__(self) -> None:
        if self.max_active < 1:
            msg = "max_active must be at least 1"
            raise ValueError(msg)
