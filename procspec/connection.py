"""Connection providers.

The runner never opens connections itself; it asks a provider for a fresh DB-API
connection for every call and closes it afterwards. Providers are built explicitly
and handed to :class:`procspec.base.ProcSpec`.
"""

from typing import Any, Callable, Optional, Protocol, runtime_checkable
from urllib.parse import urlsplit

from procspec.exceptions import ConnectionError, ImproperConfigurationError, wrap_driver_errors
from procspec.utils.logging import get_logger

__all__ = ("ConnectionProvider", "ConnectionRegistry", "DBAPIConnectionProvider", "get_scheme")

logger = get_logger("connection")


@runtime_checkable
class ConnectionProvider(Protocol):
    def acquire(self, connection_string: str) -> Any:
        """Open a new connection for ``connection_string``.

        Raises:
            ConnectionError: If the connection cannot be opened.
        """
        ...  # pragma: no cover


def get_scheme(connection_string: str) -> str:
    """Get the lower-cased URL scheme of a connection string (``""`` when absent)."""
    if "://" not in connection_string:
        return ""
    return urlsplit(connection_string).scheme.lower()


class DBAPIConnectionProvider:
    """Opens connections with a DB-API 2.0 ``connect`` callable.

    Args:
        connect: The driver's ``connect`` function.
        **connect_kwargs: Extra keyword arguments passed on every call.
    """

    __slots__ = ("_connect", "_connect_kwargs")

    def __init__(self, connect: "Callable[..., Any]", **connect_kwargs: Any) -> None:
        self._connect = connect
        self._connect_kwargs = connect_kwargs

    def acquire(self, connection_string: str) -> Any:
        with wrap_driver_errors(ConnectionError, "Unable to open database connection"):
            return self._connect(connection_string, **self._connect_kwargs)


class ConnectionRegistry:
    """Dispatches connection strings to providers by URL scheme.

    Example::

        registry = ConnectionRegistry()
        registry.register("sqlite", SqliteConnectionProvider())
        registry.register("postgresql", DBAPIConnectionProvider(psycopg.connect))
    """

    __slots__ = ("_default", "_providers")

    def __init__(self, default: Optional[ConnectionProvider] = None) -> None:
        self._providers: dict[str, ConnectionProvider] = {}
        self._default = default

    def register(self, scheme: str, provider: ConnectionProvider) -> None:
        key = scheme.lower()
        if key in self._providers:
            logger.debug("Replacing connection provider for scheme %r", key)
        self._providers[key] = provider

    def unregister(self, scheme: str) -> None:
        self._providers.pop(scheme.lower(), None)

    def has_provider(self, scheme: str) -> bool:
        return scheme.lower() in self._providers

    @property
    def schemes(self) -> "list[str]":
        return sorted(self._providers)

    def get_provider(self, connection_string: str) -> ConnectionProvider:
        """Get the provider responsible for ``connection_string``.

        Raises:
            ImproperConfigurationError: If no provider handles the scheme and no default is set.
        """
        scheme = get_scheme(connection_string)
        provider = self._providers.get(scheme, self._default)
        if provider is None:
            available = ", ".join(self.schemes) or "none"
            msg = f"No connection provider registered for scheme {scheme!r}. Registered schemes: {available}"
            raise ImproperConfigurationError(msg)
        return provider

    def acquire(self, connection_string: str) -> Any:
        return self.get_provider(connection_string).acquire(connection_string)
