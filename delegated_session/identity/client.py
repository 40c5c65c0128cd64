"""
Identity client abstract interface.

Defines the contract the external delegated-identity client must
implement. The delegation handshake itself is opaque to this package.
"""

from abc import ABC, abstractmethod

from .types import Identity, LoginRequest


class ClientHandle(ABC):
    """A live identity client.

    Created once by ``IdentityClient.create()`` and then shared by
    every session operation. Individual calls are expected to be
    non-blocking; no mutual exclusion is applied around them.
    """

    @abstractmethod
    async def is_authenticated(self) -> bool:
        """Check whether the client currently holds a valid delegation."""
        ...

    @abstractmethod
    def get_identity(self) -> Identity:
        """Return the current identity.

        Synchronous; only meaningful once ``is_authenticated()`` is true.
        """
        ...

    @abstractmethod
    async def login(self, request: LoginRequest) -> None:
        """Start the delegation handshake.

        The handshake reports its outcome by invoking exactly one of
        ``request.on_success()`` or ``request.on_error(error)``, exactly
        once. Those callbacks may fire during this call, after it
        returns, or from another thread.

        Raises:
            Exception: If the handshake could not be started at all
        """
        ...

    @abstractmethod
    async def logout(self) -> None:
        """Drop the delegation. Best effort."""
        ...


class IdentityClient(ABC):
    """Factory for client handles."""

    @abstractmethod
    async def create(self) -> ClientHandle:
        """Create the client handle.

        Raises:
            Exception: If the client could not be created
        """
        ...
