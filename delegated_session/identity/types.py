"""
Identity and session types.

Defines the opaque credential protocol issued by the external
identity client, the session model the controller maintains, and
the option/result records exchanged with consumers.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Protocol

# Maximum delegation lifetime requested from the identity provider.
DEFAULT_MAX_TIME_TO_LIVE = timedelta(hours=8)


class Principal(Protocol):
    """Stable user identifier carried by an identity."""

    def to_text(self) -> str: ...


class Identity(Protocol):
    """Opaque credential object issued by the delegation protocol.

    Some identities (anonymous ones, for example) cannot produce a
    principal; ``principal_text`` tolerates that.
    """

    def get_principal(self) -> Principal: ...


def principal_text(identity: Any) -> str | None:
    """Textual encoding of an identity's principal, or None."""
    if identity is None:
        return None
    get_principal = getattr(identity, "get_principal", None)
    if not callable(get_principal):
        return None
    try:
        principal = get_principal()
        if principal is None:
            return None
        return str(principal.to_text())
    except Exception:
        return None


@dataclass(frozen=True)
class Anonymous:
    """No authenticated user."""


ANONYMOUS = Anonymous()


@dataclass(frozen=True)
class Authenticated:
    """A signed-in user holding ``identity``."""

    identity: Any


Session = Anonymous | Authenticated


@dataclass(frozen=True)
class SessionSnapshot:
    """Consistent, immutable view of the session state.

    This is what every consumer observes. A new snapshot is produced
    on each state transition; snapshots are never mutated in place.
    """

    identity: Any = None
    is_authenticated: bool = False
    is_initializing: bool = True
    error: str | None = None
    principal_text: str | None = None

    @classmethod
    def build(cls, session: Session, is_initializing: bool, error: str | None) -> SessionSnapshot:
        """Derive a snapshot from the raw controller state."""
        if isinstance(session, Authenticated):
            return cls(
                identity=session.identity,
                is_authenticated=True,
                is_initializing=is_initializing,
                error=error,
                principal_text=principal_text(session.identity),
            )
        return cls(is_initializing=is_initializing, error=error)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary (identity intentionally excluded)."""
        return {
            "is_authenticated": self.is_authenticated,
            "is_initializing": self.is_initializing,
            "error": self.error,
            "principal_text": self.principal_text,
        }


@dataclass
class LoginOptions:
    """Caller options for a login attempt.

    ``on_success``/``on_error`` are not handed to the identity client;
    the controller intercepts the handshake outcome and calls them after
    it has updated the session.
    """

    identity_provider: str | None = None
    max_time_to_live: timedelta | None = None
    on_success: Callable[[], Any] | None = None
    on_error: Callable[[str], Any] | None = None
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class LoginRequest:
    """Handshake request passed to ``ClientHandle.login``.

    The client must invoke exactly one of ``on_success`` or ``on_error``,
    exactly once.
    """

    identity_provider: str
    max_time_to_live: timedelta
    on_success: Callable[[], None]
    on_error: Callable[[Any], None]
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def max_time_to_live_ns(self) -> int:
        """Lifetime in nanoseconds, the unit delegation protocols expect."""
        return (self.max_time_to_live // timedelta(microseconds=1)) * 1_000


@dataclass(frozen=True)
class LogoutOutcome:
    """Result of a logout: remote call result and local state result.

    The local session is always cleared when a handle exists, even if
    the remote call failed.
    """

    remote_called: bool
    local_cleared: bool
    remote_error: Exception | None = None

    @property
    def remote_ok(self) -> bool:
        return self.remote_called and self.remote_error is None
