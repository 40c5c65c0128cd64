"""
Delegated Session

Single, consistent view of "who is the current user, and are they signed
in" for client applications that authenticate through an external
delegated-identity client.

Provides:
- SessionController: owns the identity client handle and the session state machine
- SessionAccessor: injected, read/operate view for independent consumers
- ProviderResolver: identity provider URL lookup
- YAML/environment settings and service stub wiring

Usage:

    >>> from delegated_session import SessionAccessor, SessionSettings
    >>> settings = SessionSettings.load()
    >>> async with settings.build_controller(my_identity_client) as controller:
    ...     session = SessionAccessor(controller)
    ...     if not session.is_authenticated:
    ...         await session.login()
    ...     print(session.principal_text)
"""

from .accessor import SessionAccessor
from .config import (
    AgentOptions,
    AppConfig,
    CreateActorOptions,
    SessionSettings,
    create_actor_with_config,
    load_config,
)
from .controller import SessionController
from .exceptions import (
    ClientCreationError,
    ClientNotReadyError,
    ConfigurationError,
    LoginError,
    LogoutError,
    SessionCheckError,
    SessionControllerMissingError,
    SessionError,
    describe_error,
)
from .identity import (
    ANONYMOUS,
    Anonymous,
    Authenticated,
    ClientHandle,
    IdentityClient,
    LoginOptions,
    LoginRequest,
    LogoutOutcome,
    ProviderResolver,
    SessionSnapshot,
)
from .logging_utils import configure_structured_logging

__all__ = [
    # Core
    "SessionController",
    "SessionAccessor",
    # Identity client contract
    "IdentityClient",
    "ClientHandle",
    "ProviderResolver",
    # Session types
    "ANONYMOUS",
    "Anonymous",
    "Authenticated",
    "SessionSnapshot",
    "LoginOptions",
    "LoginRequest",
    "LogoutOutcome",
    # Config
    "SessionSettings",
    "AppConfig",
    "AgentOptions",
    "CreateActorOptions",
    "load_config",
    "create_actor_with_config",
    # Logging
    "configure_structured_logging",
    # Exceptions
    "SessionError",
    "ClientCreationError",
    "ClientNotReadyError",
    "SessionCheckError",
    "LoginError",
    "LogoutError",
    "SessionControllerMissingError",
    "ConfigurationError",
    "describe_error",
]

__version__ = "0.1.0"
