"""
Identity client contract and session types.

Provides the abstractions for the external delegated-identity client,
the session model, and identity provider URL resolution.
"""

from .client import ClientHandle, IdentityClient
from .resolver import DEFAULT_LOCAL_PROVIDER_URL, DEFAULT_PROVIDER_URL, ProviderResolver
from .types import (
    ANONYMOUS,
    DEFAULT_MAX_TIME_TO_LIVE,
    Anonymous,
    Authenticated,
    Identity,
    LoginOptions,
    LoginRequest,
    LogoutOutcome,
    Principal,
    Session,
    SessionSnapshot,
    principal_text,
)

__all__ = [
    # Types
    "ANONYMOUS",
    "Anonymous",
    "Authenticated",
    "Identity",
    "Principal",
    "Session",
    "SessionSnapshot",
    "LoginOptions",
    "LoginRequest",
    "LogoutOutcome",
    "DEFAULT_MAX_TIME_TO_LIVE",
    # Client contract
    "ClientHandle",
    "IdentityClient",
    # Resolution
    "ProviderResolver",
    "DEFAULT_PROVIDER_URL",
    "DEFAULT_LOCAL_PROVIDER_URL",
    # Utilities
    "principal_text",
]
