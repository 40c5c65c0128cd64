"""
Identity provider URL resolution.

Maps build-time settings and the runtime environment to the URL of the
identity provider used for the login handshake.
"""

import logging
import os
from collections.abc import Mapping

logger = logging.getLogger(__name__)

# Runtime overrides, checked in order
RUNTIME_ENV_VARS = ("II_URL", "IDENTITY_PROVIDER")
LOCAL_ENV_VAR = "LOCAL_II_URL"

LOCAL_HOSTS = frozenset({"localhost", "127.0.0.1"})

# Identity provider deployed by a local development replica (port 4943)
DEFAULT_LOCAL_PROVIDER_URL = "http://localhost:4943?canisterId=rdmx6-jaaaa-aaaaa-aaadq-cai"
DEFAULT_PROVIDER_URL = "https://identity.ic0.app"


class ProviderResolver:
    """Resolves the identity provider URL.

    Precedence:
    1. Explicit build-time override (``provider_url``)
    2. Runtime environment override (``II_URL``, then ``IDENTITY_PROVIDER``)
    3. Local development fallback when the app is served from localhost
       (``LOCAL_II_URL``, then ``local_provider_url``)
    4. Production default
    """

    def __init__(
        self,
        provider_url: str | None = None,
        *,
        app_host: str | None = None,
        local_provider_url: str | None = None,
        environ: Mapping[str, str] | None = None,
    ):
        self.provider_url = provider_url
        self.app_host = app_host
        self.local_provider_url = local_provider_url or DEFAULT_LOCAL_PROVIDER_URL
        self._environ = os.environ if environ is None else environ

    def resolve(self) -> str:
        """Return the identity provider URL."""
        if self.provider_url:
            return self.provider_url

        for name in RUNTIME_ENV_VARS:
            value = self._environ.get(name)
            if value:
                logger.debug("Identity provider taken from %s", name)
                return value

        if self.app_host in LOCAL_HOSTS:
            return self._environ.get(LOCAL_ENV_VAR) or self.local_provider_url

        return DEFAULT_PROVIDER_URL
