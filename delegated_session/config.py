"""
Settings for session management.

Reads ~/.delegated_session/settings.yaml (if present) plus a few
environment variables, and wires a ProviderResolver and SessionController
from them. Also carries the application-level config used to build
remote service stubs bound to the current identity.

```yaml
identity:
  provider_url: "https://id.example"          # build-time override
  local_provider_url: "http://localhost:4943?canisterId=..."
  app_host: "localhost"
  max_time_to_live_hours: 8
  single_flight_login: true
app:
  storage_gateway_url: "https://dev-blob.caffeine.ai"
  bucket_name: "default-bucket"
  project_id: "00000000-0000-0000-0000-000000000000"
  backend_canister_id: "ryjl3-tyaaa-aaaaa-aaaba-cai"
```
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeVar

import yaml

from .exceptions import ConfigurationError
from .identity.resolver import ProviderResolver
from .identity.types import DEFAULT_MAX_TIME_TO_LIVE

if TYPE_CHECKING:
    from .controller import SessionController
    from .identity.client import IdentityClient

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_SETTINGS_PATH = Path.home() / ".delegated_session" / "settings.yaml"

DEFAULT_STORAGE_GATEWAY_URL = "https://dev-blob.caffeine.ai"
DEFAULT_BUCKET_NAME = "default-bucket"
DEFAULT_PROJECT_ID = "00000000-0000-0000-0000-000000000000"

APP_HOST_ENV_VAR = "APP_HOST"
BACKEND_CANISTER_ENV_VAR = "CANISTER_ID_BACKEND"


@dataclass
class AppConfig:
    """Application-level service configuration."""

    storage_gateway_url: str = DEFAULT_STORAGE_GATEWAY_URL
    bucket_name: str = DEFAULT_BUCKET_NAME
    project_id: str = DEFAULT_PROJECT_ID
    backend_canister_id: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "storage_gateway_url": self.storage_gateway_url,
            "bucket_name": self.bucket_name,
            "project_id": self.project_id,
            "backend_canister_id": self.backend_canister_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AppConfig:
        """Deserialize from dictionary, filling defaults."""
        return cls(
            storage_gateway_url=str(data.get("storage_gateway_url") or DEFAULT_STORAGE_GATEWAY_URL),
            bucket_name=str(data.get("bucket_name") or DEFAULT_BUCKET_NAME),
            project_id=str(data.get("project_id") or DEFAULT_PROJECT_ID),
            backend_canister_id=str(data.get("backend_canister_id") or ""),
        )


@dataclass
class AgentOptions:
    """Options for the agent a service stub talks through."""

    host: str | None = None
    fetch_root_key: bool = False
    identity: Any = None


@dataclass
class CreateActorOptions:
    """Options passed to a service stub factory."""

    agent_options: AgentOptions = field(default_factory=AgentOptions)


@dataclass
class SessionSettings:
    """Resolved settings for a session controller."""

    provider_url: str | None = None
    local_provider_url: str | None = None
    app_host: str | None = None
    max_time_to_live: timedelta = DEFAULT_MAX_TIME_TO_LIVE
    single_flight_login: bool = True
    app: AppConfig = field(default_factory=AppConfig)
    environ: Mapping[str, str] = field(default_factory=lambda: os.environ, repr=False, compare=False)

    @classmethod
    def load(
        cls,
        config_path: Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> SessionSettings:
        """Load settings from YAML, then fill gaps from the environment.

        Args:
            config_path: Path to settings.yaml. Defaults to ~/.delegated_session/settings.yaml
            environ: Environment mapping (defaults to os.environ)

        Raises:
            ConfigurationError: If the file or one of its values is malformed
        """
        environ = os.environ if environ is None else environ
        config = _load_yaml(config_path or DEFAULT_SETTINGS_PATH)
        identity_config = _section(config, "identity")
        app_config = _section(config, "app")

        app = AppConfig.from_dict(app_config)
        if not app.backend_canister_id:
            app.backend_canister_id = environ.get(BACKEND_CANISTER_ENV_VAR, "")

        single_flight = identity_config.get("single_flight_login", True)
        if not isinstance(single_flight, bool):
            raise ConfigurationError("identity.single_flight_login", "must be true or false")

        return cls(
            provider_url=identity_config.get("provider_url") or None,
            local_provider_url=identity_config.get("local_provider_url") or None,
            app_host=identity_config.get("app_host") or environ.get(APP_HOST_ENV_VAR) or None,
            max_time_to_live=_parse_ttl(identity_config.get("max_time_to_live_hours")),
            single_flight_login=single_flight,
            app=app,
            environ=environ,
        )

    def build_resolver(self) -> ProviderResolver:
        """Create the identity provider resolver for these settings."""
        return ProviderResolver(
            self.provider_url,
            app_host=self.app_host,
            local_provider_url=self.local_provider_url,
            environ=self.environ,
        )

    def build_controller(self, client: IdentityClient) -> SessionController:
        """Create a session controller for ``client``."""
        from .controller import SessionController

        return SessionController(
            client,
            self.build_resolver(),
            max_time_to_live=self.max_time_to_live,
            single_flight_login=self.single_flight_login,
        )


def load_config(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> AppConfig:
    """Load the application-level config."""
    return SessionSettings.load(config_path, environ).app


def create_actor_with_config(
    create_actor: Callable[[str, CreateActorOptions | None], T],
    options: CreateActorOptions | None = None,
    config: AppConfig | None = None,
) -> T:
    """Create a backend service stub using the configured canister id.

    Args:
        create_actor: Stub factory taking (canister_id, options)
        options: Agent options, e.g. the identity to sign calls with
        config: App config (loaded from settings if not given)

    Raises:
        ConfigurationError: If no backend canister id is configured
    """
    config = config or load_config()
    if not config.backend_canister_id:
        raise ConfigurationError(
            "app.backend_canister_id", f"not set (configure it or export {BACKEND_CANISTER_ENV_VAR})"
        )
    return create_actor(config.backend_canister_id, options)


def _load_yaml(config_path: Path) -> dict[str, Any]:
    """Load configuration from YAML file. A missing file means defaults."""
    if not config_path.exists():
        logger.debug("No settings file at %s, using defaults", config_path)
        return {}

    try:
        data = yaml.safe_load(config_path.read_text())
    except yaml.YAMLError as e:
        raise ConfigurationError(str(config_path), f"invalid YAML: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(str(config_path), "top level must be a mapping")
    return data


def _section(config: dict[str, Any], name: str) -> dict[str, Any]:
    section = config.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigurationError(name, "must be a mapping")
    return section


def _parse_ttl(hours: Any) -> timedelta:
    if hours is None:
        return DEFAULT_MAX_TIME_TO_LIVE
    if isinstance(hours, bool) or not isinstance(hours, int | float) or hours <= 0:
        raise ConfigurationError("identity.max_time_to_live_hours", "must be a positive number")
    return timedelta(hours=hours)
