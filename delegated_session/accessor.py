"""
Consumer-facing view of a session controller.

Consumers receive a SessionAccessor explicitly (dependency injection)
instead of looking up an ambient controller. Building one without a
controller, or using one after its controller was closed, is a wiring
error and fails immediately.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from .config import AgentOptions, CreateActorOptions
from .controller import SessionController, SessionListener
from .exceptions import SessionControllerMissingError
from .identity.types import LoginOptions, LogoutOutcome, SessionSnapshot


class SessionAccessor:
    """Read the shared snapshot and invoke session operations.

    Many accessors may wrap one controller; none of them re-runs
    initialization.
    """

    def __init__(self, controller: SessionController) -> None:
        if controller is None:
            raise SessionControllerMissingError()
        if not isinstance(controller, SessionController):
            raise SessionControllerMissingError(
                f"expected SessionController, got {type(controller).__name__}"
            )
        self._controller = controller
        self._require_active()

    def _require_active(self) -> SessionController:
        if self._controller.closed:
            raise SessionControllerMissingError("controller is closed")
        return self._controller

    def snapshot(self) -> SessionSnapshot:
        return self._require_active().snapshot

    @property
    def identity(self) -> Any:
        return self.snapshot().identity

    @property
    def is_authenticated(self) -> bool:
        return self.snapshot().is_authenticated

    @property
    def is_initializing(self) -> bool:
        return self.snapshot().is_initializing

    @property
    def error(self) -> str | None:
        return self.snapshot().error

    @property
    def principal_text(self) -> str | None:
        return self.snapshot().principal_text

    async def login(self, options: LoginOptions | None = None) -> None:
        await self._require_active().login(options)

    async def logout(self) -> LogoutOutcome:
        return await self._require_active().logout()

    async def refresh(self) -> None:
        await self._require_active().refresh()

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        return self._require_active().subscribe(listener)

    def actor_options(self, host: str | None = None, fetch_root_key: bool = False) -> CreateActorOptions:
        """Stub options that sign calls as the current user (anonymous if none)."""
        return CreateActorOptions(
            agent_options=AgentOptions(host=host, fetch_root_key=fetch_root_key, identity=self.identity)
        )
