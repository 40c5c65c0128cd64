"""
Session lifecycle controller.

Owns the single identity client handle for its lifetime, drives its
asynchronous initialization, mediates login/logout/refresh against it,
and publishes an immutable SessionSnapshot to any number of consumers.

All operations run on one event loop. No lock is held around the shared
handle: overlapping session reads are last-completion-wins. After
``close()`` every pending continuation discards its result, while the
underlying external call may keep running unobserved.

Usage:
    async with SessionController(client, ProviderResolver()) as controller:
        if not controller.is_authenticated:
            await controller.login()
        print(controller.principal_text)
"""

from __future__ import annotations

import asyncio
import inspect
import uuid
from collections.abc import Callable
from datetime import timedelta
from typing import Any

from .exceptions import (
    ClientCreationError,
    ClientNotReadyError,
    LoginError,
    LogoutError,
    SessionCheckError,
    SessionError,
    describe_error,
)
from .identity.client import ClientHandle, IdentityClient
from .identity.resolver import ProviderResolver
from .identity.types import (
    ANONYMOUS,
    DEFAULT_MAX_TIME_TO_LIVE,
    Authenticated,
    LoginOptions,
    LoginRequest,
    LogoutOutcome,
    Session,
    SessionSnapshot,
)
from .logging_utils import SessionLoggerAdapter, get_session_logger

logger = get_session_logger("controller")

SessionListener = Callable[[SessionSnapshot], Any]

_SUCCESS = object()


def _cancel_requested() -> bool:
    """True if the running task itself is being cancelled."""
    task = asyncio.current_task()
    return task is not None and task.cancelling() > 0


class SessionController:
    """Authoritative owner of the current session.

    The controller is created when its owning scope starts and closed
    when that scope ends. ``initialize()`` must run once before login,
    logout or refresh can do anything useful; until then those calls are
    no-ops (login records a "not ready" error).

    Example:
        >>> controller = SessionController(client)
        >>> await controller.initialize()
        >>> controller.snapshot.is_initializing
        False
        >>> await controller.login(LoginOptions(identity_provider="https://id.example"))
        >>> controller.close()
    """

    def __init__(
        self,
        client: IdentityClient,
        resolver: ProviderResolver | None = None,
        *,
        max_time_to_live: timedelta = DEFAULT_MAX_TIME_TO_LIVE,
        single_flight_login: bool = True,
    ) -> None:
        """Initialize the controller.

        Args:
            client: Factory for the external identity client handle
            resolver: Identity provider URL resolver (defaults to environment lookup)
            max_time_to_live: Delegation lifetime requested on login
            single_flight_login: Join an in-flight login instead of starting
                a second handshake
        """
        self._client = client
        self._resolver = resolver or ProviderResolver()
        self.max_time_to_live = max_time_to_live
        self.single_flight_login = single_flight_login

        self._handle: ClientHandle | None = None
        self._session: Session = ANONYMOUS
        self._error: str | None = None
        self._last_failure: SessionError | None = None
        self._initializing = True
        self._closed = False

        self._init_task: asyncio.Task[None] | None = None
        self._login_task: asyncio.Task[bool] | None = None
        self._pending_outcomes: set[asyncio.Future[Any]] = set()
        self._listeners: list[SessionListener] = []
        self._snapshot = SessionSnapshot.build(self._session, self._initializing, self._error)

        self.controller_id = uuid.uuid4().hex[:12]
        self._log = SessionLoggerAdapter(logger, {"controller_id": self.controller_id})

    # =========================================================================
    # State access
    # =========================================================================

    @property
    def snapshot(self) -> SessionSnapshot:
        """Current session snapshot."""
        return self._snapshot

    @property
    def session(self) -> Session:
        return self._session

    @property
    def identity(self) -> Any:
        return self._snapshot.identity

    @property
    def is_authenticated(self) -> bool:
        return self._snapshot.is_authenticated

    @property
    def is_initializing(self) -> bool:
        return self._snapshot.is_initializing

    @property
    def error(self) -> str | None:
        return self._snapshot.error

    @property
    def principal_text(self) -> str | None:
        return self._snapshot.principal_text

    @property
    def last_failure(self) -> SessionError | None:
        """Typed counterpart of ``error``."""
        return self._last_failure

    @property
    def client_handle(self) -> ClientHandle | None:
        return self._handle

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener called with each new snapshot.

        Returns:
            A callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # =========================================================================
    # Operations
    # =========================================================================

    async def initialize(self) -> None:
        """Create the client handle and read any existing session.

        Runs once. Later calls wait for the first run to finish and never
        create a second handle. ``is_initializing`` is False afterwards,
        whether or not initialization succeeded. Cancelling one caller does
        not cancel the shared run.
        """
        if self._init_task is None:
            self._init_task = asyncio.get_running_loop().create_task(self._initialize())
        await asyncio.shield(self._init_task)

    async def _initialize(self) -> None:
        self._commit(clear_error=True)
        try:
            try:
                handle = await self._client.create()
            except Exception as exc:
                if self._closed:
                    return
                failure = ClientCreationError(describe_error(exc), cause=exc)
                self._log.error("Identity client creation failed: %s", failure.message)
                self._commit(failure=failure)
                return

            if self._closed:
                return
            self._handle = handle
            self._log.debug("Identity client created")
            await self.read_session(handle)
        finally:
            self._commit(initialized=True)

    async def read_session(self, handle: ClientHandle) -> None:
        """Re-evaluate the session from ``handle``.

        Fails closed: if the client cannot answer, the session becomes
        anonymous and the failure is recorded in ``error``.
        """
        try:
            authed = await handle.is_authenticated()
            if self._closed:
                return
            session: Session = Authenticated(handle.get_identity()) if authed else ANONYMOUS
        except Exception as exc:
            if self._closed:
                return
            failure = SessionCheckError(describe_error(exc), cause=exc)
            self._log.warning("Session check failed, treating as anonymous: %s", failure.message)
            self._commit(session=ANONYMOUS, failure=failure)
            return

        self._commit(session=session)
        self._log.debug(
            "Session read", extra={"authenticated": authed, "principal": self.principal_text}
        )

    async def login(self, options: LoginOptions | None = None) -> None:
        """Run the delegation handshake and then re-read the session.

        Returns normally (with ``error`` set) if the client is not ready.

        Raises:
            LoginError: If the handshake reported an error
        """
        if self._closed:
            self._log.debug("Login ignored, controller closed")
            return

        options = options or LoginOptions()
        if not self.single_flight_login:
            await self._login(options)
            return

        if self._login_task is None or self._login_task.done():
            self._login_task = asyncio.get_running_loop().create_task(self._login(options))
            await asyncio.shield(self._login_task)
            return

        # Join the pending handshake; this caller's callbacks run on its outcome.
        self._log.info("Login already in progress, waiting for it")
        self._commit(clear_error=True)
        try:
            completed = await asyncio.shield(self._login_task)
        except LoginError as failure:
            await self._run_callback(options.on_error, failure.message)
            raise
        if completed:
            await self._run_callback(options.on_success)

    async def _login(self, options: LoginOptions) -> bool:
        """Run one handshake. True if it completed and the session was re-read."""
        self._commit(clear_error=True)
        handle = self._handle
        if handle is None:
            self._log.warning("Login requested before the identity client was ready")
            self._commit(failure=ClientNotReadyError("login"))
            return False

        if options.identity_provider is not None:
            identity_provider = options.identity_provider
        else:
            identity_provider = self._resolver.resolve()
        loop = asyncio.get_running_loop()
        outcome: asyncio.Future[Any] = loop.create_future()

        def settle(result: Any) -> None:
            if not outcome.done():
                outcome.set_result(result)

        # The client may report from any thread; settle on the loop.
        def on_success() -> None:
            if not loop.is_closed():
                loop.call_soon_threadsafe(settle, _SUCCESS)

        def on_error(error: Any) -> None:
            if not loop.is_closed():
                loop.call_soon_threadsafe(settle, error)

        request = LoginRequest(
            identity_provider=identity_provider,
            max_time_to_live=(
                options.max_time_to_live
                if options.max_time_to_live is not None
                else self.max_time_to_live
            ),
            on_success=on_success,
            on_error=on_error,
            extra=dict(options.extra),
        )

        self._pending_outcomes.add(outcome)
        self._log.info("Starting login handshake", extra={"identity_provider": identity_provider})
        try:
            try:
                await handle.login(request)
            except Exception as exc:
                settle(exc)
            result = await outcome
        except asyncio.CancelledError:
            if self._closed and not _cancel_requested():
                self._log.debug("Login outcome dropped after close")
                return False
            raise
        finally:
            self._pending_outcomes.discard(outcome)

        if self._closed:
            return False

        if result is not _SUCCESS:
            failure = LoginError(describe_error(result), identity_provider, cause=result)
            self._log.warning("Login handshake failed: %s", failure.message)
            self._commit(failure=failure)
            await self._run_callback(options.on_error, failure.message)
            raise failure

        await self.read_session(handle)
        if self._closed:
            return False
        self._log.info("Login completed", extra={"principal": self.principal_text})
        await self._run_callback(options.on_success)
        return True

    async def logout(self) -> LogoutOutcome:
        """Log out remotely and clear the local session.

        The local session is cleared even if the remote call fails; the
        remote failure is reported in the outcome and in ``error``. Like
        login, this is a no-op once the controller is closed.
        """
        if self._closed:
            self._log.debug("Logout ignored, controller closed")
            return LogoutOutcome(remote_called=False, local_cleared=False)

        self._commit(clear_error=True)
        handle = self._handle
        if handle is None:
            return LogoutOutcome(remote_called=False, local_cleared=False)

        remote_error: LogoutError | None = None
        try:
            await handle.logout()
        except Exception as exc:
            remote_error = LogoutError(describe_error(exc), cause=exc)
            self._log.warning(
                "Remote logout failed, clearing local session anyway: %s", remote_error.message
            )
        finally:
            local_cleared = not self._closed
            self._commit(session=ANONYMOUS, failure=remote_error)

        if local_cleared:
            self._log.info("Logged out")
        return LogoutOutcome(remote_called=True, local_cleared=local_cleared, remote_error=remote_error)

    async def refresh(self) -> None:
        """Re-check the session. No-op before a handle exists."""
        handle = self._handle
        if handle is None:
            return
        await self.read_session(handle)

    def close(self) -> None:
        """Stop accepting state writes.

        Pending login handshakes are abandoned; their late outcome is
        dropped. The external client is left as is.
        """
        if self._closed:
            return
        self._closed = True
        for outcome in list(self._pending_outcomes):
            outcome.cancel()
        self._pending_outcomes.clear()
        self._listeners.clear()
        self._log.debug("Session controller closed")

    async def __aenter__(self) -> SessionController:
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        self.close()

    # =========================================================================
    # Internals
    # =========================================================================

    def _commit(
        self,
        *,
        session: Session | None = None,
        failure: SessionError | None = None,
        clear_error: bool = False,
        initialized: bool = False,
    ) -> None:
        """Apply a state change and notify listeners. Ignored after close."""
        if self._closed:
            return
        if session is not None:
            self._session = session
        if clear_error:
            self._error = None
            self._last_failure = None
        if failure is not None:
            self._error = failure.message
            self._last_failure = failure
        if initialized:
            self._initializing = False

        snapshot = SessionSnapshot.build(self._session, self._initializing, self._error)
        if snapshot == self._snapshot:
            return
        self._snapshot = snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                self._log.exception("Session listener raised")

    async def _run_callback(self, callback: Callable[..., Any] | None, *args: Any) -> None:
        if callback is None:
            return
        try:
            result = callback(*args)
            if inspect.isawaitable(result):
                await result
        except Exception:
            self._log.exception("Login callback raised")
