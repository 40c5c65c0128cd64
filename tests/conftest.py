"""
Shared test configuration and fixtures.

Provides in-memory test doubles for the external identity client so the
session controller can be exercised without a real delegation protocol.
"""

from __future__ import annotations

import asyncio
import threading
from typing import Any

import pytest

from delegated_session import ProviderResolver, SessionController
from delegated_session.identity import ClientHandle, IdentityClient, LoginRequest

TEST_PROVIDER_URL = "https://identity.test"


class FakePrincipal:
    def __init__(self, text: str):
        self.text = text

    def to_text(self) -> str:
        return self.text


class FakeIdentity:
    """Identity whose principal encodes to ``principal``."""

    def __init__(self, principal: str = "abc-def"):
        self.principal = principal

    def get_principal(self) -> FakePrincipal:
        return FakePrincipal(self.principal)


class FakeHandle(ClientHandle):
    """Scriptable client handle.

    login_outcome:
        "success" - marks the handle authenticated and calls on_success
        "error"   - calls on_error(login_error)
        "thread"  - calls on_success from a worker thread
        "pending" - records the request; the test fires the callback
    """

    def __init__(
        self,
        authenticated: bool = False,
        identity: Any = None,
        login_outcome: str = "success",
    ):
        self.authenticated = authenticated
        self.identity = identity if identity is not None else FakeIdentity()
        self.login_outcome = login_outcome
        self.login_error: Any = "user closed the window"
        self.login_raises: Exception | None = None
        self.check_error: Exception | None = None
        self.logout_error: Exception | None = None

        # Set to an asyncio.Event to hold is_authenticated() until released
        self.gate: asyncio.Event | None = None
        # When True, each is_authenticated() waits on its own future
        self.manual_checks = False
        self.pending_checks: list[asyncio.Future[bool]] = []

        self.check_calls = 0
        self.logout_calls = 0
        self.login_requests: list[LoginRequest] = []

    async def is_authenticated(self) -> bool:
        self.check_calls += 1
        if self.manual_checks:
            future: asyncio.Future[bool] = asyncio.get_running_loop().create_future()
            self.pending_checks.append(future)
            return await future
        if self.gate is not None:
            await self.gate.wait()
        if self.check_error is not None:
            raise self.check_error
        return self.authenticated

    def get_identity(self) -> Any:
        return self.identity

    async def login(self, request: LoginRequest) -> None:
        self.login_requests.append(request)
        if self.login_raises is not None:
            raise self.login_raises
        if self.login_outcome == "success":
            self.authenticated = True
            request.on_success()
        elif self.login_outcome == "error":
            request.on_error(self.login_error)
        elif self.login_outcome == "thread":
            self.authenticated = True
            worker = threading.Thread(target=request.on_success)
            worker.start()
            worker.join()

    async def logout(self) -> None:
        self.logout_calls += 1
        if self.logout_error is not None:
            raise self.logout_error
        self.authenticated = False


class FakeIdentityClient(IdentityClient):
    """Client factory returning ``handle`` or raising ``error``."""

    def __init__(self, handle: FakeHandle | None = None, error: Exception | None = None):
        self.handle = handle or FakeHandle()
        self.error = error
        self.gate: asyncio.Event | None = None
        self.create_calls = 0

    async def create(self) -> FakeHandle:
        self.create_calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.handle


async def wait_until(predicate, attempts: int = 100) -> None:
    """Yield to the event loop until ``predicate()`` holds."""
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


@pytest.fixture
def handle() -> FakeHandle:
    return FakeHandle()


@pytest.fixture
def client(handle: FakeHandle) -> FakeIdentityClient:
    return FakeIdentityClient(handle)


@pytest.fixture
def resolver() -> ProviderResolver:
    return ProviderResolver(TEST_PROVIDER_URL, environ={})


@pytest.fixture
def controller(client: FakeIdentityClient, resolver: ProviderResolver) -> SessionController:
    return SessionController(client, resolver)
