"""Tests for the session manager."""

import logging
from typing import Any

import httpx
import pytest

from clinirec.auth.session import ROLE_KEY, TOKEN_KEY, USER_ID_KEY, SessionManager
from clinirec.core.exceptions import HTTPResponseError
from clinirec.models.auth import UserRole
from clinirec.storage.local_storage import InMemoryStorage
from clinirec.transport.gateway import TransportGateway


def login_ok(
    token: str = "tok-1", role: Any = "ROLE_PRACTITIONER", user_id: Any = 42
) -> dict[str, Any]:
    return {"token": token, "role": role, "userId": user_id}


class BrokenStorage(InMemoryStorage):
    """Storage whose writes fail like a full or read-only disk."""

    def set_item(self, key: str, value: str) -> None:
        raise OSError("disk full")


class TestLogin:
    """Test login outcomes."""

    @pytest.mark.asyncio
    async def test_success_sets_and_persists_session(
        self, fake_server: Any, session: SessionManager, storage: InMemoryStorage
    ) -> None:
        fake_server.add("POST", "/auth/login", json_body=login_ok())

        assert await session.login("doc@example.com", "pw") is True

        assert session.is_logged_in
        assert session.is_practitioner
        assert session.user_id == "42"
        assert session.username == "doc@example.com"
        assert storage.get_item(TOKEN_KEY) == "tok-1"
        assert storage.get_item(ROLE_KEY) == "ROLE_PRACTITIONER"
        assert storage.get_item(USER_ID_KEY) == "42"

    @pytest.mark.asyncio
    async def test_role_object_is_normalized(
        self, fake_server: Any, session: SessionManager
    ) -> None:
        fake_server.add("POST", "/auth/login", json_body=login_ok(role={"name": "ROLE_ADMIN"}))

        await session.login("admin@example.com", "pw")

        assert session.role is UserRole.ADMIN

    @pytest.mark.asyncio
    async def test_rejected_credentials_return_false(
        self, fake_server: Any, session: SessionManager, storage: InMemoryStorage
    ) -> None:
        fake_server.add("POST", "/auth/login", 401, {"message": "Bad credentials"})

        assert await session.login("doc@example.com", "wrong") is False

        assert not session.is_logged_in
        assert storage.get_item(TOKEN_KEY) is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body", [["not", "an", "object"], {"role": "ROLE_ADMIN"}, {"token": ""}]
    )
    async def test_unusable_response_returns_false(
        self, fake_server: Any, session: SessionManager, body: Any
    ) -> None:
        fake_server.add("POST", "/auth/login", json_body=body)

        assert await session.login("doc@example.com", "pw") is False
        assert session.token == ""

    @pytest.mark.asyncio
    async def test_unreachable_service_returns_false(
        self, fake_server: Any, session: SessionManager
    ) -> None:
        fake_server.fail("POST", "/auth/login", httpx.ConnectError("refused"))

        assert await session.login("doc@example.com", "pw") is False

    @pytest.mark.asyncio
    async def test_storage_failure_returns_false(
        self, fake_server: Any, gateway: TransportGateway, caplog: pytest.LogCaptureFixture
    ) -> None:
        fake_server.add("POST", "/auth/login", json_body=login_ok())
        manager = SessionManager(gateway, BrokenStorage())

        with caplog.at_level(logging.ERROR, logger="clinirec.auth.session"):
            assert await manager.login("doc@example.com", "pw") is False

        assert not manager.is_logged_in
        assert "Could not persist session" in caplog.text

    @pytest.mark.asyncio
    async def test_password_not_logged(
        self, fake_server: Any, session: SessionManager, caplog: pytest.LogCaptureFixture
    ) -> None:
        fake_server.add("POST", "/auth/login", 401)

        with caplog.at_level(logging.DEBUG):
            await session.login("doc@example.com", "hunter2")

        assert "hunter2" not in caplog.text


class TestLogout:
    """Test logout and listeners."""

    @pytest.mark.asyncio
    async def test_logout_clears_memory_and_storage(
        self, fake_server: Any, session: SessionManager, storage: InMemoryStorage
    ) -> None:
        fake_server.add("POST", "/auth/login", json_body=login_ok())
        await session.login("doc@example.com", "pw")

        session.logout()

        assert not session.is_logged_in
        assert session.role is UserRole.UNASSIGNED
        assert session.user_id is None
        for key in (TOKEN_KEY, ROLE_KEY, USER_ID_KEY):
            assert storage.get_item(key) is None

    @pytest.mark.asyncio
    async def test_listeners_run_once(self, fake_server: Any, session: SessionManager) -> None:
        calls: list[str] = []
        session.add_logout_listener(lambda: calls.append("logout"))
        fake_server.add("POST", "/auth/login", json_body=login_ok())
        await session.login("doc@example.com", "pw")

        session.logout()
        session.logout()

        assert calls == ["logout"]

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_break_logout(
        self,
        fake_server: Any,
        session: SessionManager,
        storage: InMemoryStorage,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        calls: list[str] = []

        def broken() -> None:
            raise RuntimeError("listener exploded")

        session.add_logout_listener(broken)
        session.add_logout_listener(lambda: calls.append("after"))
        fake_server.add("POST", "/auth/login", json_body=login_ok())
        await session.login("doc@example.com", "pw")

        with caplog.at_level(logging.ERROR, logger="clinirec.auth.session"):
            session.logout()

        assert not session.is_logged_in
        assert storage.get_item(TOKEN_KEY) is None
        assert calls == ["after"]
        assert "Logout listener" in caplog.text

    def test_logout_when_anonymous_is_noop(self, session: SessionManager) -> None:
        calls: list[str] = []
        session.add_logout_listener(lambda: calls.append("logout"))

        session.logout()

        assert calls == []
        assert not session.is_logged_in


class TestInitialize:
    """Test restoring a persisted session."""

    def test_restores_persisted_session(
        self, session: SessionManager, storage: InMemoryStorage
    ) -> None:
        storage.set_item(TOKEN_KEY, "persisted")
        storage.set_item(ROLE_KEY, "ROLE_ADMIN")
        storage.set_item(USER_ID_KEY, "7")

        session.initialize()

        assert session.is_logged_in
        assert session.is_admin
        assert session.user_id == "7"

    def test_unknown_persisted_role_becomes_unassigned(
        self, session: SessionManager, storage: InMemoryStorage
    ) -> None:
        storage.set_item(TOKEN_KEY, "persisted")
        storage.set_item(ROLE_KEY, "ROLE_JANITOR")

        session.initialize()

        assert session.is_logged_in
        assert session.role is UserRole.UNASSIGNED

    def test_missing_token_stays_anonymous(
        self, session: SessionManager, storage: InMemoryStorage
    ) -> None:
        storage.set_item(ROLE_KEY, "ROLE_ADMIN")

        session.initialize()

        assert not session.is_logged_in
        assert session.role is UserRole.UNASSIGNED

    def test_snapshot_tracks_token(self, session: SessionManager, storage: InMemoryStorage) -> None:
        assert session.snapshot().is_logged_in is False
        storage.set_item(TOKEN_KEY, "persisted")
        session.initialize()
        assert session.snapshot().is_logged_in is True


class TestUnauthorized:
    """Test lazy invalidation of rejected tokens."""

    @pytest.mark.asyncio
    async def test_bearer_token_sent(
        self, fake_server: Any, session: SessionManager, storage: InMemoryStorage
    ) -> None:
        storage.set_item(TOKEN_KEY, "persisted")
        session.initialize()
        fake_server.add("GET", "/patients", json_body=[])

        await session.gateway.get("/patients")

        request = fake_server.calls("GET", "/patients")[0]
        assert request.headers["Authorization"] == "Bearer persisted"

    @pytest.mark.asyncio
    async def test_rejected_token_ends_session(
        self, fake_server: Any, session: SessionManager, storage: InMemoryStorage
    ) -> None:
        storage.set_item(TOKEN_KEY, "expired")
        session.initialize()
        fake_server.add("GET", "/patients", 401)

        with pytest.raises(HTTPResponseError):
            await session.gateway.get("/patients")

        assert not session.is_logged_in
        assert storage.get_item(TOKEN_KEY) is None


class TestPractitionerProfile:
    """Test the practitioner profile check."""

    @pytest.mark.asyncio
    async def test_profile_present(self, fake_server: Any, session: SessionManager) -> None:
        fake_server.add("GET", "/practitioners/42/profile", json_body={"nationalId": "P1"})

        assert await session.check_practitioner_profile("42") is True

    @pytest.mark.asyncio
    async def test_profile_missing(self, session: SessionManager) -> None:
        assert await session.check_practitioner_profile("42") is False

    @pytest.mark.asyncio
    async def test_no_user_id(self, fake_server: Any, session: SessionManager) -> None:
        assert await session.check_practitioner_profile() is False
        assert fake_server.requests == []

    @pytest.mark.asyncio
    async def test_redirect_is_not_a_profile(
        self, fake_server: Any, session: SessionManager
    ) -> None:
        fake_server.add(
            "GET",
            "/practitioners/42/profile",
            handler=lambda request: httpx.Response(
                302, html="<html>moved</html>", headers={"Location": "/login"}
            ),
        )

        assert await session.check_practitioner_profile("42") is False

    @pytest.mark.asyncio
    async def test_accepted_is_not_a_profile(
        self, fake_server: Any, session: SessionManager
    ) -> None:
        fake_server.add("GET", "/practitioners/43/profile", 202, {"queued": True})

        assert await session.check_practitioner_profile("43") is False

    @pytest.mark.asyncio
    async def test_empty_profile_body(self, fake_server: Any, session: SessionManager) -> None:
        fake_server.add("GET", "/practitioners/42/profile", 200, {})

        assert await session.check_practitioner_profile("42") is False
