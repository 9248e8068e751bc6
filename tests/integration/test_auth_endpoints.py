"""
Integration tests for login, logout and session identity.
"""

import pytest
from sqlalchemy import select

from download_portal.core.config import settings
from download_portal.core.errors import DuplicateUsernameError
from download_portal.core.rate_limit import limiter
from download_portal.models import User, UserSession
from download_portal.services.auth import AuthService

LOGIN_URL = "/api/auth/login"
ME_URL = "/api/auth/me"
LOGOUT_URL = "/api/auth/logout"


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_sets_httponly_session_cookie(self, client, test_user_id, test_user_data):
        response = await client.post(LOGIN_URL, json=test_user_data)

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Login successful"}

        set_cookie = response.headers["set-cookie"]
        assert set_cookie.startswith(f"{settings.SESSION_COOKIE_NAME}=")
        assert "HttpOnly" in set_cookie
        assert "samesite=lax" in set_cookie.lower()
        # Browser-session cookie
        assert "Max-Age" not in set_cookie

    @pytest.mark.asyncio
    async def test_login_stores_only_session_digest(
        self, client, test_user_id, test_user_data, db_session
    ):
        await client.post(LOGIN_URL, json=test_user_data)

        sessions = (await db_session.execute(select(UserSession))).scalars().all()
        assert len(sessions) == 1
        assert sessions[0].user_id == test_user_id
        assert len(sessions[0].session_hash) == 64
        assert sessions[0].revoked_at is None

    @pytest.mark.asyncio
    async def test_wrong_password_and_unknown_user_look_identical(
        self, client, test_user_id, test_user_data
    ):
        wrong_password = await client.post(
            LOGIN_URL, json={**test_user_data, "password": "nope"}
        )
        unknown_user = await client.post(
            LOGIN_URL, json={**test_user_data, "username": "nobody"}
        )

        assert wrong_password.status_code == 401
        assert unknown_user.status_code == 401
        assert wrong_password.json()["message"] == unknown_user.json()["message"]
        assert wrong_password.json()["code"] == unknown_user.json()["code"] == "AUTH_1001"
        assert "set-cookie" not in wrong_password.headers

    @pytest.mark.asyncio
    async def test_username_is_case_sensitive(self, client, test_user_id, test_user_data):
        response = await client.post(
            LOGIN_URL, json={**test_user_data, "username": test_user_data["username"].upper()}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_corrupt_stored_hash_is_internal_error(
        self, client, test_user_id, test_user_data, db_session
    ):
        user = await db_session.get(User, test_user_id)
        user.password_hash = "corrupted"
        await db_session.commit()

        response = await client.post(LOGIN_URL, json=test_user_data)

        assert response.status_code == 500
        assert response.json()["code"] == "SYS_6001"
        assert response.json()["message"] == "Internal error"

    @pytest.mark.asyncio
    async def test_empty_credentials_are_rejected(self, client):
        response = await client.post(LOGIN_URL, json={"username": "", "password": ""})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_login_is_rate_limited(self, client, test_user_id, test_user_data):
        limiter.reset()
        limiter.enabled = True
        try:
            statuses = [
                (
                    await client.post(LOGIN_URL, json={**test_user_data, "password": "nope"})
                ).status_code
                for _ in range(11)
            ]
        finally:
            limiter.enabled = False
            limiter.reset()

        assert statuses[:10] == [401] * 10
        assert statuses[10] == 429


class TestSessionIdentity:
    @pytest.mark.asyncio
    async def test_me_returns_identity(self, logged_in_client, test_user_id, test_user_data):
        response = await logged_in_client.get(ME_URL)

        assert response.status_code == 200
        assert response.json() == {"id": test_user_id, "username": test_user_data["username"]}

    @pytest.mark.asyncio
    async def test_me_without_cookie_is_unauthorized(self, client):
        response = await client.get(ME_URL)

        assert response.status_code == 401
        assert response.json()["code"] == "AUTH_1010"

    @pytest.mark.asyncio
    async def test_forged_cookie_is_unauthorized(self, client):
        client.cookies.set(settings.SESSION_COOKIE_NAME, "eyJhbGciOiJIUzI1NiJ9.e30.forged")
        response = await client.get(ME_URL)
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_api_responses_are_not_cacheable(self, logged_in_client):
        response = await logged_in_client.get(ME_URL)
        assert "no-store" in response.headers["cache-control"]
        assert response.headers["x-content-type-options"] == "nosniff"


class TestLogout:
    @pytest.mark.asyncio
    async def test_logout_clears_cookie_and_revokes_session(self, logged_in_client):
        session_cookie = logged_in_client.cookies.get(settings.SESSION_COOKIE_NAME)

        response = await logged_in_client.post(LOGOUT_URL)

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Logged out"}
        assert (await logged_in_client.get(ME_URL)).status_code == 401

        # Replaying the old cookie value must not bring the session back
        logged_in_client.cookies.set(settings.SESSION_COOKIE_NAME, session_cookie)
        assert (await logged_in_client.get(ME_URL)).status_code == 401

    @pytest.mark.asyncio
    async def test_logout_without_session_succeeds(self, client):
        response = await client.post(LOGOUT_URL)
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_other_sessions_survive_logout(self, client, test_user_id, test_user_data):
        await client.post(LOGIN_URL, json=test_user_data)
        first_cookie = client.cookies.get(settings.SESSION_COOKIE_NAME)
        client.cookies.clear()

        await client.post(LOGIN_URL, json=test_user_data)
        await client.post(LOGOUT_URL)

        client.cookies.set(settings.SESSION_COOKIE_NAME, first_cookie)
        assert (await client.get(ME_URL)).status_code == 200


class TestCreateUser:
    @pytest.mark.asyncio
    async def test_duplicate_username_is_rejected(self, db_session, test_user_id, test_user_data):
        with pytest.raises(DuplicateUsernameError):
            await AuthService(db_session, settings).create_user(
                test_user_data["username"], "another password"
            )

    @pytest.mark.asyncio
    async def test_password_is_stored_hashed(self, db_session, test_user_id, test_user_data):
        user = await db_session.get(User, test_user_id)
        assert user.password_hash != test_user_data["password"]
        assert user.password_hash.startswith("$argon2id$")
