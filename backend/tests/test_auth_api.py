"""
Tests for registration, login, logout and request authentication.

Tests cover:
- Register / login / me round trip
- Duplicate registration
- Identical failures for unknown email and wrong password
- CSRF enforcement on cookie-authenticated requests
- Session rotation and logout idempotence
- Token transport with bearer and cookie credentials
- Expired credentials and cookie flags
- Account deletion
"""

from datetime import timedelta

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select

from conftest import PASSWORD, fetch_csrf, login, register
from jobtracker.auth import SESSION_COOKIE, TOKEN_COOKIE, SessionTokenIssuer, get_issuer
from jobtracker.config import Settings
from jobtracker.main import app
from jobtracker.models import Job, User
from jobtracker.services.tokens import create_token


async def count_users(session_factory) -> int:
    async with session_factory() as session:
        result = await session.execute(select(func.count(User.id)))
        return result.scalar()


class TestRegister:
    """Test POST /api/auth/register."""

    @pytest.mark.asyncio
    async def test_register_then_login_then_me(self, client):
        response = await register(client)
        assert response.status_code == 201
        body = response.json()
        assert body["email"] == "alice@example.com"
        assert body["name"] == "Alice Example"
        assert body["role"] == "user"
        assert "password" not in body

        response = await login(client)
        assert response.status_code == 200
        assert response.json()["csrfToken"]

        me = await client.get("/api/auth/me")
        assert me.status_code == 200
        assert me.json()["email"] == "alice@example.com"
        assert "password_hash" not in me.json()

    @pytest.mark.asyncio
    async def test_duplicate_email(self, client, session_factory):
        await register(client)
        response = await register(client, display_name="Someone Else")
        assert response.status_code == 400
        assert response.json() == {"detail": "Email already registered"}
        assert await count_users(session_factory) == 1

    @pytest.mark.asyncio
    async def test_weak_password_is_validation_error(self, client, session_factory):
        response = await register(client, password="short")
        assert response.status_code == 400
        body = response.json()
        assert body["detail"] == "Validation failed"
        assert any(error["field"] == "password" for error in body["errors"])
        assert await count_users(session_factory) == 0

    @pytest.mark.asyncio
    async def test_invalid_email(self, client):
        response = await register(client, email="not-an-email")
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_mixed_case_domain_logs_in_with_any_spelling(self, client):
        response = await register(client, email="alice@Example.COM")
        assert response.status_code == 201
        assert response.json()["email"] == "alice@example.com"

        assert (await login(client, email="alice@Example.COM")).status_code == 200
        assert (await login(client, email="alice@example.com")).status_code == 200

        duplicate = await register(client, email="alice@EXAMPLE.com")
        assert duplicate.status_code == 400
        assert duplicate.json() == {"detail": "Email already registered"}


class TestLogin:
    """Test POST /api/auth/login."""

    @pytest.mark.asyncio
    async def test_unknown_email_and_wrong_password_look_the_same(self, client):
        await register(client)

        wrong_password = await login(client, password="Wrong12345")
        unknown_email = await login(client, email="nobody@example.com")

        assert wrong_password.status_code == unknown_email.status_code == 401
        assert wrong_password.json() == unknown_email.json() == {"detail": "Invalid credentials"}
        assert SESSION_COOKIE in client.cookies
        me = await client.get("/api/auth/me")
        assert me.status_code == 401

    @pytest.mark.asyncio
    async def test_login_requires_csrf_token(self, client):
        await register(client)
        response = await client.post(
            "/api/auth/login", json={"email": "alice@example.com", "password": PASSWORD}
        )
        assert response.status_code == 403
        assert response.json() == {"detail": "Invalid CSRF token"}

    @pytest.mark.asyncio
    async def test_login_rotates_session_and_csrf(self, client, store):
        await register(client)
        anonymous_csrf = await fetch_csrf(client)
        anonymous_sid = client.cookies.get(SESSION_COOKIE)

        response = await client.post(
            "/api/auth/login",
            json={"email": "alice@example.com", "password": PASSWORD},
            headers={"X-CSRF-Token": anonymous_csrf},
        )
        assert response.status_code == 200
        assert response.json()["csrfToken"] != anonymous_csrf
        assert client.cookies.get(SESSION_COOKIE) != anonymous_sid
        assert await store.get(f"session:{anonymous_sid}") is None

    @pytest.mark.asyncio
    async def test_csrf_token_endpoint_returns_session_token(self, auth_client):
        assert await fetch_csrf(auth_client) == auth_client.csrf


class TestCsrf:
    """Test CSRF enforcement on cookie-authenticated mutations."""

    @pytest.mark.asyncio
    async def test_missing_header_rejected_before_any_write(self, auth_client, session_factory):
        del auth_client.headers["X-CSRF-Token"]
        response = await auth_client.post("/api/jobs", json={"title": "Engineer", "company": "Acme"})
        assert response.status_code == 403

        async with session_factory() as session:
            result = await session.execute(select(func.count(Job.id)))
            assert result.scalar() == 0

    @pytest.mark.asyncio
    async def test_wrong_header_rejected(self, auth_client):
        auth_client.headers["X-CSRF-Token"] = "forged"
        response = await auth_client.post("/api/jobs", json={"title": "Engineer", "company": "Acme"})
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_safe_methods_need_no_header(self, auth_client):
        del auth_client.headers["X-CSRF-Token"]
        response = await auth_client.get("/api/jobs")
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_unauthenticated_mutation_is_401(self, client):
        response = await client.post("/api/jobs", json={"title": "Engineer", "company": "Acme"})
        assert response.status_code == 401
        assert response.json() == {"detail": "Not logged in"}


class TestLogout:
    """Test POST /api/auth/logout."""

    @pytest.mark.asyncio
    async def test_logout_destroys_session(self, auth_client, store):
        sid = auth_client.cookies.get(SESSION_COOKIE)
        response = await auth_client.post("/api/auth/logout")
        assert response.status_code == 200
        assert await store.get(f"session:{sid}") is None

        me = await auth_client.get("/api/auth/me")
        assert me.status_code == 401

    @pytest.mark.asyncio
    async def test_logout_is_idempotent(self, auth_client):
        first = await auth_client.post("/api/auth/logout")
        second = await auth_client.post("/api/auth/logout")
        assert first.status_code == second.status_code == 200

    @pytest.mark.asyncio
    async def test_logout_without_session(self, client):
        response = await client.post("/api/auth/logout")
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_logout_requires_csrf_when_logged_in(self, auth_client):
        del auth_client.headers["X-CSRF-Token"]
        response = await auth_client.post("/api/auth/logout")
        assert response.status_code == 403


@pytest.fixture
def token_transport(store):
    settings = Settings(auth_transport="token", jwt_secret="test-secret")
    app.dependency_overrides[get_issuer] = lambda: SessionTokenIssuer(store, settings)
    yield
    app.dependency_overrides.pop(get_issuer, None)


class TestTokenTransport:
    """Test login with auth_transport=token."""

    @pytest.mark.asyncio
    async def test_login_returns_token_and_sets_cookie(self, client, token_transport):
        await register(client)
        response = await login(client)
        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["access_token"]
        assert client.cookies.get(TOKEN_COOKIE) == body["access_token"]

        me = await client.get("/api/auth/me")
        assert me.json()["email"] == "alice@example.com"

    @pytest.mark.asyncio
    async def test_token_cookie_still_needs_csrf(self, client, token_transport):
        await register(client)
        await login(client)
        response = await client.post("/api/jobs", json={"title": "Engineer", "company": "Acme"})
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_bearer_requests_are_csrf_exempt(self, client, token_transport):
        await register(client)
        token = (await login(client)).json()["access_token"]

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as api:
            response = await api.post(
                "/api/jobs",
                json={"title": "Engineer", "company": "Acme"},
                headers={"Authorization": f"Bearer {token}"},
            )
        assert response.status_code == 201

    @pytest.mark.asyncio
    async def test_logout_revokes_token(self, client, token_transport):
        await register(client)
        body = (await login(client)).json()
        token = body["access_token"]

        response = await client.post("/api/auth/logout", headers={"X-CSRF-Token": body["csrfToken"]})
        assert response.status_code == 200

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as api:
            me = await api.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 401

    @pytest.mark.asyncio
    async def test_tampered_token_rejected(self, client, token_transport):
        await register(client)
        token = (await login(client)).json()["access_token"]

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as api:
            me = await api.get("/api/auth/me", headers={"Authorization": f"Bearer {token}x"})
        assert me.status_code == 401


def expired_token(user_id: int) -> str:
    claims = {"sub": str(user_id), "email": "alice@example.com", "role": "user", "csrf": "unused"}
    return create_token(claims, timedelta(seconds=-30))


class TestExpiredCredentials:
    """Expired tokens count as no credential."""

    @pytest.mark.asyncio
    async def test_expired_bearer_token(self, client):
        user_id = (await register(client)).json()["id"]
        response = await client.get(
            "/api/auth/me", headers={"Authorization": f"Bearer {expired_token(user_id)}"}
        )
        assert response.status_code == 401
        assert response.json() == {"detail": "Not logged in"}

    @pytest.mark.asyncio
    async def test_expired_token_cookie(self, client):
        user_id = (await register(client)).json()["id"]
        response = await client.get(
            "/api/auth/me", headers={"Cookie": f"{TOKEN_COOKIE}={expired_token(user_id)}"}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_expired_session_record(self, auth_client, store):
        sid = auth_client.cookies.get(SESSION_COOKIE)
        record = await store.get(f"session:{sid}")
        # Re-store the same record with a TTL that has already run out
        await store.set(f"session:{sid}", record, ttl=0)

        response = await auth_client.get("/api/auth/me")
        assert response.status_code == 401


def cookie_attributes(response, name: str) -> dict:
    """Attributes of the Set-Cookie header for `name`, keys lowercased."""
    for header in response.headers.get_list("set-cookie"):
        cookie, *attributes = [part.strip() for part in header.split(";")]
        if cookie.partition("=")[0] != name:
            continue
        parsed = {}
        for attribute in attributes:
            key, _, value = attribute.partition("=")
            parsed[key.lower()] = value
        return parsed
    raise AssertionError(f"no Set-Cookie header for {name}")


class TestCookieFlags:
    """Login cookies: httpOnly, SameSite=Lax, Secure only in production."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("transport,cookie_name", [("session", SESSION_COOKIE), ("token", TOKEN_COOKIE)])
    @pytest.mark.parametrize("environment,secure", [("development", False), ("production", True)])
    async def test_login_cookie(self, client, store, transport, cookie_name, environment, secure):
        settings = Settings(auth_transport=transport, environment=environment, jwt_secret="test-secret")
        app.dependency_overrides[get_issuer] = lambda: SessionTokenIssuer(store, settings)
        await register(client)

        base_url = "https://test" if secure else "http://test"
        async with AsyncClient(transport=ASGITransport(app=app), base_url=base_url) as browser:
            response = await login(browser)
        assert response.status_code == 200

        attributes = cookie_attributes(response, cookie_name)
        assert "httponly" in attributes
        assert attributes["samesite"].lower() == "lax"
        assert attributes["path"] == "/"
        assert ("secure" in attributes) is secure
        if transport == "session":
            assert int(attributes["max-age"]) == settings.session_ttl_days * 86400
        else:
            assert int(attributes["max-age"]) == settings.token_expire_days * 86400


class TestDeleteAccount:
    """Test DELETE /api/auth/me."""

    @pytest.mark.asyncio
    async def test_delete_cascades_to_owned_records(self, auth_client, session_factory):
        job = await auth_client.post("/api/jobs", json={"title": "Engineer", "company": "Acme"})
        assert job.status_code == 201
        resume = await auth_client.post("/api/resumes", json={"name": "Main"})
        assert resume.status_code == 201

        response = await auth_client.delete("/api/auth/me")
        assert response.status_code == 200

        async with session_factory() as session:
            assert (await session.execute(select(func.count(User.id)))).scalar() == 0
            assert (await session.execute(select(func.count(Job.id)))).scalar() == 0

        me = await auth_client.get("/api/auth/me")
        assert me.status_code == 401

    @pytest.mark.asyncio
    async def test_delete_requires_csrf(self, auth_client, session_factory):
        del auth_client.headers["X-CSRF-Token"]
        response = await auth_client.delete("/api/auth/me")
        assert response.status_code == 403
        assert await count_users(session_factory) == 1
