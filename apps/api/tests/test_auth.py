"""
Tests for sessions, sign-in and sign-out.
"""

from datetime import timedelta
from urllib.parse import parse_qs, urlparse

import pytest
from httpx import AsyncClient
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_admin.api.routes import auth as auth_routes
from rbac_admin.core.auth.providers import OAuthProvider
from rbac_admin.core.config import settings
from rbac_admin.core.exceptions import AuthError
from rbac_admin.models.user import Account, Session, User
from rbac_admin.schemas.auth import OAuthProfile
from rbac_admin.services.auth import AuthService, GHOST_AVATAR
from rbac_admin.services.user import UserService
from rbac_admin.utils.timezone import to_utc, utc_now


class StubProvider(OAuthProvider):
    """Provider that hands back a fixed profile for any code."""

    id = "stub"
    name = "Stub"

    def __init__(self, profile: OAuthProfile):
        self.profile = profile
        self.codes: list[str] = []

    def authorization_url(self, redirect_uri: str, state: str) -> str:
        return f"https://provider.example/authorize?state={state}&redirect_uri={redirect_uri}"

    async def fetch_profile(self, code: str, redirect_uri: str) -> OAuthProfile:
        self.codes.append(code)
        return self.profile


def stub_profile(**overrides) -> OAuthProfile:
    data = {
        "provider": "stub",
        "provider_account_id": "1234",
        "email": "new@example.com",
        "name": "New Person",
        "image": "https://provider.example/a.png",
        "email_verified": True,
        "access_token": "access",
    }
    data.update(overrides)
    return OAuthProfile(**data)


@pytest.fixture
def stub_provider(monkeypatch) -> StubProvider:
    provider = StubProvider(stub_profile())
    monkeypatch.setattr(
        auth_routes,
        "get_provider",
        lambda provider_id: provider if provider_id == "stub" else None,
    )
    return provider


# ============ Session read ============


@pytest.mark.asyncio
async def test_session_is_null_without_token(client: AsyncClient):
    response = await client.get("/api/auth/session")

    assert response.status_code == 200
    assert response.json() is None


@pytest.mark.asyncio
async def test_session_carries_roles(client: AsyncClient, auth_headers: dict, test_user: User):
    response = await client.get("/api/auth/session", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["user"]["id"] == str(test_user.id)
    assert data["user"]["email"] == test_user.email
    assert data["user"]["roles"] == ["USER"]
    assert "expires" in data


@pytest.mark.asyncio
async def test_expired_session_is_deleted(db: AsyncSession, test_user: User):
    service = AuthService(db)
    session = await service.create_session(test_user)
    await db.execute(
        update(Session)
        .where(Session.id == session.id)
        .values(expires=utc_now() - timedelta(minutes=1))
        .execution_options(synchronize_session=False)
    )
    await db.refresh(session)

    assert await service.get_session(session.session_token) is None
    result = await db.execute(select(Session).where(Session.id == session.id))
    assert result.scalar_one_or_none() is None


@pytest.mark.asyncio
async def test_stale_session_is_extended(db: AsyncSession, test_user: User):
    service = AuthService(db)
    session = await service.create_session(test_user)
    max_age = timedelta(days=settings.auth.session_max_age_days)
    update_age = timedelta(hours=settings.auth.session_update_age_hours)

    # Last extended just over update_age ago
    session.expires = utc_now() + max_age - update_age - timedelta(minutes=5)
    await db.flush()

    found = await service.get_session(session.session_token)

    assert found is not None
    assert to_utc(found[0].expires) > utc_now() + max_age - timedelta(minutes=1)


@pytest.mark.asyncio
async def test_fresh_session_not_extended(db: AsyncSession, test_user: User):
    service = AuthService(db)
    session = await service.create_session(test_user)
    expires = session.expires

    found = await service.get_session(session.session_token)

    assert found is not None
    assert to_utc(found[0].expires) == to_utc(expires)


@pytest.mark.asyncio
async def test_expired_session_deleted_even_when_request_fails(
    db: AsyncSession, test_user: User, app_client: AsyncClient
):
    session = await AuthService(db).create_session(test_user)
    session.expires = utc_now() - timedelta(minutes=1)
    token = session.session_token
    await db.commit()

    response = await app_client.get(
        "/api/users/me",
        headers={"Authorization": f"Bearer {token}"},
    )

    assert response.status_code == 401
    result = await db.execute(select(Session.id).where(Session.session_token == token))
    assert result.scalar_one_or_none() is None


@pytest.mark.asyncio
async def test_extension_kept_when_request_is_forbidden(
    db: AsyncSession, test_user: User, app_client: AsyncClient
):
    max_age = timedelta(days=settings.auth.session_max_age_days)
    update_age = timedelta(hours=settings.auth.session_update_age_hours)
    session = await AuthService(db).create_session(test_user)
    session.expires = utc_now() + max_age - update_age - timedelta(minutes=5)
    token = session.session_token
    await db.commit()

    # USER holds no admin permission
    response = await app_client.get(
        "/api/roles",
        headers={"Authorization": f"Bearer {token}"},
    )

    assert response.status_code == 403
    expires = await db.scalar(select(Session.expires).where(Session.session_token == token))
    assert to_utc(expires) > utc_now() + max_age - timedelta(minutes=1)


# ============ Sign-out ============


@pytest.mark.asyncio
async def test_signout_deletes_session(client: AsyncClient, auth_headers: dict):
    response = await client.post("/api/auth/signout", headers=auth_headers)
    assert response.status_code == 204

    after = await client.get("/api/auth/session", headers=auth_headers)
    assert after.json() is None


@pytest.mark.asyncio
async def test_signout_without_session(client: AsyncClient):
    response = await client.post("/api/auth/signout")
    assert response.status_code == 204


# ============ OAuth state ============


def test_state_round_trip():
    service = AuthService(db=None)
    state = service.create_state("nonce-1")

    service.verify_state(state, "nonce-1")


@pytest.mark.parametrize(
    "state_nonce, cookie_nonce",
    [("nonce-1", "nonce-2"), ("nonce-1", None)],
)
def test_state_bound_to_nonce(state_nonce, cookie_nonce):
    service = AuthService(db=None)
    state = service.create_state(state_nonce)

    with pytest.raises(AuthError):
        service.verify_state(state, cookie_nonce)


def test_forged_state_rejected():
    with pytest.raises(AuthError):
        AuthService(db=None).verify_state("not-a-jwt", "nonce-1")


# ============ External sign-in ============


@pytest.mark.asyncio
async def test_oauth_flow_creates_user_with_default_role(
    client: AsyncClient,
    db: AsyncSession,
    seeded,
    stub_provider: StubProvider,
):
    start = await client.get("/api/auth/signin/stub")
    assert start.status_code == 302
    state = parse_qs(urlparse(start.headers["location"]).query)["state"][0]

    callback = await client.get(
        "/api/auth/callback/stub",
        params={"code": "the-code", "state": state},
    )

    assert callback.status_code == 302
    assert callback.headers["location"] == "/"
    assert settings.auth.session_cookie_name in callback.cookies
    assert stub_provider.codes == ["the-code"]

    user = await UserService(db).get_by_email("new@example.com")
    assert user is not None
    assert user.name == "New Person"
    assert await UserService(db).get_role_names(user.id) == ["USER"]

    session = await client.get("/api/auth/session")
    assert session.json()["user"]["roles"] == ["USER"]


@pytest.mark.asyncio
async def test_oauth_sign_in_links_existing_account(db: AsyncSession, seeded):
    service = AuthService(db)

    first_user, _ = await service.sign_in(stub_profile())
    second_user, _ = await service.sign_in(stub_profile(access_token="rotated"))

    assert first_user.id == second_user.id
    result = await db.execute(select(Account).where(Account.user_id == first_user.id))
    accounts = result.scalars().all()
    assert len(accounts) == 1
    assert accounts[0].access_token == "rotated"
    assert await UserService(db).count_roles(first_user.id) == 1


@pytest.mark.asyncio
async def test_oauth_sign_in_keeps_admin_roles(db: AsyncSession, seeded, user_factory):
    admin = await user_factory.create(email="new@example.com", roles=["ADMIN"])

    user, _ = await AuthService(db).sign_in(stub_profile())

    assert user.id == admin.id
    assert await UserService(db).get_role_names(user.id) == ["ADMIN"]


@pytest.mark.asyncio
async def test_oauth_unverified_email_cannot_take_over(db: AsyncSession, seeded, user_factory):
    await user_factory.create(email="new@example.com")

    with pytest.raises(AuthError):
        await AuthService(db).sign_in(stub_profile(email_verified=False))


@pytest.mark.asyncio
async def test_oauth_bad_state(client: AsyncClient, seeded, stub_provider: StubProvider):
    await client.get("/api/auth/signin/stub")

    response = await client.get(
        "/api/auth/callback/stub",
        params={"code": "the-code", "state": "forged"},
    )

    assert response.status_code == 400
    assert response.json()["error"] == "auth_error"
    assert stub_provider.codes == []


@pytest.mark.asyncio
async def test_oauth_cancelled(client: AsyncClient, stub_provider: StubProvider):
    response = await client.get("/api/auth/callback/stub", params={"error": "access_denied"})

    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["/api/auth/signin/nope", "/api/auth/callback/nope"])
async def test_unknown_provider(client: AsyncClient, path: str):
    response = await client.get(path)
    assert response.status_code == 404


# ============ Test credentials ============


@pytest.mark.asyncio
async def test_credentials_admin_email(client: AsyncClient, db: AsyncSession, seeded):
    response = await client.post(
        "/api/auth/test/signin",
        json={"email": "admin@example.com", "password": "anything"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["session_token"]
    assert sorted(data["user"]["roles"]) == ["ADMIN", "USER"]
    assert data["user"]["name"] == "admin"
    assert data["user"]["image"] == GHOST_AVATAR

    # Cookie set by the response authenticates the next request
    users = await client.get("/api/users")
    assert users.status_code == 200


@pytest.mark.asyncio
async def test_credentials_regular_email(client: AsyncClient, seeded):
    response = await client.post(
        "/api/auth/test/signin",
        json={"email": "someone@example.com", "password": "x"},
    )

    assert response.status_code == 200
    assert response.json()["user"]["roles"] == ["USER"]

    headers = {"Authorization": f"Bearer {response.json()['session_token']}"}
    assert (await client.get("/api/users", headers=headers)).status_code == 403


@pytest.mark.asyncio
async def test_credentials_keep_existing_roles(db: AsyncSession, seeded, user_factory):
    """Outside the reset domain roles accumulate rather than being replaced."""
    user = await user_factory.create(email="someone@example.com", roles=["ADMIN"])

    await AuthService(db).sign_in_with_test_credentials("someone@example.com")

    assert await UserService(db).get_role_names(user.id) == ["ADMIN", "USER"]


@pytest.mark.asyncio
async def test_credentials_reset_domain(db: AsyncSession, seeded, user_factory):
    user = await user_factory.create(email="reset@test.com", roles=["ADMIN"])

    await AuthService(db).sign_in_with_test_credentials("reset@test.com")

    assert await UserService(db).get_role_names(user.id) == ["USER"]


@pytest.mark.asyncio
async def test_credentials_reset_matches_anywhere_in_email(db: AsyncSession, seeded, user_factory):
    user = await user_factory.create(email="qa@test.com.example", roles=["ADMIN"])

    await AuthService(db).sign_in_with_test_credentials("qa@test.com.example")

    assert await UserService(db).get_role_names(user.id) == ["USER"]


@pytest.mark.asyncio
async def test_credentials_without_seeded_roles(db: AsyncSession):
    """Missing roles are skipped; sign-in still succeeds."""
    user, session = await AuthService(db).sign_in_with_test_credentials("admin@example.com")

    assert session.session_token
    assert await UserService(db).get_role_names(user.id) == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"email": "", "password": "x"},
        {"email": "a@example.com", "password": ""},
        {"email": "a@example.com"},
    ],
)
async def test_credentials_validation(client: AsyncClient, payload: dict):
    response = await client.post("/api/auth/test/signin", json=payload)
    assert response.status_code == 422
