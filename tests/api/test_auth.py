"""Local auth, refresh rotation, logout and /me."""

from httpx import AsyncClient

from tests.helpers import bearer_for, create_account, load_account

REGISTER = {"email": "Ada@Example.com", "password": "correct-horse", "name": "Ada"}


async def register(client: AsyncClient) -> dict:
    response = await client.post("/api/v1/auth/register", json=REGISTER)
    assert response.status_code == 201, response.text
    return response.json()


async def test_register_returns_pair_and_sets_cookies(client: AsyncClient) -> None:
    body = await register(client)
    assert body["accessToken"]
    assert body["refreshToken"]
    assert body["user"]["email"] == "ada@example.com"
    assert body["user"]["authProvider"] == "local"
    assert "passwordHash" not in body["user"]
    assert client.cookies.get("accessToken") == body["accessToken"]
    assert client.cookies.get("refreshToken") == body["refreshToken"]


async def test_register_duplicate_email_conflicts(client: AsyncClient) -> None:
    await register(client)
    response = await client.post("/api/v1/auth/register", json=REGISTER)
    assert response.status_code == 409
    assert response.json()["error"] == "ACCOUNT_ALREADY_EXISTS"


async def test_register_short_password_is_rejected(client: AsyncClient) -> None:
    response = await client.post(
        "/api/v1/auth/register", json={"email": "a@example.com", "password": "short"}
    )
    assert response.status_code == 422


async def test_login_with_correct_and_wrong_password(client: AsyncClient) -> None:
    await register(client)
    client.cookies.clear()

    ok = await client.post(
        "/api/v1/auth/login", json={"email": "ada@example.com", "password": "correct-horse"}
    )
    wrong = await client.post(
        "/api/v1/auth/login", json={"email": "ada@example.com", "password": "nope"}
    )
    unknown = await client.post(
        "/api/v1/auth/login", json={"email": "nobody@example.com", "password": "nope"}
    )

    assert ok.status_code == 200
    assert wrong.status_code == 401
    assert unknown.status_code == 401
    assert wrong.json()["message"] == unknown.json()["message"]


async def test_refresh_rotates_and_old_token_fails(client: AsyncClient) -> None:
    body = await register(client)
    client.cookies.clear()

    first = await client.post("/api/v1/auth/refresh", json={"refreshToken": body["refreshToken"]})
    replay = await client.post("/api/v1/auth/refresh", json={"refreshToken": body["refreshToken"]})

    assert first.status_code == 200
    assert first.json()["refreshToken"] != body["refreshToken"]
    assert replay.status_code == 401
    assert replay.json()["error"] == "INVALID_REFRESH_TOKEN"


async def test_refresh_uses_cookie_when_body_missing(client: AsyncClient) -> None:
    await register(client)
    response = await client.post("/api/v1/auth/refresh")
    assert response.status_code == 200


async def test_refresh_without_token(client: AsyncClient) -> None:
    response = await client.post("/api/v1/auth/refresh")
    assert response.status_code == 401


async def test_me_with_bearer_token(client: AsyncClient) -> None:
    account = await create_account(email="grace@example.com", name="Grace", google_id="g-1")
    response = await client.get("/api/v1/auth/me", headers=bearer_for(account))
    assert response.status_code == 200
    body = response.json()
    assert body["email"] == "grace@example.com"
    assert body["hasGoogleAuth"] is True


async def test_me_without_credentials(client: AsyncClient) -> None:
    response = await client.get("/api/v1/auth/me")
    assert response.status_code == 401


async def test_me_with_garbage_token(client: AsyncClient) -> None:
    response = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401


async def test_me_reissues_access_from_refresh_cookie(client: AsyncClient) -> None:
    body = await register(client)
    client.cookies.delete("accessToken")

    response = await client.get("/api/v1/auth/me")

    assert response.status_code == 200
    assert "accessToken" in response.cookies
    # The refresh token is not rotated by a silent access reissue
    assert client.cookies.get("refreshToken") == body["refreshToken"]


async def test_blocked_account_cannot_use_access_token(client: AsyncClient) -> None:
    account = await create_account(email="blocked@example.com", status="blocked")
    response = await client.get("/api/v1/auth/me", headers=bearer_for(account))
    assert response.status_code == 401


async def test_logout_revokes_refresh_token(client: AsyncClient) -> None:
    body = await register(client)

    response = await client.get(
        "/api/v1/auth/logout", headers={"Authorization": f"Bearer {body['accessToken']}"}
    )

    assert response.status_code == 200
    assert response.json() == {"message": "Logged out successfully"}
    stored = await load_account(body["user"]["id"])
    assert stored is not None and stored.refresh_token is None
    replay = await client.post("/api/v1/auth/refresh", json={"refreshToken": body["refreshToken"]})
    assert replay.status_code == 401


async def test_update_profile_changes_name_and_picture(client: AsyncClient) -> None:
    account = await create_account(email="grace@example.com", name="Grace")
    response = await client.put(
        "/api/v1/auth/profile",
        json={"name": "  Grace Hopper ", "profilePicture": "https://cdn.example.com/g.png"},
        headers=bearer_for(account),
    )
    assert response.status_code == 200
    assert response.json()["name"] == "Grace Hopper"
    stored = await load_account(account.id)
    assert stored is not None
    assert stored.name == "Grace Hopper"
    assert stored.profile_picture == "https://cdn.example.com/g.png"


async def test_update_profile_rejects_bad_input(client: AsyncClient) -> None:
    account = await create_account(email="grace@example.com", name="Grace")
    headers = bearer_for(account)

    empty = await client.put("/api/v1/auth/profile", json={}, headers=headers)
    blank = await client.put("/api/v1/auth/profile", json={"name": "   "}, headers=headers)
    script = await client.put(
        "/api/v1/auth/profile", json={"profilePicture": "javascript:alert(1)"}, headers=headers
    )

    assert empty.status_code == 422
    assert blank.status_code == 400
    assert script.status_code == 400
    stored = await load_account(account.id)
    assert stored is not None and stored.name == "Grace"


async def test_update_profile_requires_authentication(client: AsyncClient) -> None:
    response = await client.put("/api/v1/auth/profile", json={"name": "Nobody"})
    assert response.status_code == 401
