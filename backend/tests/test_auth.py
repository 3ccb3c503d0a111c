import uuid
import pytest
from fastapi import status
from helpers import client


@pytest.mark.asyncio
async def test_register_login_me_refresh():
    email = f"Test-{uuid.uuid4().hex[:8]}@Example.com"
    username = f"user_{uuid.uuid4().hex[:8]}"

    async with client() as ac:
        r = await ac.post("/auth/register", json={"email": email, "username": username, "password": "supersecret"})
        assert r.status_code == status.HTTP_201_CREATED, r.text
        assert r.json()["email"] == email.lower()

        r = await ac.post("/auth/login", json={"email": email, "password": "supersecret"})
        assert r.status_code == 200
        tokens = r.json()
        assert "access" in tokens and "refresh" in tokens

        me = await ac.get("/auth/me", headers={"Authorization": f"Bearer {tokens['access']}"})
        assert me.status_code == 200
        assert me.json()["username"] == username

        r = await ac.post("/auth/refresh", headers={"Authorization": f"Bearer {tokens['refresh']}"})
        assert r.status_code == 200
        assert r.json()["access"] != tokens["access"]


@pytest.mark.asyncio
async def test_wrong_token_type_and_bad_password():
    email = f"u-{uuid.uuid4().hex[:8]}@example.com"
    async with client() as ac:
        await ac.post("/auth/register", json={"email": email, "username": f"u_{uuid.uuid4().hex[:8]}", "password": "supersecret"})
        tokens = (await ac.post("/auth/login", json={"email": email, "password": "supersecret"})).json()

        r = await ac.get("/auth/me", headers={"Authorization": f"Bearer {tokens['refresh']}"})
        assert r.status_code == 401
        r = await ac.post("/auth/refresh", headers={"Authorization": f"Bearer {tokens['access']}"})
        assert r.status_code == 401
        r = await ac.get("/auth/me")
        assert r.status_code == 401
        r = await ac.post("/auth/login", json={"email": email, "password": "wrong-password"})
        assert r.status_code == 401


@pytest.mark.asyncio
async def test_duplicate_email_and_username():
    tag = uuid.uuid4().hex[:8]
    async with client() as ac:
        r1 = await ac.post("/auth/register", json={"email": f"d-{tag}@example.com", "username": f"d1_{tag}", "password": "password1"})
        assert r1.status_code == 201

        r2 = await ac.post("/auth/register", json={"email": f"D-{tag}@example.com", "username": f"d2_{tag}", "password": "password2"})
        assert r2.status_code == 409
        assert "email" in r2.json()["detail"].lower()

        r3 = await ac.post("/auth/register", json={"email": f"other-{tag}@example.com", "username": f"d1_{tag}", "password": "password3"})
        assert r3.status_code == 409
        assert "username" in r3.json()["detail"].lower()


@pytest.mark.asyncio
async def test_validation_error_shape():
    async with client() as ac:
        r = await ac.post("/auth/register", json={"email": "not-an-email", "username": "x", "password": "short"})
    assert r.status_code == 422
    body = r.json()
    assert body["error"] == "ValidationFailed"
    assert isinstance(body["detail"], list)
