from fastapi.testclient import TestClient

from app.main import app
from app.services.auth_service import decode_token, hash_password, verify_password
from tests.helpers import create_user, unique_username


def test_register_and_login():
    with TestClient(app) as client:
        username = unique_username("alice")
        r = create_user(client, username=username, password="password123", full_name="Alice A")
        assert r.status_code == 201
        data = r.json()
        assert decode_token(data["token"])["sub"] == data["user_id"]

        r = client.post("/api/auth/login", json={"username": username, "password": "password123"})
        assert r.status_code == 200
        assert r.json()["user_id"] == data["user_id"]

        r = client.get("/api/auth/me", headers={"Authorization": f"Bearer {r.json()['token']}"})
        assert r.status_code == 200
        me = r.json()
        assert me["username"] == username
        assert me["full_name"] == "Alice A"
        assert me["status"] == "offline"


def test_duplicate_username_and_bad_credentials():
    with TestClient(app) as client:
        username = unique_username("bob")
        assert create_user(client, username=username).status_code == 201
        assert create_user(client, username=username).status_code == 409

        r = client.post("/api/auth/login", json={"username": username, "password": "wrong-password"})
        assert r.status_code == 401

        r = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
        assert r.status_code == 401


def test_password_hashing():
    hashed = hash_password("s3cret!")

    assert hashed != "s3cret!"
    assert verify_password("s3cret!", hashed)
    assert not verify_password("other", hashed)


def test_health():
    with TestClient(app) as client:
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["hub_running"] is True
        assert r.json()["total_connections"] == 0
