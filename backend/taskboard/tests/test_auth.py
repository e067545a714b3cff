from datetime import datetime, timedelta, timezone

from jose import jwt

from taskboard.core.config import settings
from taskboard.core.security import create_refresh_token
from taskboard.models import RefreshToken
from taskboard.services.token_store import RefreshTokenStore, hash_token


def _register(client, email="a@b.com", password="secret1", name="A"):
    return client.post("/auth/register", json={"email": email, "password": password, "name": name})


def _login(client, email="a@b.com", password="secret1"):
    return client.post("/auth/login", json={"email": email, "password": password})


def _refresh(client, token):
    return client.post("/auth/refresh", json={"refreshToken": token})


def test_register_returns_token_pair_and_public_user(client):
    response = _register(client)
    assert response.status_code == 201
    data = response.json()
    assert data["accessToken"]
    assert data["refreshToken"]
    assert set(data["user"]) == {"id", "email", "name"}
    assert data["user"]["email"] == "a@b.com"
    assert data["user"]["name"] == "A"


def test_register_duplicate_email(client):
    assert _register(client).status_code == 201
    response = _register(client, name="Other")
    assert response.status_code == 400
    assert response.json()["error"] == "ALREADY_EXISTS"


def test_register_validation_errors_are_400_with_fields(client):
    response = client.post("/auth/register", json={"email": "nope", "password": "123", "name": ""})
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "VALIDATION_ERROR"
    fields = {item["field"] for item in body["details"]}
    assert {"email", "password", "name"} <= fields


def test_login_success(client):
    _register(client)
    response = _login(client)
    assert response.status_code == 200
    data = response.json()
    assert data["accessToken"]
    assert data["refreshToken"]
    assert data["user"]["email"] == "a@b.com"


def test_login_failure_does_not_reveal_which_part_was_wrong(client):
    _register(client)
    wrong_password = _login(client, password="wrong-password")
    unknown_email = _login(client, email="nobody@b.com")
    assert wrong_password.status_code == 401
    assert unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json()


def test_login_is_rate_limited(client, rate_limiter):
    _register(client)
    for _ in range(rate_limiter.limit):
        assert _login(client, password="wrong-password").status_code == 401
    response = _login(client)
    assert response.status_code == 429
    assert response.json()["error"] == "RATE_LIMITED"


def test_round_trip_register_login_refresh(client):
    registered = _register(client).json()
    logged_in = _login(client).json()
    assert logged_in["refreshToken"] != registered["refreshToken"]

    refreshed = _refresh(client, logged_in["refreshToken"])
    assert refreshed.status_code == 200
    data = refreshed.json()
    assert data["refreshToken"] not in (registered["refreshToken"], logged_in["refreshToken"])
    assert data["user"]["id"] == registered["user"]["id"]

    replay = _refresh(client, logged_in["refreshToken"])
    assert replay.status_code == 401
    assert replay.json()["error"] == "INVALID_REFRESH_TOKEN"


def test_replaying_rotated_token_revokes_every_session(client):
    registered = _register(client).json()
    logged_in = _login(client).json()
    rotated = _refresh(client, logged_in["refreshToken"]).json()

    assert _refresh(client, logged_in["refreshToken"]).status_code == 401
    # Both the untouched registration token and the freshly rotated one are gone.
    assert _refresh(client, registered["refreshToken"]).status_code == 401
    assert _refresh(client, rotated["refreshToken"]).status_code == 401


def test_refresh_rejects_expired_token(client, db):
    user_id = _register(client).json()["user"]["id"]
    past = datetime.now(timezone.utc) - timedelta(minutes=1)
    expired = jwt.encode(
        {"sub": user_id, "type": "refresh", "jti": "expired", "exp": past},
        settings.refresh_token_secret,
        algorithm=settings.jwt_algorithm,
    )
    RefreshTokenStore(db).create(expired, user_id, past)

    response = _refresh(client, expired)
    assert response.status_code == 401
    record = db.query(RefreshToken).filter(RefreshToken.token_hash == hash_token(expired)).one()
    db.refresh(record)
    assert record.revoked is False


def test_forged_refresh_token_does_not_lock_out_owner(client):
    registered = _register(client).json()
    forged = jwt.encode(
        {"sub": registered["user"]["id"], "type": "refresh", "jti": "forged"},
        "not-the-refresh-secret",
        algorithm=settings.jwt_algorithm,
    )
    assert _refresh(client, forged).status_code == 401
    assert _refresh(client, registered["refreshToken"]).status_code == 200


def test_signed_but_unrecorded_refresh_token_does_not_lock_out_owner(client):
    registered = _register(client).json()
    unrecorded, _ = create_refresh_token(registered["user"]["id"])

    response = _refresh(client, unrecorded)
    assert response.status_code == 401
    assert response.json()["error"] == "INVALID_REFRESH_TOKEN"
    assert _refresh(client, registered["refreshToken"]).status_code == 200


def test_empty_refresh_token_is_rejected_as_invalid(client):
    response = _refresh(client, "")
    assert response.status_code == 401
    assert response.json()["error"] == "INVALID_REFRESH_TOKEN"


def test_refresh_requires_token_field(client):
    response = client.post("/auth/refresh", json={})
    assert response.status_code == 400


def test_logout_is_idempotent(client):
    token = _register(client).json()["refreshToken"]
    for _ in range(2):
        response = client.post("/auth/logout", json={"refreshToken": token})
        assert response.status_code == 200
        assert response.json() == {"message": "Logged out successfully"}
    assert client.post("/auth/logout", json={}).status_code == 200
    assert client.post("/auth/logout").status_code == 200
    assert client.post("/auth/logout", json={"refreshToken": "garbage"}).status_code == 200
    assert _refresh(client, token).status_code == 401
