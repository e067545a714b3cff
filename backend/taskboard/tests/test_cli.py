from typer.testing import CliRunner

from taskboard.cli import app
from taskboard.models import RefreshToken, User

runner = CliRunner()


def test_create_user_then_login(client):
    result = runner.invoke(app, ["create-user", "admin@b.com", "secret1", "Admin"])
    assert result.exit_code == 0
    assert "User created" in result.output

    response = client.post("/auth/login", json={"email": "admin@b.com", "password": "secret1"})
    assert response.status_code == 200

    duplicate = runner.invoke(app, ["create-user", "admin@b.com", "secret1", "Admin"])
    assert duplicate.exit_code == 1


def test_revoke_sessions_revokes_every_token_for_user(client, db):
    registered = client.post(
        "/auth/register", json={"email": "a@b.com", "password": "secret1", "name": "A"}
    ).json()
    client.post("/auth/login", json={"email": "a@b.com", "password": "secret1"})
    client.post("/auth/register", json={"email": "other@b.com", "password": "secret1", "name": "O"})

    result = runner.invoke(app, ["revoke-sessions", "a@b.com"])
    assert result.exit_code == 0
    assert "Revoked 2 refresh tokens" in result.output

    user_id = registered["user"]["id"]
    tokens = db.query(RefreshToken).filter(RefreshToken.user_id == user_id).all()
    assert len(tokens) == 2
    assert all(token.revoked for token in tokens)

    other = db.query(User).filter(User.email == "other@b.com").one()
    assert not any(token.revoked for token in other.refresh_tokens)

    response = client.post("/auth/refresh", json={"refreshToken": registered["refreshToken"]})
    assert response.status_code == 401


def test_revoke_sessions_for_unknown_user_fails(client):
    result = runner.invoke(app, ["revoke-sessions", "nobody@b.com"])
    assert result.exit_code == 1
    assert "User not found" in result.output
