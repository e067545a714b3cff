from pathlib import Path

import typer
from alembic import command
from alembic.config import Config
from sqlalchemy.orm import Session

from taskboard.core.config import settings
from taskboard.core.database import SessionLocal
from taskboard.core.security import hash_password
from taskboard.models import User
from taskboard.services.token_store import RefreshTokenStore

app = typer.Typer(help="Taskboard administration commands.")

ALEMBIC_INI = Path(__file__).resolve().parents[1] / "alembic.ini"


@app.command()
def migrate(revision: str = "head"):
    """Apply database migrations."""
    config = Config(str(ALEMBIC_INI))
    config.set_main_option("script_location", str(ALEMBIC_INI.parent / "alembic"))
    config.set_main_option("sqlalchemy.url", settings.database_url)
    command.upgrade(config, revision)
    typer.echo(f"Database upgraded to {revision}")


@app.command()
def create_user(email: str, password: str, name: str):
    db: Session = SessionLocal()
    try:
        existing = db.query(User).filter(User.email == email).first()
        if existing:
            typer.echo("User already exists")
            raise typer.Exit(code=1)
        user = User(email=email, password_hash=hash_password(password), name=name)
        db.add(user)
        db.commit()
        typer.echo(f"User created: {user.id}")
    finally:
        db.close()


@app.command()
def revoke_sessions(email: str):
    """Revoke every refresh token held by a user."""
    db: Session = SessionLocal()
    try:
        user = db.query(User).filter(User.email == email).first()
        if not user:
            typer.echo("User not found")
            raise typer.Exit(code=1)
        revoked = RefreshTokenStore(db).revoke_all_for_user(user.id)
        typer.echo(f"Revoked {revoked} refresh tokens")
    finally:
        db.close()


if __name__ == "__main__":
    app()
