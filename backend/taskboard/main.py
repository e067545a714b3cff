import asyncio
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import OperationalError

from taskboard.api import auth, health, users
from taskboard.api.errors import register_exception_handlers
from taskboard.core.config import settings
from taskboard.core.database import Base, engine

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_exception_handlers(app)

app.include_router(auth.router)
app.include_router(users.router)
app.include_router(health.router)


@app.on_event("startup")
async def on_startup() -> None:
    await wait_for_database()
    Base.metadata.create_all(bind=engine)
    logger.info("%s started (%s)", settings.app_name, settings.environment)


async def wait_for_database(max_attempts: int = 8, delay_seconds: float = 1.5) -> None:
    attempt = 0
    delay = delay_seconds
    while attempt < max_attempts:
        attempt += 1
        try:
            with engine.connect():
                return
        except OperationalError as exc:
            if attempt >= max_attempts:
                logger.error(
                    "Database connection failed after %s attempts.",
                    attempt,
                    exc_info=exc,
                )
                raise
            logger.warning(
                "Database not ready (attempt %s/%s). Retrying in %.1fs.",
                attempt,
                max_attempts,
                delay,
            )
            await asyncio.sleep(delay)
            delay = min(delay * 1.5, 10.0)
