import logging

import redis
from fastapi import APIRouter
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from taskboard.core.config import settings
from taskboard.core.database import SessionLocal

router = APIRouter(tags=["health"])
logger = logging.getLogger(__name__)


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/ready")
def ready():
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.warning("Readiness check failed: database unavailable")
        return JSONResponse(status_code=503, content={"status": "unavailable", "component": "database"})
    finally:
        db.close()
    redis_client = redis.Redis.from_url(settings.redis_url, socket_connect_timeout=0.5)
    try:
        redis_client.ping()
    except RedisError:
        logger.warning("Readiness check failed: redis unavailable")
        return JSONResponse(status_code=503, content={"status": "unavailable", "component": "redis"})
    finally:
        redis_client.close()
    return {"status": "ready"}
