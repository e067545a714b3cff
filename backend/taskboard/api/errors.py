import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from taskboard.errors import AppError, InternalError, Unauthenticated, ValidationFailed

logger = logging.getLogger(__name__)


def error_response(error: AppError) -> JSONResponse:
    payload = {"error": error.code, "message": error.message}
    if error.details is not None:
        payload["details"] = jsonable_encoder(error.details)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(error, Unauthenticated) else None
    return JSONResponse(status_code=error.status_code, content=payload, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError):
        log = logger.error if exc.status_code >= 500 else logger.info
        log("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.code)
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        details = [
            {"field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"), "message": err.get("msg")}
            for err in exc.errors()
        ]
        return error_response(ValidationFailed(details=details))

    @app.exception_handler(Exception)
    async def handle_uncaught(request: Request, exc: Exception):
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path, exc_info=exc)
        return error_response(InternalError())
