"""
Main FastAPI application for the social engagement backend.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.config import DEBUG, LOG_LEVEL
from app.errors import SocialError
from app.routes import comments, hashtags, health, notifications, posts, users

logger = logging.getLogger(__name__)

ROUTERS = (posts.router, comments.router, users.router, hashtags.router, notifications.router, health.router)


def error_response(status_code: int, error_code: str, message: str, details: Optional[str]) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error_code": error_code, "message": message, "details": details},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Map domain errors onto their status; everything else becomes a logged 500."""

    @app.exception_handler(SocialError)
    async def social_error_handler(request: Request, exc: SocialError):
        if exc.status_code >= 500:
            logger.error("%s on %s %s: %s", exc.error_code, request.method, request.url.path, exc.details)
        return error_response(exc.status_code, exc.error_code, exc.message, exc.details if app.debug else None)

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.exception("Database error on %s %s", request.method, request.url.path)
        details = str(exc) if app.debug else None
        return error_response(500, "DATABASE_ERROR", "Database operation failed", details)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        details = str(exc) if app.debug else None
        return error_response(500, "INTERNAL_ERROR", "An unexpected error occurred", details)


def create_app() -> FastAPI:
    """
    Build the API: logging, CORS, error handlers and every router.

    Returns:
        Configured FastAPI app instance
    """
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")

    app = FastAPI(
        title="Social Engagement API",
        description="Posts, likes, comments, follows, hashtags and real-time notifications",
        version=health.VERSION,
        debug=DEBUG,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)
    for router in ROUTERS:
        app.include_router(router)

    @app.get("/")
    async def root():
        return {"message": "Social Engagement API", "status": "healthy", "version": health.VERSION}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, log_level=LOG_LEVEL.lower())
