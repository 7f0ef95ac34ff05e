"""
FastAPI application entry point for the account service.
"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import structlog
import uvicorn

from .api.auth import router as auth_router
from .container import Container
from .core.config import Settings, get_settings
from .core.exceptions import AuthError
from .core.logging import configure_logging
from .schemas.auth_schemas import ErrorResponse

logger = structlog.get_logger()


async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    logger.info(
        "Request failed",
        path=request.url.path,
        code=exc.code,
        status_code=exc.status_code,
    )
    body = ErrorResponse(code=exc.code, message=exc.message, details=exc.details)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(exclude_none=True))


def create_app(settings: Optional[Settings] = None, container: Optional[Container] = None) -> FastAPI:
    """
    Build the application.
    A prepared container may be passed in (tests); otherwise one is built from
    the settings, which default to the process environment.
    """
    if container is None:
        settings = settings or get_settings()
        container = Container(settings)
    settings = container.settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting account service", version=settings.VERSION, environment=settings.ENVIRONMENT)
        await container.startup()
        try:
            yield
        finally:
            logger.info("Shutting down account service")
            await container.shutdown()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.VERSION,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url=None,
        openapi_url="/openapi.json" if settings.DEBUG else None,
        lifespan=lifespan,
    )
    app.state.container = container
    app.add_exception_handler(AuthError, auth_error_handler)
    app.include_router(auth_router, prefix=settings.API_V1_STR)

    @app.get("/health")
    async def health():
        return {"status": "healthy", "service": settings.APP_NAME, "version": settings.VERSION}

    return app


def run() -> None:
    settings = get_settings()
    configure_logging(settings.DEBUG)
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.PORT)


if __name__ == "__main__":
    run()
