"""
Storefront catalog application entry point.
"""

import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger

from storefront.config import Settings, settings as default_settings
from storefront.database import build_engine, build_session_maker, create_tables
from storefront.exceptions import ValidationError
from storefront.routers import categories
from storefront.validation import field_errors


def configure_logging(settings: Settings) -> None:
    logger.remove()
    logger.add(sys.stderr, level=settings.LOG_LEVEL.upper(), backtrace=settings.DEBUG)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings)

    engine = build_engine(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting {} {}", settings.PROJECT_NAME, settings.VERSION)
        if settings.AUTO_CREATE_TABLES:
            logger.info("Creating database tables")
            await create_tables(engine)
        yield
        await engine.dispose()
        logger.info("Database engine disposed")

    app = FastAPI(title=settings.PROJECT_NAME, version=settings.VERSION, lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_maker = build_session_maker(engine)

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError):
        error = ValidationError(field_errors(exc.errors()))
        logger.debug("Rejected {} {}: {}", request.method, request.url.path, error.message)
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": error.to_dict()},
        )

    app.include_router(categories.router, prefix=settings.API_PREFIX)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "storefront.main:app",
        host=default_settings.HOST,
        port=default_settings.PORT,
        reload=default_settings.DEBUG,
        log_level=default_settings.LOG_LEVEL.lower(),
    )
