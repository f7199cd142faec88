from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from authgate.api.deps import get_rate_limiter
from authgate.api.errors import register_exception_handlers
from authgate.api.routers.auth import router as auth_router
from authgate.api.routers.link import router as link_router
from authgate.shared.config import get_settings


logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    if get_rate_limiter.cache_info().currsize:
        get_rate_limiter().close()
        logger.info("main: rate_limiter_closed")


def create_app() -> FastAPI:
    settings = get_settings()
    _configure_logging(settings.log_level)

    app = FastAPI(title="Authgate API", lifespan=lifespan)
    if settings.cors_allow_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.cors_allow_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    register_exception_handlers(app)
    app.include_router(auth_router)
    app.include_router(link_router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()
