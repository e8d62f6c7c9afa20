"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from shikhi.config import get_settings
from shikhi.courses.admin_router import router as admin_courses_router
from shikhi.courses.router import router as courses_router
from shikhi.database import close_db, init_db
from shikhi.enrollments.router import admin_router as admin_enrollments_router
from shikhi.enrollments.router import router as enrollments_router
from shikhi.health.router import router as health_router
from shikhi.messages.router import router as messages_router
from shikhi.middleware import setup_middleware
from shikhi.progress.router import router as progress_router
from shikhi.ratings.router import admin_router as admin_ratings_router
from shikhi.ratings.router import router as ratings_router
from shikhi.redis_client import close_redis, init_redis
from shikhi.users.router import router as users_router


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Shikhi API",
        description="Backend API for Shikhi, a Japanese-language course platform",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(users_router)
    app.include_router(courses_router)
    app.include_router(progress_router)
    app.include_router(ratings_router)
    app.include_router(enrollments_router)
    app.include_router(messages_router)
    app.include_router(admin_courses_router)
    app.include_router(admin_enrollments_router)
    app.include_router(admin_ratings_router)

    return app


app = create_app()
