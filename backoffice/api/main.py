from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backoffice import __version__
from backoffice.api.errors import register_exception_handlers
from backoffice.api.middleware import RequestLoggingMiddleware
from backoffice.api.routers import (
    admins,
    delete_requests,
    documents,
    groups,
    health,
    notifications,
    permissions,
    role_permissions,
    roles,
    tasks,
    users,
)
from backoffice.core.config import get_settings
from backoffice.core.logger import configure_logging


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        description="Document, task and access-control back office",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request logging - one line per API request
    app.add_middleware(RequestLoggingMiddleware)

    register_exception_handlers(app)

    # Include routers
    app.include_router(health.router)
    app.include_router(admins.router, prefix=settings.api_prefix)
    app.include_router(users.router, prefix=settings.api_prefix)
    app.include_router(groups.router, prefix=settings.api_prefix)
    app.include_router(documents.router, prefix=settings.api_prefix)
    app.include_router(delete_requests.router, prefix=settings.api_prefix)
    app.include_router(roles.router, prefix=settings.api_prefix)
    app.include_router(permissions.router, prefix=settings.api_prefix)
    app.include_router(role_permissions.router, prefix=settings.api_prefix)
    app.include_router(tasks.router, prefix=settings.api_prefix)
    app.include_router(notifications.router, prefix=settings.api_prefix)

    @app.get("/")
    async def root():
        return {
            "name": settings.app_name,
            "version": __version__,
            "docs": "/docs" if settings.debug else None,
        }

    return app


app = create_app()
