from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.admins.router import router as admins_router
from app.api.v1.auth.router import password_router
from app.api.v1.auth.router import router as auth_router
from app.api.v1.classes.classes_router import router as classes_router
from app.api.v1.email.router import router as email_router
from app.api.v1.entities.router import router as entities_router
from app.api.v1.identity.router import router as identity_router
from app.api.v1.notifications.router import router as notifications_router
from app.api.v1.subject_assignments.router import router as subject_assignments_router
from app.api.v1.sync.router import router as sync_router
from app.core.config import settings
from app.core.logging_config import init_logging, install_request_logging
from app.core.services import AppServices, build_services


def create_app(services: Optional[AppServices] = None) -> FastAPI:
    init_logging(settings.log_level, settings.log_format)
    services = services or build_services(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await services.startup()
        yield
        await services.shutdown()

    app = FastAPI(title="School Sync Backend", lifespan=lifespan)
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_request_logging(app)

    # Routers
    app.include_router(auth_router)
    app.include_router(password_router)
    app.include_router(admins_router)
    app.include_router(email_router)
    app.include_router(identity_router)
    app.include_router(notifications_router)
    app.include_router(classes_router)
    app.include_router(subject_assignments_router)
    app.include_router(entities_router)
    app.include_router(sync_router)

    return app


app = create_app()
