from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fieldjobs.application import get_services
from fieldjobs.core.logging_setup import setup_logging
from fieldjobs.routes import leases, notifications, planning, projects


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # open planning sessions are flushed and edit leases released on shutdown
    await get_services().aclose()


def create_app() -> FastAPI:
    app = FastAPI(title="Fieldjobs Project API", version="0.1.0", lifespan=lifespan)

    services = get_services()
    setup_logging(services.settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=services.settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(projects.router, prefix="/api")
    app.include_router(leases.router, prefix="/api")
    app.include_router(leases.editing_router, prefix="/api")
    app.include_router(planning.router, prefix="/api")
    app.include_router(notifications.router, prefix="/api")

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "Fieldjobs Project API",
                "docs": "/docs",
                "health": "/api/projects",
            }
        )

    return app


app = create_app()
