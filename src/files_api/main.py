from contextlib import asynccontextmanager
from textwrap import dedent
import logging
import pydantic
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.routing import APIRoute

from files_api.errors import (
    FilesApiError,
    handle_broad_exceptions,
    handle_files_api_errors,
    handle_pydantic_validation_errors,
)
from files_api.routers.auth import router as auth_router
from files_api.routers.files import router as files_router
from files_api.routers.health import router as health_router
from files_api.routers.users import router as users_router
from files_api.services import Services, build_services
from files_api.settings import Settings, get_settings

# Set up logging
logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, services: Services | None = None) -> FastAPI:
    """Create a FastAPI application.

    ``services`` may be injected pre-built (tests do this); otherwise the
    lifespan builds them from ``settings`` and closes them on shutdown.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = services is None
        app.state.services = services or build_services(settings)
        app.state.services.db.init_collections()
        logger.info(f"{settings.app_name} started in {settings.deployment_mode} mode")
        try:
            yield
        finally:
            if owned:
                app.state.services.close()

    app = FastAPI(
        title="Files API",
        summary="Store user files and folders behind token authentication",
        version="v1",
        description=dedent(
            """\
        Register with `POST /users`, obtain a token from `GET /connect` using
        HTTP Basic credentials, then send it in the `X-Token` header.

        | Resource | Notes |
        | --- | --- |
        | `/files` | Folders, files and images; images get thumbnails in the background |
        | `/status`, `/stats` | Store liveness and document counts |
        """
        ),
        docs_url="/docs",
        generate_unique_id_function=custom_generate_unique_id,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.include_router(health_router, tags=["health"])
    app.include_router(users_router, tags=["users"])
    app.include_router(auth_router, tags=["auth"])
    app.include_router(files_router, tags=["files"])

    app.add_exception_handler(
        exc_class_or_status_code=FilesApiError,
        handler=handle_files_api_errors,
    )
    app.add_exception_handler(
        exc_class_or_status_code=pydantic.ValidationError,
        handler=handle_pydantic_validation_errors,
    )
    app.add_exception_handler(
        exc_class_or_status_code=RequestValidationError,
        handler=handle_pydantic_validation_errors,
    )
    app.middleware("http")(handle_broad_exceptions)

    return app


def custom_generate_unique_id(route: APIRoute):
    """
    Generate prettier `operationId`s in the OpenAPI schema.

    These become the function names in generated client SDKs.
    """
    return f"{route.tags[0]}-{route.name}"


if __name__ == "__main__":
    import uvicorn

    app = create_app()
    uvicorn.run(app, host="0.0.0.0", port=8000)
