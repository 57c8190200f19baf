"""
FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import pydantic
import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from contract_studio import __version__
from contract_studio.config import get_settings
from contract_studio.exceptions import ContractStudioError
from contract_studio.logging_config import configure_logging

logger = structlog.get_logger(__name__)

CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type", "x-user-id"]


def _format_validation_errors(errors: list[dict]) -> str:
    parts = []
    for err in errors:
        loc = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts) or "Invalid request"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    from contract_studio.storage import get_store

    settings = get_settings()
    configure_logging(settings)
    logger.info(
        "application_starting",
        environment=settings.environment,
        debug=settings.debug,
        database=settings.uses_database,
    )

    store = get_store()
    await store.init_schema()

    yield

    logger.info("application_shutting_down")
    await store.close()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Contract Studio API",
        description="AI-assisted legal document analysis and contract drafting",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=CORS_ALLOW_HEADERS,
    )

    # Exception handlers; every error body is {"error": <message>}
    @app.exception_handler(ContractStudioError)
    async def application_error_handler(
        request: Request,
        exc: ContractStudioError,
    ) -> JSONResponse:
        log = logger.warning if exc.status_code < 500 else logger.error
        log(
            "request_failed",
            path=request.url.path,
            method=request.method,
            status_code=exc.status_code,
            error=exc.message,
        )
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(
        request: Request,
        exc: StarletteHTTPException,
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"error": _format_validation_errors(exc.errors())},
        )

    @app.exception_handler(pydantic.ValidationError)
    async def model_validation_handler(
        request: Request,
        exc: pydantic.ValidationError,
    ) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"error": _format_validation_errors(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
        )
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    # Include routers
    from contract_studio.api.routes import catalog, contracts, documents, functions

    app.include_router(functions.router, prefix="/api/v1", tags=["functions"])
    app.include_router(documents.router, prefix="/api/v1/documents", tags=["documents"])
    app.include_router(contracts.router, prefix="/api/v1/contracts", tags=["contracts"])
    app.include_router(catalog.router, prefix="/api/v1/catalog", tags=["catalog"])

    # Health check
    @app.get("/health")
    async def health_check() -> dict:
        """Health check endpoint."""
        from contract_studio.services.providers import get_provider_registry
        from contract_studio.storage import get_store

        store_ok = await get_store().health_check()

        return {
            "status": "healthy" if store_ok else "degraded",
            "services": {
                "providers": get_provider_registry().health_check(),
                "store": store_ok,
            },
        }

    # Root endpoint
    @app.get("/")
    async def root() -> dict:
        """Root endpoint."""
        return {
            "name": "Contract Studio API",
            "version": __version__,
            "docs": "/docs",
        }

    return app


# Create default app instance
app = create_app()
