"""
Product Data Interchange — Main Application

FastAPI application entry point.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import Optional
import structlog
from datetime import datetime

from config import Settings, get_settings, get_supabase_client, check_connection
from routes import cpi_router, export_router, imports_router
from services.export_service import ExportService, default_registry
from services.import_service import ImportService
from services.product_store import InMemoryProductStore, ProductStore, SupabaseProductStore

logger = structlog.get_logger(__name__)


def configure_logging(settings: Settings) -> None:
    """Structured logging: JSON in production, console otherwise."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer() if settings.is_production
                else structlog.dev.ConsoleRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def build_store(settings: Settings) -> ProductStore:
    """Supabase when credentials are set, otherwise in-process."""
    if settings.supabase_configured:
        return SupabaseProductStore(get_supabase_client(settings), table=settings.products_table)
    logger.warning("supabase_not_configured_using_memory_store")
    return InMemoryProductStore()


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[ProductStore] = None,
) -> FastAPI:
    """
    Build the application.

    The store and services are created once here and live on app.state;
    routes read them from the request.
    """
    settings = settings or get_settings()
    configure_logging(settings)
    store = store if store is not None else build_store(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan handler.

        Startup: Check database connection
        Shutdown: Clean up resources
        """
        logger.info(
            "application_starting",
            environment=settings.environment,
            debug=settings.debug,
            store=type(store).__name__
        )

        if isinstance(store, SupabaseProductStore):
            db_status = check_connection(store.db, store.table)
            if db_status["status"] == "healthy":
                logger.info("database_connected", products=db_status["products_count"])
            else:
                logger.error("database_connection_failed", error=db_status.get("error"))

        yield

        logger.info("application_shutting_down")

    app = FastAPI(
        title="Product Data Interchange",
        description="CSV product import and multi-marketplace export",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    app.state.settings = settings
    app.state.store = store
    app.state.import_service = ImportService(store, settings.import_options())
    app.state.export_service = ExportService(store, default_registry(), settings.export_defaults())

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:3000",
            "http://localhost:5173",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"],
    )

    # ===================
    # ROUTES
    # ===================

    @app.get("/health")
    async def health_check():
        """
        Health check endpoint.

        Returns:
            Basic health status and database connection state
        """
        if isinstance(store, SupabaseProductStore):
            db_status = check_connection(store.db, store.table)
        else:
            db_status = {"status": "healthy", "store": "memory"}

        return {
            "status": "healthy" if db_status["status"] == "healthy" else "degraded",
            "timestamp": datetime.utcnow().isoformat(),
            "environment": settings.environment,
            "database": db_status
        }

    @app.get("/")
    async def root():
        """
        Root endpoint.

        Returns:
            API information and available endpoints
        """
        return {
            "name": "Product Data Interchange API",
            "version": "0.1.0",
            "docs": "/docs" if settings.debug else "Disabled in production",
            "health": "/health",
            "endpoints": {
                "bulk_import": "/api/products/bulk-import",
                "export": "/api/export/multi-format",
                "export_formats": "/api/export/formats",
                "cpi_template": "/api/cpi/template"
            }
        }

    # ===================
    # ERROR HANDLERS
    # ===================

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Global exception handler.

        Catches unhandled exceptions and returns standard error format.
        """
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            error_type=type(exc).__name__
        )

        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "An unexpected error occurred",
                    "details": str(exc) if settings.debug else None,
                    "timestamp": datetime.utcnow().isoformat()
                }
            }
        )

    # ===================
    # INCLUDE ROUTERS
    # ===================
    app.include_router(imports_router, prefix="/api/products", tags=["Import"])
    app.include_router(export_router, prefix="/api/export", tags=["Export"])
    app.include_router(cpi_router, prefix="/api/cpi", tags=["CPI"])

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug
    )
