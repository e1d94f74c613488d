"""
Main FastAPI application for the library backend
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..auth.tokens import TokenService
from ..config import Settings, settings
from ..database.connection import dispose_database, init_database, test_database_connection
from ..graphql.resolvers.engine import ResolverEngine
from ..logging import configure_logging, get_logger
from ..middleware import LoggingContextMiddleware
from ..notifier import create_notifier

# Configure logging before creating logger
configure_logging(debug=settings.debug, log_level=settings.log_level)
logger = get_logger(__name__)


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    app_settings = app_settings or settings

    tokens = TokenService.from_settings(app_settings)
    notifier = create_notifier(app_settings)
    engine = ResolverEngine(tokens=tokens, notifier=notifier, settings=app_settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        logger.info("Starting library API...", notifier_backend=app_settings.notifier_backend)
        init_database()

        ok, error = await test_database_connection()
        if ok:
            logger.info("Database connection verified")
        else:
            logger.error("Database connection check failed", error=error)

        if app_settings.environment.lower() not in ("development", "dev", "test"):
            logger.warning(
                "Shared-secret login is enabled: every account accepts the same password",
                environment=app_settings.environment,
            )

        yield

        logger.info("Shutting down library API...")
        await notifier.close()
        await dispose_database()

    app = FastAPI(
        title="Library API",
        description="Bibliographic catalog with GraphQL queries, mutations and subscriptions",
        version=__version__,
        lifespan=lifespan,
        debug=app_settings.debug,
    )
    app.state.engine = engine
    app.state.tokens = tokens
    app.state.notifier = notifier

    app.add_middleware(LoggingContextMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health_check():  # pyright: ignore [reportUnusedFunction]
        """Health check endpoint."""
        return {"status": "healthy", "version": __version__}

    try:
        from ..graphql.schema import create_graphql_router, validate_schema

        logger.info("Validating GraphQL schema...")
        validate_schema()

        graphql_router = create_graphql_router(engine, tokens, graphiql=app_settings.debug)
        app.include_router(graphql_router, prefix="")
        logger.info("GraphQL endpoint initialized successfully", endpoint="/graphql")
    except Exception as e:  # pragma: no cover
        logger.error("Failed to initialize GraphQL endpoint", error=str(e))
        raise

    return app


# Create the main application instance
app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "library_backend.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        log_level=settings.log_level.lower(),
    )
