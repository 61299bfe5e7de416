"""FastAPI application for AgentFlow."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .database import create_engine, create_session_factory, init_db
from .routes import router
from .services import AgentFlowServices, build_services

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def create_app(services: Optional[AgentFlowServices] = None) -> FastAPI:
    """
    Create the FastAPI app.

    Args:
        services: Pre-built services; when omitted they are built from
            settings during startup
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan context manager for startup/shutdown."""
        logger.info("Starting AgentFlow API")
        engine = None
        if services is None:
            engine = create_engine(settings.database_url, echo=settings.debug)
            await init_db(engine)
            logger.info("Database initialized")
            app.state.services = build_services(settings, create_session_factory(engine))
        else:
            app.state.services = services

        yield

        logger.info("Shutting down AgentFlow API")
        if engine is not None:
            await engine.dispose()

    app = FastAPI(
        title="AgentFlow API",
        description="Agents, AI task generation and human dependency tracking",
        version="0.1.0",
        lifespan=lifespan
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": "AgentFlow API",
            "version": "0.1.0",
            "status": "running"
        }

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy"}

    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
