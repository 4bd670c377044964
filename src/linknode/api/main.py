"""FastAPI application for the link-node view.

One process serves one interactive graph session.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from linknode.api.routes import router
from linknode.config import Settings, settings
from linknode.view import LinkNodeView

logger = logging.getLogger(__name__)


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    app_settings = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Manage application lifespan - startup and shutdown."""
        logger.info("Starting link-node API...")
        app.state.view = LinkNodeView(app_settings)
        app.state.candidates = []
        logger.info(
            f"Surface {app_settings.surface_width}x{app_settings.surface_height}, "
            f"{app_settings.layout_workers} layout workers"
        )

        yield

        logger.info("Shutting down link-node API...")

    app = FastAPI(
        title="Linknode",
        description="Interactive entity-relationship graph built from tabular records",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    uvicorn.run(
        "linknode.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_debug,
    )
