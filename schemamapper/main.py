"""SchemaMapper — FastAPI application entry point.

Creates the editor session registry on startup and registers API routers.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from schemamapper.api import drag_drop, health, mapping, sessions, validation
from schemamapper.core.config import settings
from schemamapper.core.editor_session import SessionRegistry

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the session registry on startup, close open sessions on shutdown."""
    logger.info("Starting SchemaMapper backend...")

    app.state.session_registry = SessionRegistry()
    logger.info("Session registry initialized")

    logger.info("SchemaMapper backend ready")
    yield

    registry = app.state.session_registry
    open_sessions = registry.list_sessions()
    for session_id in open_sessions:
        registry.remove(session_id)
    logger.info(f"SchemaMapper backend stopped ({len(open_sessions)} sessions closed)")


app = FastAPI(
    title="SchemaMapper",
    version="0.1.0",
    description="Drag-and-drop mapping of dataset columns onto knowledge-base "
                "entity schemas, with validation at every step.",
    lifespan=lifespan,
)

app.include_router(health.router, prefix="/api", tags=["health"])
app.include_router(sessions.router, prefix="/api", tags=["sessions"])
app.include_router(drag_drop.router, prefix="/api", tags=["drag-drop"])
app.include_router(mapping.router, prefix="/api", tags=["mapping"])
app.include_router(validation.router, prefix="/api", tags=["validation"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("schemamapper.main:app", host=settings.backend_host, port=settings.backend_port)
