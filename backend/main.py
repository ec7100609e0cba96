"""
FastAPI application entry point
"""

import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from polybox.editor import AnnotationError
from backend.config import (
    CORS_ORIGINS, API_HOST, API_PORT, LOG_LEVEL, SURFACE_MAX_WIDTH, SURFACE_MAX_HEIGHT,
)
from backend.api import images, labels, editor, export
from backend.api.session import get_editor, reset_editor

logging.basicConfig(
    level=LOG_LEVEL, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the editor session up front and drop it on shutdown."""
    get_editor()
    logger.info(f"polybox API ready, surface fits {SURFACE_MAX_WIDTH}x{SURFACE_MAX_HEIGHT}")
    yield
    reset_editor()
    logger.info("polybox API stopped, session discarded")


app = FastAPI(
    title="polybox API",
    description="Box and polygon image annotation editor",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(AnnotationError)
async def annotation_error_handler(request: Request, exc: AnnotationError):
    """Editing errors that escape the editor are client errors."""
    logger.warning(f"{request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Log all unhandled exceptions with full traceback."""
    logger.error(f"Unhandled exception on {request.method} {request.url.path}:")
    logger.error(traceback.format_exc())
    return JSONResponse(status_code=500, content={"detail": str(exc)})


app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(images.router, prefix="/api/images", tags=["Images"])
app.include_router(labels.router, prefix="/api/labels", tags=["Labels"])
app.include_router(editor.router, prefix="/api/editor", tags=["Editor"])
app.include_router(export.router, prefix="/api/export", tags=["Export"])


@app.get("/api/health")
async def health_check():
    """Health check with the size of the current session."""
    store = get_editor().store
    return {
        "status": "healthy",
        "service": "polybox-api",
        "images": store.get_image_count(),
        "labels": len(store.labels),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=API_HOST, port=API_PORT)
