"""
FastAPI server for SmartCube Core
"""
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .routes import router
from ..core.bootstrap import build_container
from ..core.config import Config
from ..core.container import ServiceContainer
from ..core.errors import SmartCubeError
from ..utils.logger import get_logger

logger = get_logger(__name__)

VERSION = "0.1.0"


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Build the FastAPI app

    Args:
        container: Prebuilt services; when omitted they are built on startup
    """
    app = FastAPI(title="SmartCube Core API", version=VERSION)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, restrict this
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routes
    app.include_router(router, prefix="/api/v1")

    if container is not None:
        app.state.container = container

    @app.on_event("startup")
    async def startup():
        """Initialize services on startup"""
        if getattr(app.state, "container", None) is None:
            app.state.container = build_container(mode=Config.MODE)

    @app.exception_handler(SmartCubeError)
    async def smartcube_error_handler(request: Request, exc: SmartCubeError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "code": exc.code})

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "service": "SmartCube Core",
            "version": VERSION,
            "mode": Config.MODE,
            "status": "running"
        }

    @app.get("/health")
    async def health():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "mode": Config.MODE
        }

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=Config.API_HOST, port=Config.API_PORT)
