import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from jobchat.config import settings
from jobchat.core import ClientCore
from jobchat.errors import ChatSessionNotFound, MalformedDataUri
from jobchat.logging_setup import configure_logging
from jobchat.api.v1.router import api_v1_router

logger = logging.getLogger(__name__)


def create_app(core: Optional[ClientCore] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown lifecycle."""
        configure_logging(settings.LOG_LEVEL)
        app.state.core = core or ClientCore()
        await app.state.core.startup()
        logger.info("client_core_started", extra={"extra": {"api": app.state.core.api.base_url}})
        yield
        await app.state.core.shutdown()

    app = FastAPI(
        title="JobChat",
        description="Chat, attachment and push-notification core for the job portal mobile client",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_URL, "http://localhost:8081", "http://localhost:19006"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(MalformedDataUri)
    async def malformed_data_uri_handler(request: Request, exc: MalformedDataUri):
        return JSONResponse(status_code=422, content={"detail": exc.reason})

    @app.exception_handler(ChatSessionNotFound)
    async def session_not_found_handler(request: Request, exc: ChatSessionNotFound):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    app.include_router(api_v1_router, prefix="/api/v1")

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "version": "0.1.0"}

    return app


app = create_app()
