from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from docmerge.api import api_router
from docmerge.core.config import Settings, get_settings, resolve_soffice_path
from docmerge.core.errors import MissingEngineError
from docmerge.pipeline.orchestrator import MergePipeline
from docmerge.utils.to_pdf import SofficeConverter

logger = logging.getLogger(__name__)


def build_pipeline(settings: Settings) -> MergePipeline:
    """Resolve LibreOffice once and wire the default collaborators."""
    soffice = resolve_soffice_path(settings.soffice_path)
    logger.info("Using LibreOffice at: %s", soffice)
    return MergePipeline(SofficeConverter(soffice, timeout=settings.convert_timeout))


def create_app(
    pipeline: Optional[MergePipeline] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # missing soffice aborts startup instead of failing every request
        if getattr(app.state, "pipeline", None) is None:
            app.state.pipeline = build_pipeline(settings)
        yield

    app = FastAPI(title="docmerge", lifespan=lifespan)
    if pipeline is not None:
        app.state.pipeline = pipeline

    # ----------------------------
    # Healthcheck (for Docker)
    # ----------------------------
    @app.get("/health", include_in_schema=False)
    def health() -> PlainTextResponse:
        return PlainTextResponse("ok")

    # ----------------------------
    # CORS
    # ----------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_allow_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ----------------------------
    # API routers
    # ----------------------------
    # /merge for the bundled form, /api/merge behind a reverse proxy
    app.include_router(api_router)
    app.include_router(api_router, prefix="/api")

    return app


app = create_app()


def serve() -> None:
    """Console entry point: check LibreOffice, then run uvicorn."""
    import uvicorn

    from docmerge.core.logging_config import configure_logging

    settings = get_settings()
    configure_logging(settings.log_level)

    try:
        pipeline = build_pipeline(settings)
    except MissingEngineError as e:
        logger.error("%s", e)
        sys.exit(1)

    uvicorn.run(create_app(pipeline=pipeline, settings=settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    serve()
