import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from reprocessor.application import build_session, configure_session, reset_session
from reprocessor.core.settings import Settings, load_settings
from reprocessor.infrastructure import Notifier, PushChannel, ReprocessingService
from reprocessor.routes import events, jobs, logs, preview, session

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    service: ReprocessingService | None = None,
    channel: PushChannel | None = None,
    notifier: Notifier | None = None,
) -> FastAPI:
    settings = settings or load_settings()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger("reprocessor").setLevel(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        reprocessor_session = build_session(settings, service=service, channel=channel, notifier=notifier)
        configure_session(reprocessor_session)
        await reprocessor_session.start()
        logger.info("Reprocessor session started")
        try:
            yield
        finally:
            await reprocessor_session.stop()
            close = getattr(reprocessor_session.service, "aclose", None)
            if close is not None:
                await close()
            reset_session()
            logger.info("Reprocessor session stopped")

    app = FastAPI(title="Record Reprocessor API", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(session.router, prefix="/api")
    app.include_router(preview.router, prefix="/api")
    app.include_router(jobs.router, prefix="/api")
    app.include_router(events.router, prefix="/api")
    app.include_router(logs.router, prefix="/api")

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "Record Reprocessor API",
                "docs": "/docs",
                "health": "/api/session",
            }
        )

    return app


app = create_app()
