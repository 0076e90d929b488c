"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from reportflow.api.v1 import automation
from reportflow.core.config import settings
from reportflow.core.logging import get_logger, setup_logging
from reportflow.runtime import build_runtime


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle hooks."""
    setup_logging("DEBUG" if settings.APP_ENV == "development" else "INFO")
    logger = get_logger("startup")
    logger.info("Application starting", env=settings.APP_ENV)

    runtime = build_runtime(settings)
    app.state.runtime = runtime

    if settings.AUTOMATION_AUTOSTART:
        await runtime.listener.start()

    yield

    logger.info("Application shutting down")
    await runtime.aclose()


app = FastAPI(
    title="Report Automation",
    description="Processes new orders through storage, analysis and report publishing",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(automation.router)


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Public health-check endpoint."""
    return {"status": "ok", "env": settings.APP_ENV}
