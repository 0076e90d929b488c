"""
AutomationRuntime — builds and owns every long-lived collaborator.

Created once by the FastAPI lifespan (or a script) and closed on
shutdown: stop the listener, give in-flight workflows a grace period
before cancelling them, cancel polling loops, close the HTTP client
and dispose the engine.
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from reportflow.clients.analysis import AnalysisClient
from reportflow.clients.cdn import CloudinaryClient
from reportflow.clients.credentials import CredentialFetcher
from reportflow.clients.http import create_http_client
from reportflow.clients.jobs import JobStatusClient
from reportflow.clients.storage import StorageClient
from reportflow.core.config import Settings
from reportflow.core.logging import get_logger
from reportflow.db.session import create_engine, create_session_factory
from reportflow.ingestion.backoff import ReconnectPolicy
from reportflow.ingestion.change_listener import ChangeListener
from reportflow.ingestion.change_stream import (
    ChangeStream,
    PostgresChangeStream,
    StoredOrderLoader,
)
from reportflow.pipeline.engine import OrderHandler
from reportflow.pipeline.finalize import OrderFinalizer
from reportflow.pipeline.polling import PollingSupervisor
from reportflow.pipeline.steps import (
    DownloadSourceStep,
    FetchCookieStep,
    FetchTokenStep,
    RequestAnalysisStep,
    UploadToStorageStep,
)
from reportflow.processing.artifacts import ArtifactPostProcessor
from reportflow.processing.pages import PageRemover
from reportflow.services.refunds import RefundIssuer

logger = get_logger(__name__)


@dataclass
class AutomationRuntime:
    engine: AsyncEngine | None
    session_factory: async_sessionmaker[AsyncSession]
    http: httpx.AsyncClient
    handler: OrderHandler
    supervisor: PollingSupervisor
    listener: ChangeListener
    shutdown_grace_seconds: float = 10.0

    async def aclose(self) -> None:
        await self.listener.stop()
        unfinished = await self.listener.drain(timeout=self.shutdown_grace_seconds)
        if unfinished:
            logger.warning("Cancelling unfinished order workflows", count=unfinished)
            await self.listener.cancel_in_flight()
        await self.supervisor.shutdown()
        await self.http.aclose()
        if self.engine is not None:
            await self.engine.dispose()
        logger.info("Automation runtime closed")


def build_handler(
    settings: Settings,
    http: httpx.AsyncClient,
    session_factory: async_sessionmaker[AsyncSession],
) -> tuple[OrderHandler, PollingSupervisor]:
    """Wire the order handler and its polling supervisor."""
    refunds = RefundIssuer(session_factory)
    finalizer = OrderFinalizer(session_factory, refunds)

    credentials = CredentialFetcher(
        http,
        token_url=settings.CREDENTIAL_TOKEN_URL,
        cookie_url=settings.CREDENTIAL_COOKIE_URL,
    )
    storage = StorageClient(
        http,
        base_url=settings.STORAGE_BASE_URL,
        api_key=settings.STORAGE_API_KEY,
        bucket=settings.STORAGE_BUCKET,
        workflow_id=settings.WORKFLOW_ID,
    )
    analysis = AnalysisClient(
        http,
        submit_url=settings.ANALYSIS_SUBMIT_URL,
        workflow_id=settings.WORKFLOW_ID,
    )
    jobs = JobStatusClient(
        http,
        base_url=settings.STORAGE_BASE_URL,
        api_key=settings.STORAGE_API_KEY,
    )
    cdn = CloudinaryClient(
        http,
        cloud_name=settings.CLOUDINARY_CLOUD_NAME,
        api_key=settings.CLOUDINARY_API_KEY,
        api_secret=settings.CLOUDINARY_API_SECRET,
        folder=settings.CDN_FOLDER,
        base_url=settings.CLOUDINARY_UPLOAD_BASE_URL,
    )
    post_processor = ArtifactPostProcessor(
        http,
        page_remover=PageRemover(settings.QPDF_BINARY),
        cdn=cdn,
        public_id_prefix=settings.CDN_PREFIX,
        temp_dir=settings.TEMP_DIR,
    )

    supervisor = PollingSupervisor(
        jobs,
        post_processor,
        finalizer,
        interval_seconds=settings.POLL_INTERVAL_SECONDS,
        max_wait_seconds=settings.POLL_MAX_WAIT_SECONDS,
    )
    handler = OrderHandler(
        steps=[
            FetchTokenStep(credentials),
            DownloadSourceStep(http),
            UploadToStorageStep(storage),
            FetchCookieStep(credentials),
            RequestAnalysisStep(analysis),
        ],
        finalizer=finalizer,
        supervisor=supervisor,
    )
    return handler, supervisor


def build_runtime(
    settings: Settings,
    *,
    stream: ChangeStream | None = None,
    engine: AsyncEngine | None = None,
    http: httpx.AsyncClient | None = None,
) -> AutomationRuntime:
    """Build the full runtime from settings; collaborators can be injected."""
    engine = engine or create_engine(settings.DATABASE_URL)
    session_factory = create_session_factory(engine)
    http = http or create_http_client(settings.HTTP_TIMEOUT_SECONDS)

    handler, supervisor = build_handler(settings, http, session_factory)

    listener = ChangeListener(
        stream
        or PostgresChangeStream(
            settings.LISTEN_DSN,
            settings.ORDER_EVENTS_CHANNEL,
            StoredOrderLoader(session_factory),
        ),
        handler.handle,
        policy=ReconnectPolicy(
            base_seconds=settings.LISTENER_BACKOFF_BASE_SECONDS,
            cap_seconds=settings.LISTENER_BACKOFF_CAP_SECONDS,
            max_retries=settings.LISTENER_MAX_RETRIES,
        ),
    )

    return AutomationRuntime(
        engine=engine,
        session_factory=session_factory,
        http=http,
        handler=handler,
        supervisor=supervisor,
        listener=listener,
        shutdown_grace_seconds=settings.SHUTDOWN_GRACE_SECONDS,
    )
