"""
Experience Sampling - FastAPI Application

Main entry point for the survey gating and delivery service.

Pipeline:
- Decision event → Throttle + Eligibility → Notification prompt
- Prompt click → Survey Dispatcher → external survey UI
- Completed survey → Pending queue → Submission Pipeline → collector

## Key Principles
- Readiness is re-derived from persisted consent/setup state on every start
- At most one survey prompt is live at any time
- The daily cap resets on a rolling window anchored to install time
- Every completed survey stays queued until the collector answers 204
"""
import logging
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings
from .database import DATABASE_URL, build_engine, build_session_factory, init_db
from .models.db_models import StateKey
from .routers import (
    events_router,
    notifications_router,
    participant_router,
    surveys_router,
    scheduler_router,
)
from .services.delivery import SubmissionPipeline
from .services.host import HostBridge, StateStore, TimerService
from .services.sampling import Coordinator, EventBus, Installed, SamplingContext, Startup

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def build_coordinator(
    settings: Settings,
    database_url: str,
    pipeline_factory: Optional[Callable[[Settings], SubmissionPipeline]] = None,
) -> Coordinator:
    """Wire the context and components; nothing runs until start()."""
    engine = build_engine(database_url)
    init_db(engine)
    context = SamplingContext(
        settings=settings,
        store=StateStore(build_session_factory(engine)),
        timers=TimerService(),
        host=HostBridge(),
        bus=EventBus(),
    )
    pipeline = pipeline_factory(settings) if pipeline_factory else None
    return Coordinator(context, pipeline=pipeline)


def create_app(
    settings: Optional[Settings] = None,
    database_url: str = DATABASE_URL,
    pipeline_factory: Optional[Callable[[Settings], SubmissionPipeline]] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Start the coordinator and replay install or startup."""
        coordinator = await build_coordinator(settings, database_url, pipeline_factory)
        app.state.coordinator = coordinator
        await coordinator.start()

        installed_at = await coordinator.ctx.store.get(StateKey.INSTALLED_AT.value)
        first_event = Startup() if installed_at else Installed()
        logger.info(f"Sampling service starting ({type(first_event).__name__})")
        await coordinator.bus.dispatch(first_event)
        yield
        await coordinator.stop()

    app = FastAPI(
        lifespan=lifespan,
        title="Experience Sampling",
        description="""
        Experience Sampling - Survey Gating and Delivery Service

        Shows short surveys in response to observed decision events,
        subject to consent, setup and a daily cap, and delivers completed
        responses to the remote collector.
        """,
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # host shell runs on a local origin
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(events_router)
    app.include_router(notifications_router)
    app.include_router(participant_router)
    app.include_router(surveys_router)
    app.include_router(scheduler_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "version": "1.0.0"}

    return app


# ASGI entry point: uvicorn experience_sampling.main:app
app = create_app()


# For running with: python -m experience_sampling.main
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8001)
