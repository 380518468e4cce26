import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from darkwatch.api.routes import router
from darkwatch.config import settings
from darkwatch.modules.alert_manager import AlertManager
from darkwatch.modules.cluster_engine import ClusterEngine
from darkwatch.modules.cluster_executor import make_cluster_executor
from darkwatch.modules.coverage_classifier import load_coverage_hubs
from darkwatch.modules.scheduler import RenderCache, RenderDriver, UpdateScheduler
from darkwatch.modules.vessel_source import build_vessel_source
from darkwatch.modules.vessel_store import VesselStore

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Wire the pipeline, start the ingest and render loops, stop them on shutdown."""
    hubs = load_coverage_hubs()
    store = VesselStore()
    alert_manager = AlertManager()
    engine = ClusterEngine()
    executor = make_cluster_executor(engine, use_worker=settings.CLUSTER_WORKER_ENABLED)
    render_cache = RenderCache(store, engine, executor)
    scheduler = UpdateScheduler(build_vessel_source(), alert_manager, store, hubs=hubs)
    render_driver = RenderDriver(render_cache.on_frame)

    app.state.coverage_hubs = hubs
    app.state.store = store
    app.state.alert_manager = alert_manager
    app.state.cluster_engine = engine
    app.state.cluster_executor = executor
    app.state.render_cache = render_cache
    app.state.scheduler = scheduler
    app.state.render_driver = render_driver

    if settings.BACKGROUND_LOOPS_ENABLED:
        scheduler.start()
        render_driver.start()
        logger.info("Started ingest loop (%s source) and render driver.", scheduler.source.name())
    try:
        yield
    finally:
        await render_driver.stop()
        await scheduler.stop()
        executor.close()


app = FastAPI(
    title="DarkWatch",
    description=(
        "Vessel situational picture: dead-reckoned positions, blackout detection "
        "against receiver coverage, clustered render sets and a deduplicated alert feed."
    ),
    version=VERSION,
    lifespan=lifespan,
)

# CORS — origins from settings (supports comma-separated env var)
cors_origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router, prefix="/api/v1")


# ── Structured error handlers ─────────────────────────────────────────────────

@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=422, content={"error": "Validation error", "detail": str(exc)})


@app.exception_handler(Exception)
async def general_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception on %s %s:\n%s", request.method, request.url.path, traceback.format_exc())
    return JSONResponse(status_code=500, content={"error": "Internal server error", "detail": "An unexpected error occurred."})


@app.get("/health")
def health() -> dict:
    return {"status": "ok", "version": VERSION}
