# miles/main.py
"""
FastAPI application entry point.
Includes CORS, request timing, the global error handler, and all routers.
Run with: uvicorn miles.main:app --host 0.0.0.0 --port 8080
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from miles.routers import admin, events, health, images, stream, webhooks
from miles.database import create_tables
from miles.config import settings
from miles.utils.logger import get_logger
import time

logger = get_logger(__name__)

app = FastAPI(
    title="Miles Alerts API",
    description="Meraki webhook ingestion, alert queries and live stream for the Miles dashboard.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS (dashboard is served from a different origin in development) ───────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Request Timing Middleware ────────────────────────────────────────────────
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 2)
    logger.debug(f"{request.method} {request.url.path} → {response.status_code} ({duration}ms)")
    return response


# ── Global Exception Handler ─────────────────────────────────────────────────
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(health.router,   tags=["💚 Health"])
app.include_router(webhooks.router, prefix="/api", tags=["📡 Webhooks"])
app.include_router(events.router,   prefix="/api", tags=["🔔 Events"])
app.include_router(stream.router,   prefix="/api", tags=["📺 Live Stream"])
app.include_router(images.router,   prefix="/api", tags=["🖼️  Images"])
app.include_router(admin.router,    prefix="/api", tags=["🔑 Admin"])


# ── Startup ───────────────────────────────────────────────────────────────────
@app.on_event("startup")
async def startup():
    logger.info("🚀 Miles API starting up...")
    create_tables()
    logger.info(f"✅ Database tables ready ({'sqlite' if settings.IS_SQLITE else 'server'} store)")
    if not (settings.SHARED_SECRET or (settings.WEBHOOK_HEADER_NAME and settings.WEBHOOK_EXPECTED_HEADER_VALUE)):
        logger.warning("⚠️  No webhook secret configured — every webhook will be rejected")
    if settings.IP_ALLOWLIST:
        logger.info(f"🛡️  Webhook IP allowlist: {settings.IP_ALLOWLIST}")
    logger.info(f"🌐 Listening on http://{settings.HOST}:{settings.PORT}")
    logger.info("📖 API docs at /docs")


@app.on_event("shutdown")
async def shutdown():
    logger.info("🛑 Miles API shutting down...")
