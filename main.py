"""
Unified backend entry point for the notification core.

Architecture:
- One Python process, one asyncio event loop
- FastAPI serves HTTP; the event bus, notification fan-out, webhook
  dispatcher and scheduler run alongside it in the same loop

Components are built explicitly in the lifespan and shut down in reverse
order: scheduler, event bus (drained), webhook HTTP client, database engine.

Run with: python main.py [--no-scheduler] [--port PORT]
"""

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv

project_root = Path(__file__).parent

# Load .env.local first (if exists), then .env as fallback
# .env.local is gitignored and used for local dev overrides
load_dotenv(project_root / ".env.local")
load_dotenv()

import sentry_sdk
from fastapi import FastAPI

from campus.config import (
    check_required_env_vars,
    get_api_port,
    get_scheduler_timezone,
    is_scheduler_enabled,
)
from campus.database import close_engine, get_engine
from campus.events import EventBus
from campus.notifications import NotificationFanout, NotificationScheduler, PushHub
from campus.webhooks import WebhookDispatcher

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

if os.getenv("SENTRY_DSN"):
    sentry_sdk.init(
        dsn=os.environ["SENTRY_DSN"],
        environment=os.getenv("APP_ENV", "development"),
        traces_sample_rate=0.0,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI lifespan context manager.

    Builds the notification pipeline on startup and tears it down on exit.
    """
    ok, warnings = check_required_env_vars()
    for warning in warnings:
        logger.warning(warning.strip())
    if not ok:
        raise RuntimeError("Missing required environment variables")

    engine = get_engine()
    bus = EventBus()
    push_hub = PushHub()
    dispatcher = WebhookDispatcher(engine)
    fanout = NotificationFanout(engine, push_sink=push_hub, dispatcher=dispatcher)
    fanout.register(bus)
    await bus.start()

    scheduler = None
    if is_scheduler_enabled():
        scheduler = NotificationScheduler(engine, bus, get_scheduler_timezone())
        scheduler.start()
    else:
        logger.info("Scheduler disabled (--no-scheduler or DISABLE_SCHEDULER=true)")

    app.state.engine = engine
    app.state.bus = bus
    app.state.push_hub = push_hub
    app.state.scheduler = scheduler

    yield

    logger.info("Shutting down notification core...")
    if scheduler:
        scheduler.shutdown()
    await bus.stop()
    await dispatcher.aclose()
    await close_engine()


app = FastAPI(
    title="Campus Notification Core",
    lifespan=lifespan,
)


@app.get("/health")
async def health():
    """Health check endpoint with detailed status."""
    scheduler = getattr(app.state, "scheduler", None)
    bus = getattr(app.state, "bus", None)
    push_hub = getattr(app.state, "push_hub", None)
    return {
        "status": "healthy",
        "event_bus_running": bus.is_running if bus else False,
        "event_bus_pending": bus.pending_count if bus else 0,
        "scheduler_running": scheduler.running if scheduler else False,
        "push_clients": push_hub.subscriber_count() if push_hub else 0,
    }


if __name__ == "__main__":
    import argparse
    import uvicorn

    parser = argparse.ArgumentParser(description="Campus Notification Core")
    parser.add_argument(
        "--no-scheduler",
        action="store_true",
        help="Disable the scheduler (useful when running extra replicas)",
    )
    parser.add_argument(
        "--dev",
        action="store_true",
        help="Development mode (missing env vars only warn)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=get_api_port(),
        help="Port to run the server on (default: API_PORT or 8000)",
    )
    args = parser.parse_args()

    # Set env vars so they persist across uvicorn reloads
    if args.no_scheduler:
        os.environ["DISABLE_SCHEDULER"] = "true"
    if args.dev:
        os.environ["DEV_MODE"] = "true"

    # Pass app object directly (not string) to avoid module reimport issues
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=args.port,
    )
