"""FastAPI application entry point for the TradeLink proposals API."""

import asyncio
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tradelink.app.config import get_settings
from tradelink.domain.errors import ProposalError
from tradelink.domain.schemas import HealthResponse
from tradelink.infra.database import async_session, init_db
from tradelink.services.expiry_monitor import expire_stale_proposals

logger = logging.getLogger(__name__)


async def expiry_monitor_loop():
    """Expire idle proposals on the configured interval."""
    interval = get_settings().expiry_check_interval_minutes * 60
    while True:
        try:
            async with async_session() as db:
                await expire_stale_proposals(db)
        except Exception as e:
            logger.error("Expiry monitor error: %s", e)
        await asyncio.sleep(interval)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: initialize database and start the expiry monitor."""
    await init_db()
    monitor = asyncio.create_task(expiry_monitor_loop())
    yield
    monitor.cancel()


settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.debug else logging.WARNING,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)

app = FastAPI(
    title="TradeLink Proposals API",
    lifespan=lifespan,
    debug=settings.debug,
)

_cors_origins = settings.cors_origins_list
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=("*" not in _cors_origins),
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ProposalError)
async def proposal_error_handler(request: Request, exc: ProposalError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# ---------------------------------------------------------------------------
# Route includes
# ---------------------------------------------------------------------------
from tradelink.app.routes.proposals import router as proposals_router
from tradelink.app.routes.blocks import router as blocks_router
from tradelink.app.routes.notifications import router as notifications_router

app.include_router(proposals_router)
app.include_router(blocks_router)
app.include_router(notifications_router)


@app.get("/health", tags=["health"], response_model=HealthResponse)
async def health_check():
    """Return service health status."""
    return {"status": "ok", "service": "tradelink"}


def run() -> None:
    """Run the application with uvicorn (used by project.scripts entry point)."""
    uvicorn.run(
        "tradelink.app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
