from contextlib import asynccontextmanager
from fastapi import FastAPI

from glrules.app_logger import setup_logging
from glrules.database import init_db
from glrules.routers import rules, corrections

logger = setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database on startup."""
    await init_db()
    logger.info("GL rules service started")
    yield


app = FastAPI(
    title="GL Rules Service",
    description="Score invoice line items against user-defined GL coding rules",
    version="1.0.0",
    lifespan=lifespan,
)

# Include routers
app.include_router(rules.router, prefix="/rules", tags=["Rules"])
app.include_router(corrections.router, prefix="/corrections", tags=["Corrections"])


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok"}
