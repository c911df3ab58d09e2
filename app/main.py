from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
import sys

from app.config import get_settings
from app.routers import (
    proposals,
    line_items,
    workflow,
    pricing,
)

settings = get_settings()

# Configure loguru
logger.remove()
logger.add(
    sys.stderr,
    format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}",
    level=settings.log_level,
)

app = FastAPI(
    title="BidBuilder API",
    description="Glazing proposal builder: pricing and review workflow",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.app_base_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(proposals.router)
app.include_router(line_items.router)
app.include_router(workflow.router)
app.include_router(pricing.router)


@app.get("/health")
async def health_check():
    return {"status": "ok", "version": "1.0.0"}


@app.get("/health/detailed")
async def detailed_health_check():
    """Health plus reachability of the proposals table and PDF bucket."""
    from app.database import get_supabase

    checks = {}
    db = get_supabase()
    try:
        db.table("proposals").select("id").limit(1).execute()
        checks["proposals_table"] = "ok"
    except Exception as e:
        checks["proposals_table"] = f"error: {str(e)[:100]}"
    try:
        db.storage.get_bucket(settings.proposals_bucket)
        checks["pdf_bucket"] = "ok"
    except Exception as e:
        checks["pdf_bucket"] = f"error: {str(e)[:100]}"

    degraded = any(value != "ok" for value in checks.values())
    return {
        "status": "degraded" if degraded else "ok",
        "version": "1.0.0",
        "dependencies": checks,
    }
