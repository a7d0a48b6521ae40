"""
ConnectX Freelance Marketplace - Main Application

Recruiters post jobs and squad projects; candidates apply or are matched
into squads; module payouts are released to a SQL ledger.

Run: uvicorn app.main:app --reload
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app import __version__
from app.api.routes import api_router
from app.core.config import get_settings
from app.db.mongodb import init_mongo_indexes, test_mongo_connection
from app.db.postgres import init_postgres_schema, test_postgres_connection

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="ConnectX Freelance Marketplace",
    description="""
    Job posts, AI-drafted project plans, squad matching and module-based payouts.

    - **Jobs**: post, update and browse; blind hiring hides applicants until hired
    - **AI Planning**: milestones, priced job options, role-based squad plans
    - **ConnectX**: AI squad suggestions with harmony scores, invitations
    - **Payouts**: released per module once its acceptance criterion is met;
      blockers compensated from a 10% pool
    """,
    version=__version__,
    debug=settings.debug
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api")


@app.on_event("startup")
async def startup_event():
    """Create MongoDB indexes and the ledger table. A down database is logged, not fatal."""
    for name, init in (("MongoDB indexes", init_mongo_indexes), ("Ledger schema", init_postgres_schema)):
        try:
            init()
        except Exception as e:
            logger.warning("%s initialization failed: %s", name, e)


@app.get("/", tags=["Health"])
async def root():
    return {"status": "healthy", "app": "ConnectX Freelance Marketplace", "version": __version__}


@app.get("/health", tags=["Health"])
async def health_check():
    """Reachability of both stores."""
    postgres_ok = test_postgres_connection()
    mongo_ok = test_mongo_connection()
    return {
        "status": "healthy" if postgres_ok and mongo_ok else "degraded",
        "postgres": "connected" if postgres_ok else "disconnected",
        "mongodb": "connected" if mongo_ok else "disconnected"
    }
