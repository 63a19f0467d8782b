"""
Vidya Learning System - wiring
Store construction, router registration and startup tasks
"""

import logging
from fastapi import FastAPI
from typing import Optional

from vidya import config
from vidya.auth.otp_router import router as otp_router
from vidya.learning.catalog_router import router as catalog_router
from vidya.learning.database import LearningStore, MemoryStore
from vidya.learning.progress_router import router as progress_router
from vidya.learning.seed_data import seed_catalog
from vidya.learning.user_router import router as user_router

logger = logging.getLogger(__name__)

# ==================== STORE ====================

def build_store(backend: Optional[str] = None) -> LearningStore:
    """Create the store selected by STORE_BACKEND"""
    backend = (backend or config.STORE_BACKEND).lower()
    if backend == "memory":
        return MemoryStore()
    if backend == "mongo":
        from vidya.learning.mongo_store import MongoStore, connect
        return MongoStore(connect(config.MONGO_URL, config.MONGO_DB_NAME))
    raise ValueError(f"Unknown STORE_BACKEND: {backend}")

# ==================== ROUTER SETUP ====================

def setup_learning_routes(app: FastAPI, prefix: str = ""):
    """Register all learning-related routers"""

    app.include_router(otp_router, prefix=prefix)
    app.include_router(user_router, prefix=prefix)
    app.include_router(catalog_router, prefix=prefix)
    app.include_router(progress_router, prefix=prefix)

    logger.info("Learning routes registered under '%s'", prefix or "/")

# ==================== STARTUP ====================

async def startup_learning_system(store: LearningStore, seed: bool = True):
    """Initialize storage on app startup"""
    await store.create_indexes()
    if seed:
        await seed_catalog(store)
    logger.info("Learning system initialized (%s)", type(store).__name__)
