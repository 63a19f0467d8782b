from datetime import datetime, timezone
from fastapi import APIRouter, Depends

from vidya import config
from vidya.learning.database import LearningStore
from vidya.learning.dependencies import get_store

router = APIRouter(tags=["System"])


@router.get("/health")
async def health(store: LearningStore = Depends(get_store)):
    """Liveness plus a store round-trip"""
    store_up = await store.ping()
    return {
        "status": "UP" if store_up else "DEGRADED",
        "timestamp": datetime.now(timezone.utc),
        "store": {
            "backend": config.STORE_BACKEND,
            "status": "UP" if store_up else "DOWN"
        }
    }
