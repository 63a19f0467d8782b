from fastapi import Depends

from vidya.auth.otp_service import Clock, OtpService
from vidya.learning.database import LearningStore, utcnow


def get_store_instance() -> LearningStore:
    """Get the store from main module"""
    from vidya.main import store
    return store

# ==================== DEPENDENCY FUNCTIONS ====================

async def get_store() -> LearningStore:
    """Store dependency"""
    return get_store_instance()


def get_clock() -> Clock:
    return utcnow


async def get_otp_service(
    store: LearningStore = Depends(get_store),
    clock: Clock = Depends(get_clock)
) -> OtpService:
    return OtpService(store, clock)
