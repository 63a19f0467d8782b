"""
Mobile-number OTP issue and verification.

Only the most recent code per number is valid. Codes expire OTP_TTL_MINUTES
after issue and can be consumed once. There is no delivery channel yet: the
code is logged and handed back to the caller.
"""

import asyncio
import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable, Optional

from vidya import config
from vidya.learning.database import LearningStore, utcnow
from vidya.learning.models import OtpVerification

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def generate_code() -> str:
    """Uniform 4-digit code in [1000, 9999]"""
    return str(1000 + secrets.randbelow(9000))


class OtpService:
    def __init__(self, store: LearningStore, clock: Clock = utcnow, ttl_minutes: Optional[int] = None):
        self.store = store
        self.clock = clock
        self.ttl = timedelta(minutes=config.OTP_TTL_MINUTES if ttl_minutes is None else ttl_minutes)

    async def issue(self, mobile_number: str) -> OtpVerification:
        now = self.clock()
        record = await self.store.create_otp(
            mobile_number, generate_code(), created_at=now, expires_at=now + self.ttl
        )
        # Delivery stub until an SMS gateway is wired in
        logger.info("OTP for %s: %s", mobile_number, record.otp)
        return record

    async def verify(self, mobile_number: str, code: str) -> bool:
        record = await self.store.get_otp(mobile_number)
        if record is None or record.verified or self.clock() >= record.expires_at:
            return False
        if record.otp != code:
            return False
        return await self.store.mark_otp_verified(mobile_number, record.id)

    async def sweep_expired(self) -> int:
        removed = await self.store.purge_expired_otps(self.clock())
        if removed:
            logger.info("Purged %d expired OTP records", removed)
        return removed


async def run_otp_sweeper(service: OtpService, interval_seconds: int):
    """Background worker that drops expired OTP records every interval_seconds."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await service.sweep_expired()
        except Exception as e:
            logger.error("OTP sweep failed: %s", e)
