import asyncio
from datetime import timedelta

import pytest

from vidya.auth import otp_service
from vidya.auth.otp_service import OtpService, generate_code
from vidya.learning.database import MemoryStore

MOBILE = "9999999999"


@pytest.fixture
def service(clock):
    return OtpService(MemoryStore(), clock=clock, ttl_minutes=5)


def test_generated_codes_are_four_digits():
    for _ in range(500):
        code = generate_code()
        assert len(code) == 4
        assert 1000 <= int(code) <= 9999


async def test_issue_sets_five_minute_expiry(service, clock):
    record = await service.issue(MOBILE)

    assert record.mobile_number == MOBILE
    assert record.verified is False
    assert record.created_at == clock.now
    assert record.expires_at == clock.now + timedelta(minutes=5)


async def test_correct_code_verifies_once(service):
    record = await service.issue(MOBILE)

    assert await service.verify(MOBILE, record.otp) is True
    assert await service.verify(MOBILE, record.otp) is False


async def test_wrong_code_does_not_consume_record(service):
    record = await service.issue(MOBILE)
    wrong = "0000" if record.otp != "0000" else "1111"

    assert await service.verify(MOBILE, wrong) is False
    assert await service.verify(MOBILE, record.otp) is True


async def test_unknown_number_fails(service):
    assert await service.verify("1234567890", "1234") is False


async def test_expired_code_fails_even_if_correct(service, clock):
    record = await service.issue(MOBILE)
    clock.advance(minutes=6)

    assert await service.verify(MOBILE, record.otp) is False


async def test_code_fails_at_exact_expiry(service, clock):
    record = await service.issue(MOBILE)
    clock.advance(minutes=5)

    assert await service.verify(MOBILE, record.otp) is False


async def test_code_valid_just_before_expiry(service, clock):
    record = await service.issue(MOBILE)
    clock.advance(minutes=4, seconds=59)

    assert await service.verify(MOBILE, record.otp) is True


async def test_reissue_invalidates_previous_code(service, monkeypatch):
    codes = iter(["1111", "2222"])
    monkeypatch.setattr(otp_service, "generate_code", lambda: next(codes))

    await service.issue(MOBILE)
    await service.issue(MOBILE)

    assert await service.verify(MOBILE, "1111") is False
    assert await service.verify(MOBILE, "2222") is True


async def test_sweep_removes_only_expired_records(service, clock):
    await service.issue("1111111111")
    clock.advance(minutes=3)
    await service.issue("2222222222")
    clock.advance(minutes=3)

    assert await service.sweep_expired() == 1
    assert await service.store.get_otp("1111111111") is None
    assert await service.store.get_otp("2222222222") is not None


async def test_sweeper_loop_purges_expired_records(service, clock):
    await service.issue(MOBILE)
    clock.advance(minutes=6)

    task = asyncio.create_task(otp_service.run_otp_sweeper(service, 0.01))
    await asyncio.sleep(0.05)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert await service.store.get_otp(MOBILE) is None


async def test_sweeper_loop_survives_failed_sweeps(caplog):
    class FailingService:
        calls = 0

        async def sweep_expired(self):
            self.calls += 1
            raise RuntimeError("store unavailable")

    failing = FailingService()
    task = asyncio.create_task(otp_service.run_otp_sweeper(failing, 0.01))
    await asyncio.sleep(0.05)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert failing.calls >= 2
    assert "OTP sweep failed: store unavailable" in caplog.text


async def test_ttl_defaults_to_configured_minutes(clock, monkeypatch):
    monkeypatch.setattr(otp_service.config, "OTP_TTL_MINUTES", 7)
    service = OtpService(MemoryStore(), clock=clock)

    record = await service.issue(MOBILE)

    assert record.expires_at == clock.now + timedelta(minutes=7)
