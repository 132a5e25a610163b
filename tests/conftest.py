"""
Test configuration and fixtures for the Phone Verify API.

The database URL and sandbox settings are set before the application is
imported, so the app's engine and settings pick them up.
"""

import os
from typing import Generator

from dotenv import load_dotenv

import pytest
from fastapi.testclient import TestClient


load_dotenv()

test_db_url = os.getenv("TEST_DATABASE_URL")
if test_db_url:
    if "postgresql://" in test_db_url and "asyncpg" not in test_db_url:
        test_db_url = test_db_url.replace("postgresql://", "postgresql+asyncpg://")
    os.environ["DATABASE_URL"] = test_db_url
else:
    import tempfile

    test_db_path = tempfile.mktemp(suffix=".db")
    os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{test_db_path}"

os.environ["SANDBOX_ENABLED"] = "true"
os.environ["SESSION_CLEANUP_INTERVAL_SECONDS"] = "0"
os.environ["OTP_PROVIDER"] = "log"

from app.features.auth.services.otp_gateway import ChallengeStatus, OTPDeliveryError  # noqa: E402


class FakeGateway:
    """In-memory OTP provider: approves `valid_code`, records every call."""

    def __init__(self, valid_code: str = "654321"):
        self.valid_code = valid_code
        self.started = []
        self.checked = []
        self.fail_start = False
        self.start_status = ChallengeStatus.PENDING
        self.fail_check = False

    async def start_challenge(self, phone: str, locale: str) -> ChallengeStatus:
        self.started.append((phone, locale))
        if self.fail_start:
            raise OTPDeliveryError("provider unreachable")
        return self.start_status

    async def check_challenge(self, phone: str, code: str) -> ChallengeStatus:
        self.checked.append((phone, code))
        if self.fail_check:
            raise OTPDeliveryError("provider unreachable")
        if code == self.valid_code:
            return ChallengeStatus.APPROVED
        return ChallengeStatus.REJECTED


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture(scope="session")
def test_app():
    """Create FastAPI test application."""
    from app.main import app

    return app


@pytest.fixture(scope="function")
def client(test_app, fake_gateway) -> Generator[TestClient, None, None]:
    """
    Test client with the OTP gateway replaced by the in-memory fake.
    """
    from app.features.auth.services.otp_gateway import get_otp_gateway

    test_app.dependency_overrides[get_otp_gateway] = lambda: fake_gateway
    with TestClient(test_app) as test_client:
        yield test_client
    test_app.dependency_overrides.pop(get_otp_gateway, None)
