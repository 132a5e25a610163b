"""
OTP delivery gateways.

The verification engine only depends on the `OTPDeliveryGateway` protocol:
start a challenge for a phone number, then ask whether a submitted code is
approved. `TwilioVerifyGateway` talks to the Twilio Verify v2 REST API;
`LogGateway` is the development stand-in that sends nothing.
"""

import enum
from typing import Optional, Protocol

import httpx

from app.features.auth.utils.phone import mask_phone
from app.platform.config import settings
from app.platform.logger import get_logger

logger = get_logger("otp_gateway")


class ChallengeStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    FAILED = "failed"


class OTPDeliveryError(Exception):
    """The OTP provider could not be reached or refused the request."""


class OTPDeliveryGateway(Protocol):
    async def start_challenge(self, phone: str, locale: str) -> ChallengeStatus:
        ...

    async def check_challenge(self, phone: str, code: str) -> ChallengeStatus:
        ...


class TwilioVerifyGateway:
    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        service_sid: str,
        base_url: str = "https://verify.twilio.com/v2",
        timeout: float = 10,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not (account_sid and auth_token and service_sid):
            raise OTPDeliveryError(
                "Missing Twilio credentials: set TWILIO_ACCOUNT_SID, "
                "TWILIO_AUTH_TOKEN and TWILIO_VERIFY_SERVICE_SID"
            )
        self.service_url = f"{base_url.rstrip('/')}/Services/{service_sid}"
        self.auth = (account_sid, auth_token)
        self.timeout = timeout
        self.transport = transport

    async def _post(self, path: str, data: dict) -> httpx.Response:
        try:
            async with httpx.AsyncClient(
                auth=self.auth, timeout=self.timeout, transport=self.transport
            ) as client:
                return await client.post(f"{self.service_url}/{path}", data=data)
        except httpx.HTTPError as e:
            logger.error(f"Twilio Verify request failed: {str(e)}")
            raise OTPDeliveryError(f"Twilio Verify unreachable: {str(e)}") from e

    @staticmethod
    def _raise_for_error(response: httpx.Response) -> None:
        if response.status_code >= 400:
            logger.error(f"Twilio Verify error {response.status_code}: {response.text}")
            raise OTPDeliveryError(f"Twilio Verify error {response.status_code}")

    async def start_challenge(self, phone: str, locale: str) -> ChallengeStatus:
        response = await self._post(
            "Verifications", {"To": phone, "Channel": "sms", "Locale": locale}
        )
        self._raise_for_error(response)
        status = response.json().get("status")
        logger.info(f"Verification started for {mask_phone(phone)}: status={status}")
        return ChallengeStatus.PENDING if status == "pending" else ChallengeStatus.FAILED

    async def check_challenge(self, phone: str, code: str) -> ChallengeStatus:
        response = await self._post("VerificationCheck", {"To": phone, "Code": code})
        # 404: no pending verification left for this number (expired or used up)
        if response.status_code == 404:
            return ChallengeStatus.REJECTED
        self._raise_for_error(response)
        status = response.json().get("status")
        return ChallengeStatus.APPROVED if status == "approved" else ChallengeStatus.REJECTED


class LogGateway:
    """Logs the dispatch instead of sending an SMS; no code is ever approved."""

    async def start_challenge(self, phone: str, locale: str) -> ChallengeStatus:
        logger.info(f"OTP log gateway: challenge for {mask_phone(phone)} (locale={locale})")
        return ChallengeStatus.PENDING

    async def check_challenge(self, phone: str, code: str) -> ChallengeStatus:
        logger.info(f"OTP log gateway: rejecting code check for {mask_phone(phone)}")
        return ChallengeStatus.REJECTED


def get_otp_gateway() -> OTPDeliveryGateway:
    if settings.OTP_PROVIDER == "twilio":
        return TwilioVerifyGateway(
            account_sid=settings.TWILIO_ACCOUNT_SID,
            auth_token=settings.TWILIO_AUTH_TOKEN,
            service_sid=settings.TWILIO_VERIFY_SERVICE_SID,
            base_url=settings.TWILIO_VERIFY_BASE_URL,
            timeout=settings.TWILIO_TIMEOUT,
        )
    return LogGateway()
