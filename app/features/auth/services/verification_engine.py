import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.auth.models.account import Account
from app.features.auth.models.login_attempt import LoginAttempt
from app.features.auth.models.verification_session import FlowType, VerificationSession
from app.features.auth.services.otp_gateway import (
    ChallengeStatus,
    OTPDeliveryError,
    OTPDeliveryGateway,
)
from app.features.auth.services.repositories import (
    AccountRepository,
    LoginAttemptRepository,
    VerificationSessionRepository,
)
from app.features.auth.services.sandbox import SandboxMode
from app.features.auth.utils.phone import PhonePolicy, mask_phone
from app.platform.config import settings

logger = logging.getLogger(__name__)


class FailureKind(str, Enum):
    VALIDATION = "validation"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    ALREADY_VERIFIED = "already_verified"
    NOT_VERIFIED = "not_verified"
    SESSION_EXPIRED = "session_expired"
    TOO_MANY_ATTEMPTS = "too_many_attempts"
    INCORRECT_CODE = "incorrect_code"
    DELIVERY = "delivery"
    LOGIN_REFUSED = "login_refused"


@dataclass
class VerificationResult:
    succeeded: bool
    message: str
    account: Optional[Account] = None
    failure: Optional[FailureKind] = None

    @classmethod
    def ok(cls, message: str, account: Optional[Account] = None) -> "VerificationResult":
        return cls(succeeded=True, message=message, account=account)

    @classmethod
    def fail(cls, failure: FailureKind, message: str) -> "VerificationResult":
        return cls(succeeded=False, message=message, failure=failure)


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


SESSION_EXPIRED_MESSAGE = "Session expired. Request a new code"
TOO_MANY_ATTEMPTS_MESSAGE = "Too many attempts. Request a new code"
SEND_FAILED_MESSAGE = "Could not send the verification code"
CHECK_FAILED_MESSAGE = "Could not check the code right now. Please try again"


class VerificationEngine:
    """
    Registration and login flows for phone-verified accounts.

    Every operation returns a VerificationResult; expected failures never
    raise. Storage faults other than uniqueness violations propagate.
    """

    def __init__(
        self,
        db: AsyncSession,
        gateway: OTPDeliveryGateway,
        policy: PhonePolicy,
        sandbox: Optional[SandboxMode] = None,
        session_ttl: Optional[timedelta] = None,
        max_attempts: Optional[int] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.accounts = AccountRepository(db)
        self.sessions = VerificationSessionRepository(db)
        self.attempts = LoginAttemptRepository(db)
        self.gateway = gateway
        self.policy = policy
        self.sandbox = sandbox or SandboxMode()
        self.session_ttl = session_ttl or timedelta(minutes=settings.OTP_SESSION_TTL_MINUTES)
        self.max_attempts = max_attempts or settings.OTP_MAX_ATTEMPTS
        self.clock = clock

    # ── Registration ────────────────────────────

    async def register(self, username: str, phone: str) -> VerificationResult:
        phone = self.policy.normalize(phone)

        if not self.sandbox.covers(phone) and not self.policy.validate(phone):
            return VerificationResult.fail(FailureKind.VALIDATION, self.policy.invalid_message)

        if await self.accounts.get_by_username(username):
            return VerificationResult.fail(FailureKind.CONFLICT, "This username is already taken")

        if await self.accounts.get_by_phone(phone):
            return VerificationResult.fail(
                FailureKind.CONFLICT, "This phone number is already registered"
            )

        try:
            account = await self.accounts.create(username, phone)
        except IntegrityError:
            logger.warning(f"Registration conflict on insert - username: {username}")
            return VerificationResult.fail(
                FailureKind.CONFLICT, "Username or phone number already in use"
            )

        account_id = account.id
        try:
            dispatched = await self._dispatch_code(username, phone, FlowType.REGISTRATION)
        except Exception:
            await self.db.rollback()
            await self.accounts.delete(account_id)
            raise

        if not dispatched:
            await self.accounts.delete(account_id)
            logger.warning(f"Registration rolled back, OTP dispatch failed - username: {username}")
            return VerificationResult.fail(FailureKind.DELIVERY, SEND_FAILED_MESSAGE)

        logger.info(f"Account created - username: {username}, phone: {mask_phone(phone)}")
        return VerificationResult.ok(f"Account created! Code sent to {mask_phone(phone)}")

    async def resend_verification(self, username: str) -> VerificationResult:
        account = await self.accounts.get_by_username(username)
        if account is None:
            return VerificationResult.fail(FailureKind.NOT_FOUND, "Account not found")

        if account.phone_verified:
            return VerificationResult.fail(
                FailureKind.ALREADY_VERIFIED,
                "Your phone number is already verified. You can log in.",
            )

        purged = await self.sessions.delete_for_user(username, FlowType.REGISTRATION)
        logger.info(f"Resend verification - username: {username}, stale sessions removed: {purged}")

        if await self._dispatch_code(username, account.phone, FlowType.REGISTRATION):
            return VerificationResult.ok(f"New code sent to {mask_phone(account.phone)}")

        return VerificationResult.fail(FailureKind.DELIVERY, SEND_FAILED_MESSAGE)

    async def verify_registration(self, username: str, code: str) -> VerificationResult:
        account = await self.accounts.get_by_username(username)
        if account is None:
            return VerificationResult.fail(FailureKind.NOT_FOUND, "Account not found")

        if account.phone_verified:
            return VerificationResult.fail(
                FailureKind.ALREADY_VERIFIED, "Phone number already verified"
            )

        session = await self._current_session(username, FlowType.REGISTRATION)
        if session is None:
            return VerificationResult.fail(FailureKind.SESSION_EXPIRED, SESSION_EXPIRED_MESSAGE)

        outcome = await self._check_code(account.phone, code)
        if outcome is None:
            return VerificationResult.fail(FailureKind.DELIVERY, CHECK_FAILED_MESSAGE)

        if outcome == ChallengeStatus.APPROVED:
            await self.accounts.mark_phone_verified(account)
            await self.sessions.delete(session)
            logger.info(f"Phone verified - username: {username}")
            return VerificationResult.ok("Phone number verified! You can now log in", account)

        attempts = await self.sessions.increment_attempts(session, self.max_attempts)
        logger.warning(f"Incorrect registration code - username: {username}, attempts: {attempts}")
        return await self._rejection(session, attempts)

    # ── Login ───────────────────────────────────

    async def request_login(
        self, username: str, source_address: Optional[str] = None
    ) -> VerificationResult:
        """
        Verified accounts are logged in directly: no code is sent and no
        login session is opened.
        """
        account = await self.accounts.get_active(username)
        if account is None:
            return VerificationResult.fail(FailureKind.NOT_FOUND, "Account not found or inactive")

        if not account.phone_verified:
            return VerificationResult.fail(
                FailureKind.NOT_VERIFIED, "You must verify your phone number first"
            )

        await self.accounts.touch_last_login(account, self.clock())
        await self._record_attempt(username, account.phone, True, source_address, account)
        return VerificationResult.ok("Automatic login", account)

    async def login(
        self, username: str, code: str, source_address: Optional[str] = None
    ) -> VerificationResult:
        account = await self.accounts.get_active(username, verified_only=True)
        if account is None:
            await self._record_attempt(username, None, False, source_address)
            return VerificationResult.fail(FailureKind.LOGIN_REFUSED, "Login not possible")

        session = await self._current_session(username, FlowType.LOGIN)
        if session is None:
            return VerificationResult.fail(FailureKind.SESSION_EXPIRED, SESSION_EXPIRED_MESSAGE)

        outcome = await self._check_code(account.phone, code)
        if outcome is None:
            return VerificationResult.fail(FailureKind.DELIVERY, CHECK_FAILED_MESSAGE)

        if outcome == ChallengeStatus.APPROVED:
            await self.accounts.touch_last_login(account, self.clock())
            await self.sessions.delete(session)
            await self._record_attempt(username, account.phone, True, source_address, account)
            logger.info(f"Login successful - username: {username}")
            return VerificationResult.ok("Login successful", account)

        attempts = await self.sessions.increment_attempts(session, self.max_attempts)
        logger.warning(f"Incorrect login code - username: {username}, attempts: {attempts}")
        result = await self._rejection(session, attempts)
        await self._record_attempt(username, account.phone, False, source_address, account)
        return result

    # ── Profile / admin reads ───────────────────

    async def get_account(self, username: str) -> Optional[Account]:
        return await self.accounts.get_by_username(username)

    async def list_accounts(self) -> List[Account]:
        return await self.accounts.list_all()

    async def login_history(self, username: str, limit: int = 10) -> List[LoginAttempt]:
        return await self.attempts.history(username, limit)

    # ── Helpers ─────────────────────────────────

    async def _dispatch_code(self, username: str, phone: str, flow_type: FlowType) -> bool:
        """Send a code and open the session; False when the provider did not accept it."""
        if not self.sandbox.covers(phone):
            try:
                status = await self.gateway.start_challenge(phone, self.policy.locale)
            except OTPDeliveryError as e:
                logger.error(f"OTP dispatch failed for {mask_phone(phone)}: {str(e)}")
                return False
            if status != ChallengeStatus.PENDING:
                logger.error(f"OTP dispatch not accepted for {mask_phone(phone)}: {status}")
                return False

        now = self.clock()
        await self.sessions.create(
            username=username,
            phone=phone,
            flow_type=flow_type,
            requested_at=now,
            expires_at=now + self.session_ttl,
        )
        return True

    async def _current_session(
        self, username: str, flow_type: FlowType
    ) -> Optional[VerificationSession]:
        session = await self.sessions.get_latest(username, flow_type)
        if session is None or session.is_expired(self.clock()):
            return None
        return session

    async def _check_code(self, phone: str, code: str) -> Optional[ChallengeStatus]:
        if self.sandbox.covers(phone):
            return ChallengeStatus.APPROVED if self.sandbox.accepts(code) else ChallengeStatus.REJECTED

        try:
            return await self.gateway.check_challenge(phone, code)
        except OTPDeliveryError as e:
            logger.error(f"OTP check failed for {mask_phone(phone)}: {str(e)}")
            return None

    async def _rejection(
        self, session: VerificationSession, attempts: Optional[int]
    ) -> VerificationResult:
        if attempts is None:
            return VerificationResult.fail(FailureKind.SESSION_EXPIRED, SESSION_EXPIRED_MESSAGE)

        if attempts >= self.max_attempts:
            await self.sessions.delete(session)
            return VerificationResult.fail(
                FailureKind.TOO_MANY_ATTEMPTS, TOO_MANY_ATTEMPTS_MESSAGE
            )

        remaining = self.max_attempts - attempts
        return VerificationResult.fail(
            FailureKind.INCORRECT_CODE, f"Incorrect code ({remaining} attempts remaining)"
        )

    async def _record_attempt(
        self,
        username: str,
        phone: Optional[str],
        succeeded: bool,
        source_address: Optional[str],
        account: Optional[Account] = None,
    ) -> None:
        # best effort: the flow result does not depend on this write
        try:
            await self.attempts.record(
                username=username,
                phone=phone,
                succeeded=succeeded,
                source_address=source_address,
                attempted_at=self.clock(),
            )
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Could not record login attempt - username: {username}: {str(e)}")
            if account is not None:
                # rollback expired it
                await self.db.refresh(account)
