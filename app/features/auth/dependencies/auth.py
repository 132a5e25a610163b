from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.auth.models.account import Account
from app.features.auth.services.otp_gateway import OTPDeliveryGateway, get_otp_gateway
from app.features.auth.services.repositories import AccountRepository
from app.features.auth.services.sandbox import SandboxMode, get_sandbox_mode
from app.features.auth.services.verification_engine import VerificationEngine
from app.features.auth.utils.phone import LocaleValidationPolicy, get_phone_policy
from app.features.auth.utils.security import decode_access_token
from app.platform.config import settings
from app.platform.db.session import get_db

security = HTTPBearer(auto_error=False)


def get_verification_engine(
    db: AsyncSession = Depends(get_db),
    gateway: OTPDeliveryGateway = Depends(get_otp_gateway),
    sandbox: SandboxMode = Depends(get_sandbox_mode),
) -> VerificationEngine:
    """Engine using the deployment's configured phone validation policy."""
    return VerificationEngine(
        db=db,
        gateway=gateway,
        policy=get_phone_policy(settings.PHONE_VALIDATION_POLICY),
        sandbox=sandbox,
    )


def get_israeli_verification_engine(
    db: AsyncSession = Depends(get_db),
    gateway: OTPDeliveryGateway = Depends(get_otp_gateway),
    sandbox: SandboxMode = Depends(get_sandbox_mode),
) -> VerificationEngine:
    return VerificationEngine(
        db=db,
        gateway=gateway,
        policy=get_phone_policy(LocaleValidationPolicy.ISRAELI_MOBILE),
        sandbox=sandbox,
    )


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_account(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> Account:
    """
    Dependency to get the account behind the bearer token.
    """
    if credentials is None:
        raise _unauthorized("Not authenticated")

    try:
        payload = decode_access_token(credentials.credentials)
    except ValueError as e:
        raise _unauthorized(str(e))

    account_id = payload.get("sub")
    if account_id is None:
        raise _unauthorized("Invalid authentication credentials")

    account = await AccountRepository(db).get_by_id(account_id)
    if account is None or not account.active:
        raise _unauthorized("Account not found or inactive")

    return account
