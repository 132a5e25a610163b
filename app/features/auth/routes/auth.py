from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from app.features.auth.dependencies.auth import (
    get_current_account,
    get_israeli_verification_engine,
    get_verification_engine,
)
from app.features.auth.models.account import Account
from app.features.auth.schemas.auth import (
    AccountListResponse,
    AccountResponse,
    AuthTokenResponse,
    CodeRequest,
    LoginAttemptResponse,
    RegisterRequest,
    UsernameRequest,
)
from app.features.auth.services.verification_engine import (
    FailureKind,
    VerificationEngine,
    VerificationResult,
)
from app.features.auth.utils.security import create_access_token
from app.platform.response import api_response

router = APIRouter(prefix="/auth", tags=["Authentication"])

FAILURE_STATUS = {
    FailureKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    FailureKind.CONFLICT: status.HTTP_409_CONFLICT,
    FailureKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    FailureKind.ALREADY_VERIFIED: status.HTTP_400_BAD_REQUEST,
    FailureKind.NOT_VERIFIED: status.HTTP_403_FORBIDDEN,
    FailureKind.SESSION_EXPIRED: status.HTTP_400_BAD_REQUEST,
    FailureKind.TOO_MANY_ATTEMPTS: status.HTTP_429_TOO_MANY_REQUESTS,
    FailureKind.INCORRECT_CODE: status.HTTP_400_BAD_REQUEST,
    FailureKind.DELIVERY: status.HTTP_502_BAD_GATEWAY,
    FailureKind.LOGIN_REFUSED: status.HTTP_401_UNAUTHORIZED,
}


def _raise_for_failure(result: VerificationResult) -> None:
    if not result.succeeded:
        raise HTTPException(
            status_code=FAILURE_STATUS.get(result.failure, status.HTTP_400_BAD_REQUEST),
            detail=result.message,
        )


def _token_response(result: VerificationResult) -> AuthTokenResponse:
    return AuthTokenResponse(
        token=create_access_token(result.account),
        account=AccountResponse.model_validate(result.account),
    )


def _client_address(request: Request):
    return request.client.host if request.client else None


@router.post(
    "/register",
    response_model=dict,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new account",
    description="Create an unverified account and send a verification code to the phone number",
)
async def register(
    request: RegisterRequest,
    engine: VerificationEngine = Depends(get_verification_engine),
):
    result = await engine.register(request.username, request.phone)
    _raise_for_failure(result)
    return api_response(message=result.message, status_code=status.HTTP_201_CREATED)


@router.post(
    "/register/il",
    response_model=dict,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new account with an Israeli mobile number",
)
async def register_israeli(
    request: RegisterRequest,
    engine: VerificationEngine = Depends(get_israeli_verification_engine),
):
    """
    Same flow as /register, with Israeli normalization: national numbers
    (05x...) are accepted and only Israeli mobile prefixes are valid.
    """
    result = await engine.register(request.username, request.phone)
    _raise_for_failure(result)
    return api_response(message=result.message, status_code=status.HTTP_201_CREATED)


@router.post(
    "/register/resend-code",
    response_model=dict,
    summary="Resend the registration code",
)
async def resend_code(
    request: UsernameRequest,
    engine: VerificationEngine = Depends(get_verification_engine),
):
    result = await engine.resend_verification(request.username)
    _raise_for_failure(result)
    return api_response(message=result.message)


@router.post(
    "/register/verify",
    response_model=dict,
    summary="Verify the phone number",
    description="Check the registration code; returns an access token on success",
)
async def verify_registration(
    request: CodeRequest,
    engine: VerificationEngine = Depends(get_verification_engine),
):
    result = await engine.verify_registration(request.username, request.code)
    _raise_for_failure(result)
    return api_response(data=_token_response(result), message=result.message)


@router.post(
    "/login/request",
    response_model=dict,
    summary="Request a login",
    description="Verified accounts are logged in directly and receive an access token",
)
async def request_login(
    request: UsernameRequest,
    http_request: Request,
    engine: VerificationEngine = Depends(get_verification_engine),
):
    result = await engine.request_login(request.username, _client_address(http_request))
    _raise_for_failure(result)
    return api_response(data=_token_response(result), message=result.message)


@router.post(
    "/login/verify",
    response_model=dict,
    summary="Log in with a code",
)
async def login(
    request: CodeRequest,
    http_request: Request,
    engine: VerificationEngine = Depends(get_verification_engine),
):
    result = await engine.login(request.username, request.code, _client_address(http_request))
    _raise_for_failure(result)
    return api_response(data=_token_response(result), message=result.message)


@router.get(
    "/profile",
    response_model=dict,
    summary="Current account profile",
)
async def profile(current_account: Account = Depends(get_current_account)):
    return api_response(
        data=AccountResponse.model_validate(current_account),
        message="Profile retrieved successfully",
    )


@router.get(
    "/accounts",
    response_model=dict,
    summary="List all accounts",
)
async def list_accounts(
    current_account: Account = Depends(get_current_account),
    engine: VerificationEngine = Depends(get_verification_engine),
):
    accounts = await engine.list_accounts()
    return api_response(
        data=AccountListResponse(
            accounts=[AccountResponse.model_validate(a) for a in accounts],
            total=len(accounts),
        ),
        message="Accounts retrieved successfully",
    )


@router.get(
    "/history",
    response_model=dict,
    summary="Login history of the current account",
)
async def login_history(
    limit: int = Query(10, ge=1, le=100),
    current_account: Account = Depends(get_current_account),
    engine: VerificationEngine = Depends(get_verification_engine),
):
    attempts = await engine.login_history(current_account.username, limit)
    return api_response(
        data=[LoginAttemptResponse.model_validate(a) for a in attempts],
        message="Login history retrieved successfully",
    )
