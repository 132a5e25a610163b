from app.features.auth.schemas.auth import (
    AccountListResponse,
    AccountResponse,
    AuthTokenResponse,
    CodeRequest,
    LoginAttemptResponse,
    RegisterRequest,
    UsernameRequest,
)

__all__ = [
    "AccountListResponse",
    "AccountResponse",
    "AuthTokenResponse",
    "CodeRequest",
    "LoginAttemptResponse",
    "RegisterRequest",
    "UsernameRequest",
]
