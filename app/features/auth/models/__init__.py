from app.features.auth.models.account import Account
from app.features.auth.models.login_attempt import LoginAttempt
from app.features.auth.models.verification_session import FlowType, VerificationSession

__all__ = ["Account",
           "FlowType",
           "LoginAttempt",
           "VerificationSession"
        ]
