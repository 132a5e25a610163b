from app.features.auth.services.otp_gateway import (
    ChallengeStatus,
    LogGateway,
    OTPDeliveryError,
    OTPDeliveryGateway,
    TwilioVerifyGateway,
    get_otp_gateway,
)
from app.features.auth.services.sandbox import SandboxMode, get_sandbox_mode
from app.features.auth.services.verification_engine import (
    FailureKind,
    VerificationEngine,
    VerificationResult,
)

__all__ = [
    "ChallengeStatus",
    "FailureKind",
    "LogGateway",
    "OTPDeliveryError",
    "OTPDeliveryGateway",
    "SandboxMode",
    "TwilioVerifyGateway",
    "VerificationEngine",
    "VerificationResult",
    "get_otp_gateway",
    "get_sandbox_mode",
]
