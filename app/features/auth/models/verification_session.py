import enum

from sqlalchemy import Column, DateTime, Enum, Index, Integer, String

from app.platform.db.base import BaseModel


class FlowType(str, enum.Enum):
    REGISTRATION = "registration"
    LOGIN = "login"


class VerificationSession(BaseModel):
    """One pending OTP challenge for a (username, flow_type) pair."""

    __tablename__ = "verification_sessions"
    __table_args__ = (
        Index("ix_verification_sessions_lookup", "username", "flow_type", "requested_at"),
    )

    username = Column(String(100), nullable=False, index=True)
    phone = Column(String(20), nullable=False)
    flow_type = Column(
        Enum(FlowType, values_callable=lambda e: [m.value for m in e], native_enum=False),
        nullable=False,
    )

    requested_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
    attempts = Column(Integer, default=0, nullable=False)

    def is_expired(self, now) -> bool:
        return now > self.expires_at

    def __repr__(self):
        return (
            f"<VerificationSession(id={self.id}, username={self.username}, "
            f"flow_type={self.flow_type}, attempts={self.attempts})>"
        )
