from sqlalchemy import Boolean, Column, DateTime, String

from app.platform.db.base import BaseModel


class LoginAttempt(BaseModel):
    __tablename__ = "login_attempts"

    username = Column(String(100), nullable=False, index=True)
    phone = Column(String(20), nullable=True)
    attempted_at = Column(DateTime, nullable=False, index=True)
    succeeded = Column(Boolean, nullable=False)
    source_address = Column(String(64), nullable=True)

    def __repr__(self):
        return f"<LoginAttempt(username={self.username}, succeeded={self.succeeded})>"
