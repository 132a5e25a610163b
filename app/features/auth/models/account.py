from sqlalchemy import Boolean, Column, DateTime, String

from app.platform.db.base import BaseModel


class Account(BaseModel):
    __tablename__ = "accounts"

    username = Column(String(100), unique=True, nullable=False, index=True)
    phone = Column(String(20), unique=True, nullable=False, index=True)

    phone_verified = Column(Boolean, default=False, nullable=False)
    active = Column(Boolean, default=True, nullable=False)

    last_login_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return (
            f"<Account(id={self.id}, username={self.username}, "
            f"phone_verified={self.phone_verified}, active={self.active})>"
        )
