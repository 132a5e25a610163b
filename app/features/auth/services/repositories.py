from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from app.features.auth.models.account import Account
from app.features.auth.models.login_attempt import LoginAttempt
from app.features.auth.models.verification_session import FlowType, VerificationSession


class AccountRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, account_id: str) -> Optional[Account]:
        result = await self.db.execute(select(Account).where(Account.id == account_id))
        return result.scalar_one_or_none()

    async def get_by_username(self, username: str) -> Optional[Account]:
        result = await self.db.execute(select(Account).where(Account.username == username))
        return result.scalar_one_or_none()

    async def get_by_phone(self, phone: str) -> Optional[Account]:
        result = await self.db.execute(select(Account).where(Account.phone == phone))
        return result.scalar_one_or_none()

    async def get_active(self, username: str, verified_only: bool = False) -> Optional[Account]:
        query = select(Account).where(Account.username == username, Account.active.is_(True))
        if verified_only:
            query = query.where(Account.phone_verified.is_(True))
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def list_all(self) -> List[Account]:
        result = await self.db.execute(select(Account).order_by(Account.created_at))
        return list(result.scalars().all())

    async def create(self, username: str, phone: str) -> Account:
        """Insert an unverified account; raises IntegrityError on a duplicate."""
        account = Account(username=username, phone=phone, phone_verified=False, active=True)
        self.db.add(account)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise
        await self.db.refresh(account)
        return account

    async def delete(self, account_id: str) -> None:
        await self.db.execute(delete(Account).where(Account.id == account_id))
        await self.db.commit()

    async def mark_phone_verified(self, account: Account) -> Account:
        account.phone_verified = True
        await self.db.commit()
        await self.db.refresh(account)
        return account

    async def touch_last_login(self, account: Account, now: datetime) -> Account:
        account.last_login_at = now
        await self.db.commit()
        await self.db.refresh(account)
        return account


class VerificationSessionRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self, username: str, phone: str, flow_type: FlowType, requested_at: datetime, expires_at: datetime
    ) -> VerificationSession:
        session = VerificationSession(
            username=username,
            phone=phone,
            flow_type=flow_type,
            requested_at=requested_at,
            expires_at=expires_at,
            attempts=0,
        )
        self.db.add(session)
        await self.db.commit()
        await self.db.refresh(session)
        return session

    async def get_latest(self, username: str, flow_type: FlowType) -> Optional[VerificationSession]:
        result = await self.db.execute(
            select(VerificationSession)
            .where(
                VerificationSession.username == username,
                VerificationSession.flow_type == flow_type,
            )
            .order_by(VerificationSession.requested_at.desc())
            .limit(1)
        )
        return result.scalars().first()

    async def increment_attempts(self, session: VerificationSession, cap: int) -> Optional[int]:
        """
        Record one failed attempt with a compare-and-set on the attempt counter.

        Returns the counter value after this attempt, or None when the session
        no longer exists. A concurrent increment makes the write miss; the
        counter is then re-read and the write retried, so no rejection is
        lost and the counter never goes past `cap`.
        """
        seen = session.attempts
        while True:
            if seen >= cap:
                return seen

            result = await self.db.execute(
                update(VerificationSession)
                .where(
                    VerificationSession.id == session.id,
                    VerificationSession.attempts == seen,
                )
                .values(attempts=seen + 1)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()

            if result.rowcount == 1:
                set_committed_value(session, "attempts", seen + 1)
                return seen + 1

            current = await self.db.execute(
                select(VerificationSession.attempts).where(VerificationSession.id == session.id)
            )
            seen = current.scalar_one_or_none()
            if seen is None:
                return None

    async def delete(self, session: VerificationSession) -> None:
        await self.db.execute(
            delete(VerificationSession).where(VerificationSession.id == session.id)
        )
        await self.db.commit()

    async def delete_for_user(self, username: str, flow_type: FlowType) -> int:
        result = await self.db.execute(
            delete(VerificationSession).where(
                VerificationSession.username == username,
                VerificationSession.flow_type == flow_type,
            )
        )
        await self.db.commit()
        return result.rowcount

    async def purge_expired(self, now: datetime) -> int:
        result = await self.db.execute(
            delete(VerificationSession).where(VerificationSession.expires_at < now)
        )
        await self.db.commit()
        return result.rowcount


class LoginAttemptRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def record(
        self,
        username: str,
        phone: Optional[str],
        succeeded: bool,
        source_address: Optional[str],
        attempted_at: datetime,
    ) -> LoginAttempt:
        attempt = LoginAttempt(
            username=username,
            phone=phone,
            succeeded=succeeded,
            source_address=source_address,
            attempted_at=attempted_at,
        )
        self.db.add(attempt)
        await self.db.commit()
        return attempt

    async def history(self, username: str, limit: int = 10) -> List[LoginAttempt]:
        result = await self.db.execute(
            select(LoginAttempt)
            .where(LoginAttempt.username == username)
            .order_by(LoginAttempt.attempted_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
