"""
Periodic purge of expired verification sessions.

Expired sessions are already unusable; this only keeps the table small.
Started from the application lifespan when SESSION_CLEANUP_INTERVAL_SECONDS > 0.
"""
import asyncio
import logging

from app.features.auth.services.repositories import VerificationSessionRepository
from app.features.auth.services.verification_engine import utcnow
from app.platform.db.session import SessionLocal

logger = logging.getLogger(__name__)


async def purge_expired_sessions(session_factory=SessionLocal) -> int:
    async with session_factory() as db:
        purged = await VerificationSessionRepository(db).purge_expired(utcnow())
    if purged:
        logger.info(f"Purged {purged} expired verification sessions")
    return purged


async def run_session_cleanup(interval_seconds: int, session_factory=SessionLocal) -> None:
    logger.info(f"Session cleanup worker started (every {interval_seconds}s)")
    while True:
        try:
            await purge_expired_sessions(session_factory)
        except Exception:
            logger.exception("Session cleanup failed, retrying next interval")
        await asyncio.sleep(interval_seconds)
