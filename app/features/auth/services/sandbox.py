import re
import secrets
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable

from app.platform.config import settings


def _digits(phone: str) -> str:
    return re.sub(r"\D", "", phone or "")


@dataclass(frozen=True)
class SandboxMode:
    """Reserved integration-test numbers that skip the real OTP provider.

    A covered number gets its session opened without any SMS, and only
    `code` is accepted for it. Disabled unless explicitly enabled.
    """

    enabled: bool = False
    phones: FrozenSet[str] = field(default_factory=frozenset)
    code: str = ""

    @classmethod
    def build(cls, enabled: bool, phones: Iterable[str], code: str) -> "SandboxMode":
        return cls(enabled=enabled, phones=frozenset(_digits(p) for p in phones), code=code)

    def covers(self, phone: str) -> bool:
        return self.enabled and _digits(phone) in self.phones

    def accepts(self, code: str) -> bool:
        if not self.code:
            return False
        return secrets.compare_digest(code.strip().encode(), self.code.encode())


def get_sandbox_mode() -> SandboxMode:
    return SandboxMode.build(
        enabled=settings.SANDBOX_ENABLED,
        phones=settings.SANDBOX_PHONES,
        code=settings.SANDBOX_CODE,
    )
