"""
Access Credential Model
Clearance cookie obtained from a solved anti-bot challenge
"""
import time
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class AccessCredential:
    token: str = ""
    expires_at: float = 0.0  # epoch seconds

    def is_valid(self, now: Optional[float] = None) -> bool:
        now = time.time() if now is None else now
        return bool(self.token) and now < self.expires_at

    def cookie_header(self) -> str:
        return f"cf_clearance={self.token}"
