"""
FlareSolverr Client
Solves anti-bot challenges and returns the resulting clearance cookie
"""
import time
from typing import Optional

import requests

from ..core.errors import ChallengeSolverError
from ..models.credential import AccessCredential


CLEARANCE_COOKIE = "cf_clearance"


class FlareSolverrClient:
    """Thin client for a FlareSolverr instance"""

    def __init__(self, settings_manager, session: Optional[requests.Session] = None):
        self.settings = settings_manager
        self.session = session or requests.Session()

    def _endpoint(self) -> str:
        return str(self.settings.get("flaresolverr_url", "http://localhost:8191/v1") or "http://localhost:8191/v1")

    def _timeout(self) -> float:
        try:
            return float(self.settings.get("flaresolverr_request_timeout_seconds", 70.0) or 70.0)
        except (TypeError, ValueError):
            return 70.0

    def _default_lifetime(self) -> float:
        try:
            return float(self.settings.get("credential_default_lifetime_seconds", 14400) or 14400)
        except (TypeError, ValueError):
            return 14400.0

    def solve(self, target_url: str, user_agent: str) -> AccessCredential:
        """
        Ask FlareSolverr to load target_url and hand back its clearance cookie.

        Raises:
            ChallengeSolverError: solver unreachable, unsuccessful, or no cookie issued
        """
        payload = {
            "cmd": "request.get",
            "url": target_url,
            "userAgent": user_agent,
            "maxTimeout": int(self.settings.get("flaresolverr_max_timeout_ms", 60000) or 60000),
        }
        print(f"Requesting clearance from FlareSolverr for {target_url}")
        try:
            response = self.session.post(
                self._endpoint(),
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=self._timeout(),
            )
        except requests.RequestException as e:
            raise ChallengeSolverError(f"FlareSolverr request failed: {e}") from e

        if not response.ok:
            raise ChallengeSolverError(f"FlareSolverr request failed with status {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise ChallengeSolverError(f"FlareSolverr returned invalid JSON: {e}") from e

        if data.get("status") != "ok":
            raise ChallengeSolverError(f"FlareSolverr error: {data.get('message') or 'unknown error'}")

        cookies = (data.get("solution") or {}).get("cookies") or []
        clearance = next((c for c in cookies if c.get("name") == CLEARANCE_COOKIE), None)
        if not clearance or not clearance.get("value"):
            raise ChallengeSolverError(f"{CLEARANCE_COOKIE} cookie not found in FlareSolverr response")

        expires = clearance.get("expires")
        if isinstance(expires, (int, float)) and expires > 0:
            expires_at = float(expires)
        else:
            expires_at = time.time() + self._default_lifetime()
        return AccessCredential(token=str(clearance["value"]), expires_at=expires_at)
