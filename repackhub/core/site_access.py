"""
Site Access Layer
Fetches listing and detail pages according to each site's access policy.

Credential lifecycle per cookie-protected site:
NoCredential -> Valid (solver call) -> Expired (time passed or a 403 reply) -> Valid
A rejected request is retried exactly once with a freshly solved credential.
"""
import threading
import time
from typing import Callable, Dict, Optional

import requests

from ..models.credential import AccessCredential
from ..sources.base import AccessPolicy, SourceSite
from .errors import SiteFetchError


BLOCKED_STATUSES = {403, 503}
REJECTED_STATUSES = {403}
CHALLENGE_MARKERS = ("cf-browser-verification", "Cloudflare", "Attention Required")


class SiteAccessLayer:
    """Owns the HTTP session and one clearance credential per site."""

    def __init__(self, settings_manager, solver, session: Optional[requests.Session] = None,
                 clock: Callable[[], float] = time.time):
        self.settings = settings_manager
        self.solver = solver
        self.session = session or requests.Session()
        self._clock = clock
        self._credentials: Dict[str, AccessCredential] = {}
        self._site_locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _timeout(self) -> float:
        try:
            return float(self.settings.get("request_timeout_seconds", 15.0) or 15.0)
        except (TypeError, ValueError):
            return 15.0

    def _user_agent(self, is_detail_page: bool) -> str:
        if is_detail_page:
            return str(self.settings.get("page_user_agent", "RepackHub-Link-Extractor/2.0"))
        return str(self.settings.get("api_user_agent", "RepackHub-Search-API/2.0"))

    def _site_lock(self, site_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._site_locks.get(site_id)
            if lock is None:
                lock = threading.Lock()
                self._site_locks[site_id] = lock
            return lock

    # Credentials

    def credential_for(self, site_id: str) -> Optional[AccessCredential]:
        return self._credentials.get(site_id)

    def valid_credential(self, site: SourceSite) -> AccessCredential:
        current = self._credentials.get(site.id)
        if current is not None and current.is_valid(self._clock()):
            return current
        return self.refresh_credential(site, rejected=current)

    def refresh_credential(self, site: SourceSite, rejected: Optional[AccessCredential] = None) -> AccessCredential:
        """
        Solve a new credential for the site. Concurrent callers wait on one solve;
        a caller that finds a credential newer than the one it saw fail reuses it.
        """
        with self._site_lock(site.id):
            current = self._credentials.get(site.id)
            if current is not None and current != rejected and current.is_valid(self._clock()):
                return current
            credential = self.solver.solve(site.listing_endpoint, self._user_agent(False))
            self._credentials[site.id] = credential
            print(f"{site.display_name} clearance refreshed, valid until {int(credential.expires_at)}")
            return credential

    # Requests

    def _get(self, url: str, user_agent: str, extra_headers: Optional[Dict[str, str]] = None,
             credential: Optional[AccessCredential] = None) -> requests.Response:
        headers = {"User-Agent": user_agent}
        if extra_headers:
            headers.update(extra_headers)
        if credential is not None:
            headers["Cookie"] = credential.cookie_header()
        return self.session.get(url, headers=headers, timeout=self._timeout())

    def _get_with_credential(self, url: str, site: SourceSite, user_agent: str,
                             extra_headers: Optional[Dict[str, str]] = None) -> requests.Response:
        credential = self.valid_credential(site)
        response = self._get(url, user_agent, extra_headers, credential)
        if response.status_code in REJECTED_STATUSES:
            print(f"{site.display_name} rejected clearance ({response.status_code}), refreshing")
            credential = self.refresh_credential(site, rejected=credential)
            response = self._get(url, user_agent, extra_headers, credential)
        return response

    @staticmethod
    def looks_blocked(response: requests.Response) -> bool:
        if response.status_code in BLOCKED_STATUSES:
            return True
        content_type = response.headers.get("content-type", "") or ""
        if "text/html" in content_type:
            body = response.text or ""
            return any(marker in body for marker in CHALLENGE_MARKERS)
        return False

    def request(self, url: str, site: SourceSite, user_agent: str,
                extra_headers: Optional[Dict[str, str]] = None) -> requests.Response:
        """
        Perform one policy-driven GET and return the final response, ok or not.

        Raises:
            requests.RequestException: network failure or timeout
            ChallengeSolverError: a needed credential could not be solved
        """
        if site.access_policy == AccessPolicy.COOKIE_AUTHENTICATED:
            return self._get_with_credential(url, site, user_agent, extra_headers)

        response = self._get(url, user_agent, extra_headers)
        if site.access_policy == AccessPolicy.DIRECT or response.ok:
            return response
        if self.looks_blocked(response):
            print(f"{site.display_name} challenge detected ({response.status_code}), using clearance cookie")
            return self._get_with_credential(url, site, user_agent, extra_headers)
        return response

    def fetch(self, url: str, site: SourceSite, is_detail_page: bool = False) -> Optional[requests.Response]:
        """
        Fetch a listing (raises on failure) or a detail page (None on failure).

        Raises:
            SiteFetchError: listing request failed or returned a non-2xx status
            ChallengeSolverError: listing needed a credential that could not be solved
        """
        try:
            response = self.request(url, site, self._user_agent(is_detail_page))
        except requests.RequestException as e:
            if is_detail_page:
                print(f"{site.display_name} page fetch error ({url}): {e}")
                return None
            raise SiteFetchError(site.display_name, reason=str(e)) from e
        except Exception as e:
            if is_detail_page:
                print(f"{site.display_name} page fetch error ({url}): {e}")
                return None
            raise

        if response.ok:
            return response
        if is_detail_page:
            print(f"{site.display_name} page fetch failed ({url}): {response.status_code}")
            return None
        raise SiteFetchError(site.display_name, response.status_code, response.reason or "")
