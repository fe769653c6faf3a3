"""
Authenticator Module - CAS login flow and session state.
========================================================

Drives the SSO login as a small state machine::

    ANONYMOUS ──GET login page──▶ TOKEN_ACQUIRED
              ──POST credentials──▶ CREDENTIALS_SUBMITTED
              ──redirected to portal──▶ AUTHENTICATED
              ──content fetch redirected away──▶ EXPIRED

It also exports and restores the session cookies, so that a warm start
can skip the login entirely.
"""

from enum import Enum
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from spotifier.shared.config import PortalConfig
from spotifier.shared.exceptions import (
    AuthenticationFailed,
    SessionExpired,
    TokenNotFound,
    TransportError,
)
from spotifier.shared.logging import get_logger
from spotifier.shared.utils import atomic_write_text
from spotifier.transport.dispatcher import RequestDispatcher

logger = get_logger(__name__)

PORTAL_SCOPE = "portal"
IDENTITY_PROVIDER_SCOPE = "identity_provider"
COOKIE_SCOPES = (PORTAL_SCOPE, IDENTITY_PROVIDER_SCOPE)


class AuthState(str, Enum):
    """Authentication state of a client session."""

    ANONYMOUS = "anonymous"
    TOKEN_ACQUIRED = "token_acquired"
    CREDENTIALS_SUBMITTED = "credentials_submitted"
    AUTHENTICATED = "authenticated"
    EXPIRED = "expired"


def _domain_matches(host: str, cookie_domain: str) -> bool:
    domain = cookie_domain.lstrip(".").lower()
    host = host.lower()
    return bool(domain) and (host == domain or host.endswith("." + domain))


class SessionAuthenticator:
    """
    Logs into the portal through the SSO and guards content fetches.

    Example:
        >>> auth = SessionAuthenticator(RequestDispatcher())
        >>> auth.login("2101234", "secret")
        >>> html = auth.fetch_page("/mhs")
    """

    def __init__(
        self,
        dispatcher: RequestDispatcher,
        portal: Optional[PortalConfig] = None,
        login_jitter_ms: tuple[int, int] = (2000, 5000),
        diagnostics_dir: Optional[Path] = None,
    ):
        """
        Initialize the authenticator.

        Args:
            dispatcher: Dispatcher owning the session cookie jar
            portal: Portal and SSO endpoints
            login_jitter_ms: Think time after submitting credentials
            diagnostics_dir: Where to keep the body of a failed login
        """
        self.dispatcher = dispatcher
        self.portal = portal or PortalConfig()
        self.login_jitter_ms = login_jitter_ms
        self.diagnostics_dir = Path(diagnostics_dir) if diagnostics_dir else None
        self.state = AuthState.ANONYMOUS

    @property
    def is_authenticated(self) -> bool:
        return self.state == AuthState.AUTHENTICATED

    @property
    def portal_host(self) -> str:
        return self.portal.portal_host

    # ─────────────────────────────────────────────────────────────────────────
    # Login
    # ─────────────────────────────────────────────────────────────────────────

    def _acquire_token(self) -> tuple[str, str]:
        """GET the login page; return (execution token, URL the form was served from)."""
        response = self.dispatcher.get(self.portal.login_url)

        soup = BeautifulSoup(response.text, "lxml")
        field = soup.select_one('input[name="execution"]')
        token = field.get("value") if field else None
        if not token:
            logger.error("Login page has no execution token")
            raise TokenNotFound()

        self.state = AuthState.TOKEN_ACQUIRED
        return token, response.url

    def login(self, username: str, password: str) -> None:
        """
        Log in with a student id (NIM) and password.

        Raises:
            TokenNotFound: The login page had no execution token
            AuthenticationFailed: The SSO did not redirect back to the portal
            TransportError: A request failed
        """
        self.state = AuthState.ANONYMOUS
        logger.info("Logging in through SSO")

        token, action_url = self._acquire_token()

        form = {
            "username": username,
            "password": password,
            "execution": token,
            "_eventId": "submit",
        }
        try:
            response = self.dispatcher.post_form(action_url, form)
        except TransportError:
            self.state = AuthState.ANONYMOUS
            raise
        self.state = AuthState.CREDENTIALS_SUBMITTED

        self.dispatcher.human_pause(*self.login_jitter_ms)

        final_host = urlparse(response.url).hostname or ""
        if final_host != self.portal_host:
            self.state = AuthState.ANONYMOUS
            body = response.text
            self._keep_diagnostics(body)
            logger.warning(f"Login did not return to the portal (landed on {final_host})")
            raise AuthenticationFailed(body=body, final_url=response.url)

        self.state = AuthState.AUTHENTICATED
        logger.info("Login successful")

    def _keep_diagnostics(self, body: str) -> None:
        if self.diagnostics_dir is None:
            return
        path = self.diagnostics_dir / "login_fail.html"
        try:
            atomic_write_text(path, body)
            logger.info(f"Saved failed login page to {path}")
        except OSError as e:
            logger.warning(f"Could not save failed login page: {e}")

    def logout(self) -> None:
        """Forget every cookie and return to the anonymous state."""
        self.dispatcher.cookies.clear()
        self.state = AuthState.ANONYMOUS

    # ─────────────────────────────────────────────────────────────────────────
    # Content fetches
    # ─────────────────────────────────────────────────────────────────────────

    def _redirected_away(self, requested_path: str, final_url: str) -> bool:
        final = urlparse(final_url)
        if (final.hostname or "") != self.portal_host:
            return True
        requested = urlparse(requested_path).path.rstrip("/")
        return not final.path.rstrip("/").startswith(requested)

    def fetch_page(self, path: str) -> str:
        """
        GET a portal page and return its HTML.

        Args:
            path: Portal path such as ``/mhs``

        Raises:
            SessionExpired: The portal redirected away from the requested page
            TransportError: The request failed or the portal answered with an error
        """
        response = self.dispatcher.get(f"{self.portal.base_url}{path}")

        if self._redirected_away(path, response.url):
            logger.warning(f"Session expired: {path} redirected to {response.url}")
            self.state = AuthState.EXPIRED
            raise SessionExpired(requested_path=path, final_url=response.url)

        if response.status_code >= 400:
            raise TransportError(
                f"Portal returned HTTP {response.status_code} for {path}", url=response.url
            )

        return response.text

    # ─────────────────────────────────────────────────────────────────────────
    # Cookie persistence
    # ─────────────────────────────────────────────────────────────────────────

    def _scope_hosts(self) -> dict[str, str]:
        return {
            PORTAL_SCOPE: self.portal.portal_host,
            IDENTITY_PROVIDER_SCOPE: self.portal.identity_provider_host,
        }

    def export_cookies(self) -> dict[str, str]:
        """
        Serialize the session cookies per scope.

        Returns:
            ``{"portal": "a=1; b=2", "identity_provider": "TGC=..."}``;
            scopes without cookies are omitted
        """
        exported: dict[str, str] = {}
        for scope, host in self._scope_hosts().items():
            pairs = [
                f"{cookie.name}={cookie.value}"
                for cookie in self.dispatcher.cookies
                if _domain_matches(host, cookie.domain)
            ]
            if pairs:
                exported[scope] = "; ".join(pairs)
        return exported

    def import_cookies(self, cookies: dict[str, str]) -> int:
        """
        Restore cookies exported by :meth:`export_cookies`.

        The session is then assumed authenticated; the first fetch
        confirms it or raises SessionExpired.

        Returns:
            Number of cookies restored
        """
        restored = 0
        jar = self.dispatcher.cookies
        for scope, host in self._scope_hosts().items():
            header = cookies.get(scope)
            if not header:
                continue
            for pair in header.split(";"):
                name, sep, value = pair.strip().partition("=")
                if not sep or not name:
                    continue
                jar.set(name, value, domain=host, path="/")
                restored += 1

        if restored:
            self.state = AuthState.AUTHENTICATED
        logger.debug(f"Restored {restored} session cookies")
        return restored
