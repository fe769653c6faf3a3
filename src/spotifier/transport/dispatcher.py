"""
Dispatcher Module - Paced, identity-rotating HTTP calls.
========================================================

Every request to the portal or the SSO goes through one dispatcher:
- Randomized pacing before each request (human-like delays)
- User-Agent fixed per session, re-rolled per request
- One cookie jar shared by all calls
- No retries: a transport failure surfaces immediately

The random source and the sleep function are injectable so that pacing
and identity rotation can be tested deterministically.
"""

import random
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional

import requests
from requests.cookies import RequestsCookieJar

from spotifier.shared.config import DEFAULT_USER_AGENTS
from spotifier.shared.exceptions import TransportError
from spotifier.shared.logging import get_logger
from spotifier.shared.schemas import DelayConfig

logger = get_logger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Data Classes
# ─────────────────────────────────────────────────────────────────────────────


@dataclass
class DispatchStats:
    """Statistics for a dispatcher session."""

    total_requests: int = 0
    failed: int = 0
    total_delay_ms: int = 0
    start_time: datetime = field(default_factory=datetime.now)

    @property
    def success_rate(self) -> float:
        """Share of requests that got a response."""
        if self.total_requests == 0:
            return 1.0
        return (self.total_requests - self.failed) / self.total_requests


# ─────────────────────────────────────────────────────────────────────────────
# Dispatcher Class
# ─────────────────────────────────────────────────────────────────────────────


class RequestDispatcher:
    """
    HTTP dispatcher with pacing and User-Agent rotation.

    Example:
        >>> dispatcher = RequestDispatcher(DelayConfig(min_delay_ms=500, max_delay_ms=1500))
        >>> response = dispatcher.get("https://spot.upi.edu/mhs")
        >>> response.url
        'https://spot.upi.edu/mhs'
    """

    def __init__(
        self,
        delay_config: Optional[DelayConfig] = None,
        session: Optional[requests.Session] = None,
        user_agents: Optional[list[str]] = None,
        timeout: int = 30,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the dispatcher.

        Args:
            delay_config: Pacing policy (defaults to 1-3s random delays)
            session: Pre-built session; a new requests.Session otherwise
            user_agents: Pool of client identities to rotate through
            timeout: Request timeout in seconds
            rng: Random source for delays and identity choice
            sleep: Function used to wait, in seconds
        """
        self.delay_config = delay_config or DelayConfig()
        self.user_agents = list(user_agents or DEFAULT_USER_AGENTS)
        if not self.user_agents:
            raise ValueError("user_agents must not be empty")
        self.timeout = timeout
        self.rng = rng or random.Random()
        self._sleep = sleep
        self.stats = DispatchStats()

        self._session = session or requests.Session()
        # Constant identity for the whole session; per-request overrides vary
        self.session_user_agent = self.random_user_agent()
        self._session.headers.update(
            {
                "User-Agent": self.session_user_agent,
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                "Accept-Language": "id-ID,id;q=0.9,en-US;q=0.8,en;q=0.7",
            }
        )

        logger.debug(
            f"Dispatcher initialized: pacing={self.delay_config.enabled} "
            f"({self.delay_config.min_delay_ms}-{self.delay_config.max_delay_ms}ms), "
            f"timeout={self.timeout}s"
        )

    @property
    def session(self) -> requests.Session:
        """The underlying session."""
        return self._session

    @property
    def cookies(self) -> RequestsCookieJar:
        """Cookie jar shared by every request of this dispatcher."""
        return self._session.cookies

    def set_delay_config(self, delay_config: DelayConfig) -> None:
        """Replace the pacing policy."""
        self.delay_config = delay_config

    def random_user_agent(self) -> str:
        """Pick a client identity uniformly at random."""
        return self.rng.choice(self.user_agents)

    # ─────────────────────────────────────────────────────────────────────────
    # Pacing
    # ─────────────────────────────────────────────────────────────────────────

    def _wait(self, min_ms: int, max_ms: int) -> int:
        delay_ms = self.rng.randint(min_ms, max_ms)
        if delay_ms > 0:
            logger.debug(f"Pacing: sleeping {delay_ms}ms")
            self._sleep(delay_ms / 1000.0)
        self.stats.total_delay_ms += delay_ms
        return delay_ms

    def pace(self) -> int:
        """
        Sleep for a random duration according to the delay config.

        Returns:
            Milliseconds slept (0 when pacing is disabled)
        """
        if not self.delay_config.enabled:
            return 0
        return self._wait(self.delay_config.min_delay_ms, self.delay_config.max_delay_ms)

    def human_pause(self, min_ms: int, max_ms: int) -> int:
        """Extra think time between steps of a flow; skipped when pacing is off."""
        if not self.delay_config.enabled:
            return 0
        return self._wait(min_ms, max_ms)

    # ─────────────────────────────────────────────────────────────────────────
    # Requests
    # ─────────────────────────────────────────────────────────────────────────

    def _dispatch(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        self.pace()

        headers = dict(kwargs.pop("headers", None) or {})
        headers["User-Agent"] = self.random_user_agent()

        self.stats.total_requests += 1
        logger.debug(f"{method} {url}")

        try:
            response = self._session.request(
                method,
                url,
                headers=headers,
                timeout=self.timeout,
                **kwargs,
            )
        except requests.RequestException as e:
            self.stats.failed += 1
            logger.error(f"Request failed: {method} {url}: {e}")
            raise TransportError(f"Request to {url} failed: {e}", url=url) from e

        logger.debug(f"{method} {url} -> {response.status_code} {response.url}")
        return response

    def get(self, url: str, **kwargs: Any) -> requests.Response:
        """Send a paced GET request, following redirects."""
        return self._dispatch("GET", url, **kwargs)

    def post_form(self, url: str, data: dict[str, str], **kwargs: Any) -> requests.Response:
        """Send a paced form-encoded POST request."""
        return self._dispatch("POST", url, data=data, **kwargs)

    def post_multipart(
        self,
        url: str,
        data: dict[str, str],
        files: Optional[dict[str, tuple[str, bytes]]] = None,
        **kwargs: Any,
    ) -> requests.Response:
        """
        Send a paced multipart POST request.

        Args:
            url: Target URL
            data: Text fields
            files: Optional file parts as ``{field: (file_name, content)}``
        """
        if files:
            return self._dispatch("POST", url, data=data, files=files, **kwargs)
        # Force multipart encoding even without a file part
        parts = {name: (None, value) for name, value in data.items()}
        return self._dispatch("POST", url, files=parts, **kwargs)

    def get_stats(self) -> DispatchStats:
        """Get dispatch statistics."""
        return self.stats

    def close(self) -> None:
        """Close the underlying session."""
        self._session.close()

    def __enter__(self) -> "RequestDispatcher":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore[no-untyped-def]
        self.close()
