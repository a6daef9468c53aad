"""
transport.py

HTTP layer for Google Trends: session bootstrap, throttling and retries.

Google Trends has no public API and rate limits aggressively. Every request
goes through SessionTransport.dispatch(), which:
1. Warms up the session (landing page, then explore page) to collect cookies
2. Throttles requests with a two-slot window (at most 2 requests per request_delay)
3. Backs off exponentially on 429/302 and re-bootstraps on 401/403
4. Raises RequestExhausted with the observed status codes once retries run out

One SessionTransport owns its cookie jar and throttle state; do not share an
instance between threads.
"""

import logging
import time
from enum import Enum
from typing import Any, Callable

import httpx

from .config import ProxyConfig, TrendsConfig
from .errors import RequestExhausted

logger = logging.getLogger(__name__)

BASE_URL = "https://trends.google.com"
HOME_URL = f"{BASE_URL}/"
EXPLORE_PAGE_URL = f"{BASE_URL}/trends/explore"

RATE_LIMIT_CODES = (429, 302)
AUTH_FAILURE_CODES = (401, 403)
BACKOFF_BASE = 5  # seconds, doubled on every attempt


class SessionState(Enum):
    UNBOOTSTRAPPED = "unbootstrapped"
    READY = "ready"
    DEGRADED = "degraded"


class RequestThrottle:
    """
    Rate limiter that remembers the last `slots` dispatch times.

    Before a request, the oldest remembered dispatch must be at least `delay`
    seconds old; otherwise we sleep for the remainder. The oldest slot is then
    overwritten with the current time. With two slots this allows at most two
    requests per `delay` window, i.e. an average spacing of delay / 2.
    """

    def __init__(
        self,
        delay: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        slots: int = 2,
    ):
        self.delay = delay
        self._clock = clock
        self._sleep = sleep
        self._last_dispatch = [float("-inf")] * slots

    @property
    def last_dispatch_times(self) -> list[float]:
        return list(self._last_dispatch)

    def wait(self) -> float:
        """Block until a request may be sent; returns the dispatch time."""
        if not self.delay:
            return self._clock()

        oldest = min(range(len(self._last_dispatch)), key=self._last_dispatch.__getitem__)
        elapsed = self._clock() - self._last_dispatch[oldest]
        if elapsed < self.delay:
            self._sleep(self.delay - elapsed)

        now = self._clock()
        self._last_dispatch[oldest] = now
        return now


class SessionTransport:
    """
    Cookie-aware, throttled, retrying HTTP client for Google Trends.

    Args:
        config: Client configuration (delay, retries, proxy, timeout).
        transport: Optional httpx transport, e.g. httpx.MockTransport in tests.
            Proxy settings do not apply to it.
        clock: Monotonic clock used by the throttle.
        sleep: Sleep function used for throttling, backoff and warm-up pauses.
    """

    def __init__(
        self,
        config: TrendsConfig | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config or TrendsConfig()
        self._transport = transport
        self._sleep = sleep
        self._throttle = RequestThrottle(self.config.request_delay, clock, sleep)
        self._state = SessionState.UNBOOTSTRAPPED
        self._client = self._build_client(self.config.proxy)

    def _get_default_headers(self) -> dict[str, str]:
        """Get default headers that mimic a real browser."""
        return {
            "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,image/apng,*/*;q=0.8",
            "Accept-Language": f"{self.config.language},en-US;q=0.9,en;q=0.8",
            "Accept-Encoding": "gzip, deflate",
            "Cache-Control": "no-cache",
            "Pragma": "no-cache",
            "Sec-Ch-Ua": '"Chromium";v="122", "Not(A:Brand";v="24", "Google Chrome";v="122"',
            "Sec-Ch-Ua-Mobile": "?0",
            "Sec-Ch-Ua-Platform": '"Windows"',
            "Sec-Fetch-Dest": "document",
            "Sec-Fetch-Mode": "navigate",
            "Sec-Fetch-Site": "none",
            "Sec-Fetch-User": "?1",
            "Upgrade-Insecure-Requests": "1",
        }

    def _build_client(self, proxy: ProxyConfig, cookies: httpx.Cookies | None = None) -> httpx.Client:
        transport_kwargs: dict[str, Any] = {}
        if self._transport is not None:
            transport_kwargs["transport"] = self._transport
        elif isinstance(proxy, str):
            transport_kwargs["proxy"] = proxy
        elif proxy:
            transport_kwargs["mounts"] = {
                f"{scheme.rstrip(':/')}://": httpx.HTTPTransport(proxy=url)
                for scheme, url in proxy.items()
            }

        return httpx.Client(
            timeout=self.config.timeout,
            follow_redirects=False,
            headers=self._get_default_headers(),
            cookies=cookies,
            **transport_kwargs,
        )

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def cookies(self) -> httpx.Cookies:
        return self._client.cookies

    @property
    def throttle(self) -> RequestThrottle:
        return self._throttle

    def set_proxy(self, proxy: ProxyConfig) -> None:
        """
        Set or clear the proxy ("http://host:port" or {"http": ..., "https": ...}).

        The HTTP client is rebuilt with the current cookies; the change applies
        from the next dispatch. An injected transport handles its own routing,
        so the proxy is only recorded in the config then.
        """
        self.config.proxy = proxy
        if self._transport is not None:
            logger.warning("Proxy setting has no effect with an injected transport")
            return

        old_client = self._client
        self._client = self._build_client(proxy, old_client.cookies)
        old_client.close()

    def bootstrap(self) -> bool:
        """
        Warm up the session by visiting the landing page and the explore page.

        Failures are logged and reported as False; the next dispatch retries.
        """
        logger.info("Initializing Google Trends session")
        try:
            response = self._client.get(
                HOME_URL,
                headers={"referer": "https://www.google.com/"},
                follow_redirects=True,
            )
            response.raise_for_status()

            # Small pause between page loads, like a person clicking through
            self._sleep(self.config.bootstrap_pause)

            response = self._client.get(
                EXPLORE_PAGE_URL,
                headers={"referer": HOME_URL},
                follow_redirects=True,
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Failed to initialize session: {e}")
            self._state = SessionState.UNBOOTSTRAPPED
            return False

        self._state = SessionState.READY
        return True

    def dispatch(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        method: str = "GET",
        data: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """
        Send a request with throttling, backoff and retries.

        Returns:
            The first response with status 200.

        Raises:
            RequestExhausted: No attempt returned 200 within max_retries.
            httpx.HTTPError: A network error happened on the last attempt.
        """
        if self._state is not SessionState.READY:
            self.bootstrap()

        request_headers = {"referer": EXPLORE_PAGE_URL, **(headers or {})}
        max_retries = self.config.max_retries
        status_codes: list[int] = []

        for attempt in range(max_retries):
            is_last = attempt == max_retries - 1

            if self._state is SessionState.DEGRADED:
                self.bootstrap()

            self._throttle.wait()
            logger.debug(f"{method} {url} (attempt {attempt + 1}/{max_retries})")

            try:
                response = self._client.request(
                    method,
                    url,
                    params=params,
                    data=data,
                    headers=request_headers,
                )
            except httpx.HTTPError as e:
                if is_last:
                    raise
                logger.warning(f"Request error ({type(e).__name__}): {e}, retrying")
                continue

            status_codes.append(response.status_code)

            if response.status_code == 200:
                return response

            if response.status_code in RATE_LIMIT_CODES:
                if not is_last:
                    wait_time = BACKOFF_BASE * 2**attempt
                    logger.warning(
                        f"Rate limit hit ({response.status_code}), "
                        f"waiting {wait_time} seconds before retry"
                    )
                    self._sleep(wait_time)
            elif response.status_code in AUTH_FAILURE_CODES:
                logger.info(f"Session rejected ({response.status_code}), re-initializing")
                self._state = SessionState.DEGRADED
            else:
                logger.warning(f"Unexpected status {response.status_code} from {url}")

        advisory = None
        if status_codes.count(429) > len(status_codes) / 2:
            current_delay = self.config.request_delay or 1
            advisory = (
                "Too many rate limit errors (429). Consider increasing request_delay "
                f"to Trends(request_delay={current_delay * 2}) before Google implements "
                "a long-term rate limit!"
            )
            logger.warning(advisory)

        raise RequestExhausted(status_codes, max_retries, advisory)

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> "SessionTransport":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
