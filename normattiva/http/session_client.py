"""
Rate-limited HTTP client for normattiva.it.

- Minimum delay between request issuances, shared by all callers
- Retries 429/5xx and network errors with exponential backoff
- Per-crawl cookie store (normattiva serves article text only inside the
  session opened by the Act's landing page)
- Batch fetches in bounded concurrent batches that never abort on one URL

Usage:
    client = RateLimitedSessionClient()
    session = CrawlSession()
    landing = client.fetch(landing_url, session)
    batch = client.fetch_batch(article_urls, session, concurrency=5)
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from threading import Lock
from typing import Callable, Dict, List, Optional, Sequence, Union

import requests

from normattiva import config
from normattiva.http.rate_limiter import MinIntervalRateLimiter
from normattiva.models import BatchResult, FetchFailure, FetchResult

logger = logging.getLogger(__name__)

# Non-200 answers with less body than this are treated as failed fetches
MIN_USEFUL_BODY = 50

DEFAULT_HEADERS = {
    "User-Agent": config.USER_AGENT,
    "Accept": "text/html, application/xhtml+xml, */*",
    "Accept-Language": "it-IT,it;q=0.9,en;q=0.1",
}


class FetchError(Exception):
    """A required page could not be fetched after exhausting retries."""

    def __init__(self, url: str, message: str, attempts: int = 0):
        super().__init__(message)
        self.url = url
        self.attempts = attempts


class ServerUnreachableError(FetchError):
    """No HTTP answer at all: connection errors or timeouts on every attempt."""

    def __init__(self, url: str, cause: Optional[BaseException], attempts: int):
        super().__init__(
            url, f"Could not reach server for {url} after {attempts} attempts: {cause}", attempts
        )
        self.cause = cause


class TerminalStatusError(FetchError):
    """The server kept answering 429/5xx until retries ran out."""

    def __init__(self, url: str, status: int, attempts: int):
        super().__init__(url, f"HTTP {status} for {url} after {attempts} attempts", attempts)
        self.status = status


class CrawlSession:
    """
    Cookie state for a single crawl (one Act, or one census year).

    Set-cookie headers overwrite any cookie of the same name; every request
    made with this session carries the accumulated set. Start a new crawl by
    constructing a new CrawlSession.
    """

    def __init__(self, label: str = ""):
        self.label = label
        self.cookies: Dict[str, str] = {}
        self._lock = Lock()

    def absorb(self, response: requests.Response) -> None:
        """Record the cookies set by a response."""
        with self._lock:
            for cookie in response.cookies:
                self.cookies[cookie.name] = cookie.value

    def cookie_header(self) -> Optional[str]:
        """Render the accumulated cookies as a Cookie header value."""
        with self._lock:
            if not self.cookies:
                return None
            return "; ".join(f"{name}={value}" for name, value in self.cookies.items())


class RateLimitedSessionClient:
    """HTTP GET client with global pacing, bounded retries and session cookies."""

    def __init__(
        self,
        rate_limiter: Optional[MinIntervalRateLimiter] = None,
        max_retries: int = config.MAX_RETRIES,
        backoff_base: float = config.BACKOFF_BASE,
        timeout: float = config.REQUEST_TIMEOUT,
        batch_width: int = config.BATCH_WIDTH,
        transport: Callable[..., requests.Response] = requests.get,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        """
        Initialize the client.

        Args:
            rate_limiter: Shared limiter (default: one with config.MIN_DELAY)
            max_retries: Retries after the first attempt for 429/5xx/network errors
            backoff_base: First backoff delay in seconds, doubled each attempt
            timeout: Per-request timeout in seconds
            batch_width: Default number of concurrent fetches per batch
            transport: Callable with the signature of requests.get
            sleep: Sleep function used for backoff (default: the limiter's)
        """
        self.rate_limiter = rate_limiter or MinIntervalRateLimiter(config.MIN_DELAY)
        self.max_retries = max(0, max_retries)
        self.backoff_base = backoff_base
        self.timeout = timeout
        self.batch_width = max(1, batch_width)
        self.transport = transport
        self.sleep = sleep or self.rate_limiter.sleep

    def _headers(self, session: Optional[CrawlSession]) -> Dict[str, str]:
        headers = dict(DEFAULT_HEADERS)
        if session is not None:
            cookie = session.cookie_header()
            if cookie:
                headers["Cookie"] = cookie
        return headers

    def _backoff(self, attempt: int) -> float:
        return self.backoff_base * (2 ** attempt)

    def fetch(self, url: str, session: Optional[CrawlSession] = None) -> FetchResult:
        """
        Fetch a URL with rate limiting and retries.

        Args:
            url: Absolute URL
            session: Cookie session to read from and update

        Returns:
            FetchResult for any non-retryable status (including 4xx other than 429)

        Raises:
            TerminalStatusError: 429/5xx on every attempt
            ServerUnreachableError: network failure on every attempt
        """
        attempts = self.max_retries + 1
        last_status: Optional[int] = None
        last_error: Optional[BaseException] = None

        for attempt in range(attempts):
            self.rate_limiter.wait()
            try:
                response = self.transport(
                    url, headers=self._headers(session), timeout=self.timeout
                )
            except requests.exceptions.RequestException as e:
                last_status, last_error = None, e
                if attempt < self.max_retries:
                    delay = self._backoff(attempt)
                    logger.warning(
                        f"Request error for {url} (attempt {attempt + 1}/{attempts}), "
                        f"retrying in {delay:.1f}s: {e}"
                    )
                    self.sleep(delay)
                continue

            if session is not None:
                session.absorb(response)

            status = response.status_code
            if status == 429 or status >= 500:
                last_status, last_error = status, None
                if attempt < self.max_retries:
                    delay = self._backoff(attempt)
                    logger.info(f"HTTP {status} for {url}, retrying in {delay:.1f}s...")
                    self.sleep(delay)
                continue

            return FetchResult(
                url=url,
                status=status,
                body=response.text or "",
                headers={k: v for k, v in response.headers.items()},
            )

        if last_status is not None:
            raise TerminalStatusError(url, last_status, attempts)
        raise ServerUnreachableError(url, last_error, attempts)

    def _fetch_one(
        self, url: str, session: Optional[CrawlSession]
    ) -> Union[FetchResult, FetchFailure]:
        try:
            result = self.fetch(url, session)
        except TerminalStatusError as e:
            logger.warning(str(e))
            return FetchFailure(url=url, status=e.status, error=str(e))
        except FetchError as e:
            logger.warning(str(e))
            return FetchFailure(url=url, error=str(e))
        except Exception as e:
            logger.error(f"Unexpected error fetching {url}: {e}")
            return FetchFailure(url=url, error=str(e))

        if result.status != 200 and len(result.body.strip()) < MIN_USEFUL_BODY:
            return FetchFailure(
                url=url, status=result.status, error=f"HTTP {result.status} with empty body"
            )
        return result

    def fetch_batch(
        self,
        urls: Sequence[str],
        session: Optional[CrawlSession] = None,
        concurrency: Optional[int] = None,
    ) -> BatchResult:
        """
        Fetch URLs in consecutive batches of `concurrency` parallel requests.

        Each batch completes before the next starts. Successes keep input
        order; failures are reported per URL and never abort the batch.
        """
        width = max(1, concurrency or self.batch_width)
        result = BatchResult()

        for start in range(0, len(urls), width):
            batch: List[str] = list(urls[start:start + width])
            with ThreadPoolExecutor(max_workers=len(batch)) as executor:
                futures = [executor.submit(self._fetch_one, url, session) for url in batch]
                outcomes = [future.result() for future in futures]

            for outcome in outcomes:
                if isinstance(outcome, FetchFailure):
                    result.failures.append(outcome)
                else:
                    result.successes.append(outcome)

        if result.failures:
            logger.info(
                f"Batch fetch: {len(result.successes)} ok, {len(result.failures)} failed"
            )
        return result
