"""Shared HTTP client with retry logic and rate limiting."""

import logging
import time
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

USER_AGENT = "omniread/0.1 (+https://github.com/omniread/omniread)"
RETRYABLE_STATUS = (429, 500, 502, 503, 504)


class RetryableHTTPClient:
    """HTTP client with exponential backoff retry logic and rate limiting.

    Retries throttling and server errors (429, 500, 502, 503, 504), respects
    Retry-After headers, and spaces requests to at most *rps* per second.
    With ``max_retries=1`` every call is a single attempt.

    Args:
        rps: Maximum requests per second (default: 1.0)
        max_retries: Maximum number of attempts (default: 3)
        timeout: Request timeout in seconds (default: 15)
        session: Optional pre-configured requests.Session
    """

    def __init__(
        self,
        rps: float = 1.0,
        max_retries: int = 3,
        timeout: float = 15,
        session: Optional[requests.Session] = None,
    ):
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", USER_AGENT)
        self.max_retries = max(1, int(max_retries))
        self.timeout = timeout
        self.min_interval = 1.0 / max(rps, 0.01)
        self.last_request_time = 0.0

    def _rate_limit(self):
        now = time.time()
        elapsed = now - self.last_request_time
        if elapsed < self.min_interval:
            time.sleep(self.min_interval - elapsed)
        self.last_request_time = time.time()

    def request_with_retry(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        """Send a request, retrying transient failures.

        Raises:
            requests.HTTPError: On non-retryable HTTP errors or when retries run out
            requests.RequestException: On network errors after retries exhausted
        """
        kwargs.setdefault("timeout", self.timeout)
        for attempt in range(self.max_retries):
            last_attempt = attempt == self.max_retries - 1
            try:
                self._rate_limit()
                response = self.session.request(method, url, **kwargs)
            except requests.RequestException as exc:
                if last_attempt:
                    raise
                wait = min(8.0, 2.0 ** attempt)
                logger.debug("%s %s failed (%s); retrying in %.1fs", method, url, exc, wait)
                time.sleep(wait)
                continue

            if response.status_code in RETRYABLE_STATUS and not last_attempt:
                wait = self._calculate_backoff_time(response, attempt)
                logger.debug("%s %s returned %d; retrying in %.1fs", method, url, response.status_code, wait)
                time.sleep(wait)
                continue

            response.raise_for_status()
            return response

        raise requests.RequestException(f"{method} {url}: no attempts made")  # pragma: no cover

    def get_with_retry(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> requests.Response:
        return self.request_with_retry(
            "GET", url, headers=headers, params=params, timeout=timeout or self.timeout,
            allow_redirects=True,
        )

    def post_json_with_retry(
        self,
        url: str,
        payload: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        """POST a JSON body and return the decoded JSON response."""
        response = self.request_with_retry(
            "POST", url, json=payload, headers=headers, timeout=timeout or self.timeout,
        )
        return response.json()

    def _calculate_backoff_time(self, response: requests.Response, attempt: int) -> float:
        """Calculate backoff time, respecting Retry-After header if present."""
        retry_after = response.headers.get("Retry-After")
        if retry_after:
            try:
                return max(float(retry_after), 1.0)
            except (ValueError, TypeError):
                pass
        return min(8.0, 2.0 ** attempt)

    def close(self):
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
