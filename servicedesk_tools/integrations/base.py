"""Abstract base class for the ticketing API clients.

This module provides the base class both clients build on: a
``requests.Session`` configured with Basic credentials and a per-client
TLS verification flag, plus rate limiting and opt-in retry logic.
"""

from __future__ import annotations

import random
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import requests

from ..desk_logging import get_logger

if TYPE_CHECKING:
    from .models import TicketSource

logger = get_logger("integrations")

USER_AGENT = "ServiceDeskTools/1.0"

RETRY_STATUSES = frozenset({429, 500, 502, 503, 504})


class IntegrationClient(ABC):
    """Abstract base class for ticketing integrations.

    Each instance owns its own session, so certificate verification is
    scoped to that client and never toggled process-wide.
    """

    def __init__(
        self,
        base_url: str,
        auth: tuple[str, str],
        verify_ssl: bool = True,
        timeout: float = 30.0,
        max_retries: int = 0,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        requests_per_minute: int = 60,
    ):
        """Initialize the integration client.

        Args:
            base_url: API root, without a trailing slash
            auth: Basic-Auth (user, password) pair
            verify_ssl: Verify TLS certificates for this client only
            timeout: Per-request timeout in seconds
            max_retries: Maximum number of retry attempts (0 disables retries)
            base_delay: Base delay for exponential backoff (seconds)
            max_delay: Maximum delay between retries (seconds)
            requests_per_minute: Rate limit (requests per minute)
        """
        self.base_url = base_url.rstrip("/")
        self.verify_ssl = verify_ssl
        self.timeout = timeout
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._requests_per_minute = requests_per_minute

        # Rate limiting state, shared by worker threads
        self._request_times: list[float] = []
        self._rate_lock = threading.Lock()

        self._session = requests.Session()
        self._session.auth = auth
        self._session.verify = verify_ssl
        self._session.headers.update(
            {
                "Accept": "application/json",
                "Content-Type": "application/json",
                "User-Agent": USER_AGENT,
            }
        )

    @property
    @abstractmethod
    def source(self) -> TicketSource:
        """Return the ticket source for this client."""
        pass

    @abstractmethod
    def check_connection(self) -> dict[str, Any]:
        """Make one cheap authenticated call and describe the outcome.

        Returns:
            Dictionary with at least a boolean "success" key
        """
        pass

    def close(self) -> None:
        """Release the underlying HTTP session."""
        self._session.close()

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}{endpoint}"

    def _check_rate_limits(self) -> None:
        """Check and enforce rate limits.

        Blocks if rate limit would be exceeded.
        """
        sleep_time = 0.0
        with self._rate_lock:
            current_time = time.time()

            # Clean old entries (older than 1 minute)
            self._request_times = [
                t for t in self._request_times if current_time - t < 60
            ]

            if len(self._request_times) >= self._requests_per_minute:
                sleep_time = 60 - (current_time - self._request_times[0]) + 1

        if sleep_time > 0:
            logger.debug(f"Rate limit reached, sleeping {sleep_time:.1f}s")
            time.sleep(sleep_time)

    def _record_request(self) -> None:
        """Record a request for rate limiting."""
        with self._rate_lock:
            self._request_times.append(time.time())

    def _calculate_delay(self, attempt: int) -> float:
        """Calculate delay with exponential backoff and jitter.

        Args:
            attempt: Current attempt number (0-indexed)

        Returns:
            Delay in seconds
        """
        delay = self.base_delay * (2**attempt)
        delay = min(delay, self.max_delay)
        # Add jitter (10-30% of delay)
        jitter = random.uniform(0.1, 0.3) * delay
        return delay + jitter

    def _should_retry(self, error: Exception, attempt: int) -> bool:
        """Determine if error should trigger retry.

        Args:
            error: The exception that occurred
            attempt: Current attempt number (0-indexed)

        Returns:
            True if should retry, False otherwise
        """
        if attempt >= self.max_retries:
            return False

        # HTTP errors carry the URL in their message; judge them by status
        if isinstance(error, requests.HTTPError):
            response = error.response
            return response is not None and response.status_code in RETRY_STATUSES

        error_str = str(error).lower()
        transient_errors = [
            "rate limit",
            "timeout",
            "timed out",
            "connection",
            "429",
            "503",
            "502",
            "500",
            "temporarily unavailable",
        ]
        return any(err in error_str for err in transient_errors)

    def _execute_with_retry(self, operation: Callable[..., Any], *args, **kwargs):
        """Execute an operation with retry logic.

        Args:
            operation: The function to execute
            *args: Positional arguments for the operation
            **kwargs: Keyword arguments for the operation

        Returns:
            Result of the operation

        Raises:
            Exception: If all retries are exhausted
        """
        for attempt in range(self.max_retries + 1):
            try:
                self._check_rate_limits()
                result = operation(*args, **kwargs)
                self._record_request()
                return result
            except Exception as e:
                if not self._should_retry(e, attempt):
                    raise
                delay = self._calculate_delay(attempt)
                logger.warning(
                    f"{self.source.value} request failed ({e}), "
                    f"retrying in {delay:.1f}s"
                )
                time.sleep(delay)
