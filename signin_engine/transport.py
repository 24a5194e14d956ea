"""
HTTP transport for the sign-in engine.

All outbound calls (discovery, key sets, token exchange, profile fetch) go
through HttpTransport so that every request carries a timeout derived from the
attempt's Deadline, and so that transport-level failures surface uniformly as
retryable NetworkError.
"""

import logging
import time
from typing import Dict, Any, Optional

import requests
from requests.exceptions import RequestException, ConnectionError, Timeout

from .errors import NetworkError

DEFAULT_TIMEOUT = 10.0
DEFAULT_USER_AGENT = 'signin-engine/1.0'


class Deadline:
    """
    Absolute time budget shared by every outbound call of one operation.

    Args:
        seconds: Budget in seconds from now
        clock: Monotonic clock, injectable for tests
    """

    def __init__(self, seconds: float, clock=time.monotonic):
        self.seconds = seconds
        self._clock = clock
        self.expires_at = clock() + seconds

    def remaining(self) -> float:
        """
        Seconds left before the deadline.

        Raises:
            NetworkError: If the deadline has already passed
        """
        left = self.expires_at - self._clock()
        if left <= 0:
            raise NetworkError(f"Deadline of {self.seconds}s exceeded")
        return left

    def expired(self) -> bool:
        return self.expires_at - self._clock() <= 0


class HttpTransport:
    """
    Thin wrapper around a requests.Session.

    The engine never retries; a failed call fails the attempt.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, session: Optional[requests.Session] = None,
                 user_agent: str = DEFAULT_USER_AGENT):
        """
        Initialize the transport.

        Args:
            timeout: Default per-request timeout when no deadline is given
            session: Optional pre-configured session (connection pooling, proxies)
            user_agent: User-Agent header sent with every request
        """
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            'User-Agent': user_agent,
            'Accept': 'application/json'
        })
        self.logger = logging.getLogger(__name__)

    def _timeout_for(self, deadline: Optional[Deadline]) -> float:
        if deadline is None:
            return self.timeout
        return min(self.timeout, deadline.remaining())

    def _request(self, method: str, url: str, deadline: Optional[Deadline] = None,
                 **kwargs: Any) -> requests.Response:
        timeout = self._timeout_for(deadline)
        try:
            self.logger.debug(f"{method} {url} (timeout {timeout:.1f}s)")
            return self.session.request(method, url, timeout=timeout, **kwargs)
        except Timeout as e:
            self.logger.warning(f"{method} {url} timed out after {timeout:.1f}s")
            raise NetworkError(f"Request timed out: {url}") from e
        except ConnectionError as e:
            self.logger.warning(f"{method} {url} connection failed")
            raise NetworkError(f"Network connection failed: {url}") from e
        except RequestException as e:
            self.logger.warning(f"{method} {url} failed: {e.__class__.__name__}")
            raise NetworkError(f"Network request failed: {url}") from e

    def get(self, url: str, headers: Optional[Dict[str, str]] = None,
            deadline: Optional[Deadline] = None) -> requests.Response:
        """
        Issue a GET request.

        Args:
            url: Absolute URL
            headers: Extra headers for this request
            deadline: Optional deadline bounding the request timeout

        Returns:
            The response, whatever its status

        Raises:
            NetworkError: On timeout, connection failure or expired deadline
        """
        return self._request('GET', url, deadline=deadline, headers=headers)

    def post_form(self, url: str, data: Dict[str, str], headers: Optional[Dict[str, str]] = None,
                  deadline: Optional[Deadline] = None) -> requests.Response:
        """Issue an application/x-www-form-urlencoded POST request."""
        request_headers = {'Content-Type': 'application/x-www-form-urlencoded'}
        if headers:
            request_headers.update(headers)
        return self._request('POST', url, deadline=deadline, data=data, headers=request_headers)

    def close(self) -> None:
        self.session.close()
