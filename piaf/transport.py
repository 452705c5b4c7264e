"""
Authenticated Transport for the PI Web API.

One GET in, parsed JSON or a classified ``TransportError`` out. How the
session authenticates (basic, Kerberos/Negotiate, cookies) is up to the
caller: pass any ``requests`` auth object, cookies or headers.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import requests
from ratelimit import limits, sleep_and_retry
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from .cancellation import CancellationToken
from .errors import AuthRequiredError, TransportError, TransportErrorKind

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
_MIN_TIMEOUT = 0.001

_DNS_MARKERS = (
    "NameResolutionError",
    "Failed to resolve",
    "getaddrinfo failed",
    "Name or service not known",
    "nodename nor servname",
    "Temporary failure in name resolution",
    "No address associated with hostname",
)


def build_url(base_url: str, path: str) -> str:
    """Join a relative API path to the base URL; absolute links pass through."""
    if not path:
        return base_url.rstrip("/")
    if path.startswith(("http://", "https://")):
        return path
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


def classify_exception(exc: requests.exceptions.RequestException, url: str) -> TransportError:
    """Map a requests exception onto a TransportError kind."""
    # SSLError and ConnectTimeout are both ConnectionError subclasses
    if isinstance(exc, requests.exceptions.SSLError):
        return TransportError(TransportErrorKind.TLS_FAILURE, url, str(exc))
    if isinstance(exc, requests.exceptions.Timeout):
        return TransportError(TransportErrorKind.TIMEOUT, url, str(exc))
    if isinstance(exc, requests.exceptions.ConnectionError):
        text = str(exc)
        if any(marker in text for marker in _DNS_MARKERS):
            return TransportError(TransportErrorKind.DNS_FAILURE, url, text)
        return TransportError(TransportErrorKind.CONNECTION_REFUSED, url, text)
    return TransportError(TransportErrorKind.HTTP_ERROR, url, str(exc))


def _is_transient(exc: BaseException) -> bool:
    return isinstance(exc, TransportError) and exc.transient


def _log_retry(retry_state) -> None:
    logger.warning(
        f"Retry {retry_state.attempt_number} after error: {retry_state.outcome.exception()}"
    )


class Transport(ABC):
    """Capability the navigator and resolvers depend on."""

    @abstractmethod
    def get(self, base_url: str, path: str,
            cancel: Optional[CancellationToken] = None) -> Dict[str, Any]:
        """GET ``path`` relative to ``base_url`` and return the JSON object."""

    @abstractmethod
    def probe(self, url: str, timeout: float,
              cancel: Optional[CancellationToken] = None) -> int:
        """GET ``url`` once and return the HTTP status code."""

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class HttpTransport(Transport):
    """requests-based transport with retry and per-instance rate limiting."""

    def __init__(self, auth: Any = None, cookies: Optional[Dict[str, str]] = None,
                 headers: Optional[Dict[str, str]] = None, verify: bool = True,
                 timeout: float = DEFAULT_TIMEOUT, retries: int = 3,
                 rate_limit_calls: int = 100, rate_limit_period: float = 1):
        self.timeout = timeout
        self.retries = max(1, retries)

        self.session = requests.Session()
        self.session.headers.update({
            "Accept": "application/json",
            "X-Requested-With": "XMLHttpRequest",
        })
        if headers:
            self.session.headers.update(headers)
        if cookies:
            self.session.cookies.update(cookies)
        self.session.auth = auth
        self.session.verify = verify

        @sleep_and_retry
        @limits(calls=rate_limit_calls, period=rate_limit_period)
        def _throttle():
            pass
        self._throttle = _throttle
        logger.debug(f"Initialized transport (verify={verify}, timeout={timeout}s)")

    def close(self) -> None:
        self.session.close()
        logger.debug("Session closed")

    def _timeout(self, timeout: float, cancel: Optional[CancellationToken]) -> float:
        if cancel is not None:
            timeout = cancel.cap_timeout(timeout)
        return max(timeout, _MIN_TIMEOUT)

    def _send(self, url: str, timeout: float) -> requests.Response:
        self._throttle()
        logger.debug(f"GET {url}")
        try:
            resp = self.session.get(url, timeout=timeout)
        except requests.exceptions.RequestException as e:
            raise classify_exception(e, url) from e
        logger.info(f"GET {url} -> {resp.status_code}")
        return resp

    def _get_once(self, url: str, cancel: Optional[CancellationToken]) -> Dict[str, Any]:
        if cancel is not None:
            cancel.raise_if_cancelled()
        resp = self._send(url, self._timeout(self.timeout, cancel))

        if resp.status_code in (401, 403):
            raise AuthRequiredError(url, resp.status_code)
        if not 200 <= resp.status_code < 300:
            raise TransportError(TransportErrorKind.HTTP_ERROR, url, "request failed",
                                 status=resp.status_code)
        if not resp.text:
            return {}
        try:
            data = resp.json()
        except ValueError as e:
            raise TransportError(TransportErrorKind.INVALID_RESPONSE, url,
                                 "response body is not JSON") from e
        if not isinstance(data, dict):
            raise TransportError(TransportErrorKind.INVALID_RESPONSE, url,
                                 "response body is not a JSON object")
        return data

    def get(self, base_url: str, path: str,
            cancel: Optional[CancellationToken] = None) -> Dict[str, Any]:
        url = build_url(base_url, path)
        # Back-off waits end early once the run is cancelled
        sleep = cancel.sleep if cancel is not None else time.sleep
        retrying = Retrying(
            stop=stop_after_attempt(self.retries),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception(_is_transient),
            before_sleep=_log_retry,
            sleep=sleep,
            reraise=True,
        )
        return retrying(self._get_once, url, cancel)

    def probe(self, url: str, timeout: float,
              cancel: Optional[CancellationToken] = None) -> int:
        if cancel is not None:
            cancel.raise_if_cancelled()
        return self._send(url, self._timeout(timeout, cancel)).status_code
