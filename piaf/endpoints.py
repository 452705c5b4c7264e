"""
Endpoint Resolver: find a live PI Web API root for a host name.

Candidates are probed in a fixed order (https before http, default ports
before explicit ones, standard path before the alternates some installs use).
A 401 or 403 means the server is up and only wants credentials, which is good
enough to count as found.
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit

from .cancellation import CancellationToken
from .errors import EndpointUnreachableError, RunCancelledError, TransportError
from .transport import Transport

logger = logging.getLogger(__name__)

PROBE_TIMEOUT = 10.0
REACHABLE_AUTH_STATUSES = (401, 403)

_CANDIDATE_TEMPLATES = (
    "https://{host}/piwebapi",
    "https://{host}:443/piwebapi",
    "http://{host}/piwebapi",
    "https://{host}/PIWebAPI",
    "http://{host}/PIWebAPI",
    "https://{host}:5985/piwebapi",
    "http://{host}:5985/piwebapi",
    "https://{host}/piwebapi2018",
    "http://{host}/piwebapi2018",
    "https://{host}/piwebapi2019",
    "http://{host}/piwebapi2019",
)


def normalize_host(host_name: str) -> str:
    """Strip scheme, path and surrounding whitespace from a host entry."""
    host = host_name.strip()
    if "://" in host:
        host = urlsplit(host).netloc
    return host.split("/")[0]


def candidate_urls(host_name: str) -> List[str]:
    host = normalize_host(host_name)
    if not host:
        raise ValueError("PI Web API host name is empty")
    return [template.format(host=host) for template in _CANDIDATE_TEMPLATES]


def is_reachable_status(status: int) -> bool:
    return 200 <= status < 300 or status in REACHABLE_AUTH_STATUSES


class EndpointResolver:
    """Probes candidate base URLs and returns the first that answers."""

    def __init__(self, transport: Transport, probe_timeout: float = PROBE_TIMEOUT):
        self.transport = transport
        self.probe_timeout = probe_timeout

    def probe_all(self, host_name: str,
                  cancel: Optional[CancellationToken] = None,
                  stop_on_success: bool = True) -> List[Dict[str, Any]]:
        """Probe candidates in order; each attempt is reported as a dict."""
        attempts = []
        for url in candidate_urls(host_name):
            attempt: Dict[str, Any] = {"url": url, "status": None, "error": None,
                                       "reachable": False}
            try:
                status = self.transport.probe(url, self.probe_timeout, cancel)
            except RunCancelledError:
                raise
            except TransportError as e:
                attempt["error"] = e.kind.value
                logger.debug(f"Probe failed: {url} ({e.kind.value})")
            else:
                attempt["status"] = status
                attempt["reachable"] = is_reachable_status(status)
                logger.debug(f"Probe {url} -> {status}")
            attempts.append(attempt)
            if attempt["reachable"] and stop_on_success:
                break
        return attempts

    def resolve(self, host_name: str, cancel: Optional[CancellationToken] = None) -> str:
        """Return the first reachable base URL or raise EndpointUnreachableError."""
        if not normalize_host(host_name or ""):
            logger.error("PI Web API host name is empty")
            raise EndpointUnreachableError(host_name, [])
        attempts = self.probe_all(host_name, cancel)
        last = attempts[-1]
        if last["reachable"]:
            if last["status"] in REACHABLE_AUTH_STATUSES:
                logger.info(f"Endpoint {last['url']} reachable, credentials required "
                            f"(HTTP {last['status']})")
            else:
                logger.info(f"Working endpoint found: {last['url']}")
            return last["url"]
        logger.error(f"Cannot reach PI Web API server: {host_name}")
        raise EndpointUnreachableError(host_name, attempts)
