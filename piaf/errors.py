"""
Exception taxonomy for PI AF discovery.

Structural and connectivity errors abort the live path of one run and are
turned into a synthetic fallback by ``piaf.loader.load_groups``. Per-attribute
errors never leave the Attribute Resolver; they become reading states.
"""

from enum import Enum
from typing import Dict, List, Optional, Any


class TransportErrorKind(str, Enum):
    """Classified outcome of a failed HTTP call."""
    DNS_FAILURE = "dns_failure"
    CONNECTION_REFUSED = "connection_refused"
    TLS_FAILURE = "tls_failure"
    TIMEOUT = "timeout"
    HTTP_ERROR = "http_error"
    AUTH_REQUIRED = "auth_required"
    INVALID_RESPONSE = "invalid_response"


class NotFoundScope(str, Enum):
    SERVER = "server"
    DATABASE = "database"
    PATH_SEGMENT = "pathSegment"


class PIAFError(Exception):
    """Base class for all errors raised by the piaf pipeline."""

    def to_dict(self) -> Dict[str, Any]:
        return {"type": type(self).__name__, "message": str(self)}


class TransportError(PIAFError):
    """An HTTP call failed before producing usable JSON."""

    def __init__(self, kind: TransportErrorKind, url: str, message: str = "",
                 status: Optional[int] = None):
        self.kind = kind
        self.url = url
        self.status = status
        detail = message or kind.value
        if status is not None:
            detail = f"HTTP {status}: {detail}"
        super().__init__(f"{detail} ({url})")

    @property
    def transient(self) -> bool:
        return self.kind in (TransportErrorKind.TIMEOUT, TransportErrorKind.CONNECTION_REFUSED)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"kind": self.kind.value, "url": self.url, "status": self.status})
        return data


class AuthRequiredError(TransportError):
    """Server is live but rejected the request (401/403)."""

    def __init__(self, url: str, status: int, message: str = ""):
        super().__init__(TransportErrorKind.AUTH_REQUIRED, url,
                         message or "authentication required", status=status)


class EndpointUnreachableError(PIAFError):
    """Every candidate base URL failed its probe."""

    def __init__(self, host: str, attempts: List[Dict[str, Any]]):
        self.host = host
        self.attempts = attempts
        super().__init__(f"No reachable PI Web API endpoint for '{host}' "
                         f"after {len(attempts)} candidates")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"host": self.host, "attempts": self.attempts})
        return data


class NavigationError(PIAFError):
    """The configured hierarchy could not be walked."""

    def __init__(self, reason: str, available_names: Optional[List[str]] = None):
        self.reason = reason
        self.available_names = list(available_names or [])
        message = reason
        if self.available_names:
            message = f"{reason}. Available: {', '.join(self.available_names)}"
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"reason": self.reason, "availableNames": self.available_names})
        return data


class NotFoundError(NavigationError):
    """A named server, database or path segment does not exist."""

    def __init__(self, scope: NotFoundScope, name: str, available_names: List[str]):
        self.scope = scope
        self.name = name
        labels = {
            NotFoundScope.SERVER: "server not found",
            NotFoundScope.DATABASE: "database not found",
            NotFoundScope.PATH_SEGMENT: "path segment not found",
        }
        super().__init__(f"{labels[scope]}: '{name}'", available_names)

    @property
    def segment(self) -> Optional[str]:
        return self.name if self.scope is NotFoundScope.PATH_SEGMENT else None

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"scope": self.scope.value, "name": self.name})
        return data


class NoUnitsFoundError(NavigationError):
    """Navigation succeeded but no group produced any unit records."""


class AttributeUnavailableError(PIAFError):
    """A configured display name is not declared on the element."""

    def __init__(self, element: str, display_name: str):
        self.element = element
        self.display_name = display_name
        super().__init__(f"Attribute '{display_name}' not found on '{element}'")


class ValueParseError(PIAFError):
    """A fetched value could not be reduced to a number."""

    def __init__(self, raw_value: Any, message: str = ""):
        self.raw_value = raw_value
        super().__init__(message or f"Cannot interpret value {raw_value!r} as a number")


class RunCancelledError(PIAFError):
    """The caller cancelled the run or its deadline passed."""
