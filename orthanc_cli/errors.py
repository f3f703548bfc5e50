"""
Error taxonomy and normalisation helpers.

Every failure the core can surface is an :class:`OrthancCliError` carrying a
:class:`Diagnostic` with three parts:

* ``title``  – short category label shown as the table header;
* ``reason`` – optional human-readable cause;
* ``detail`` – optional raw text from the transport, the archive or the OS.

The ``detail`` field is never dropped: the archive's own error text is the
primary debugging aid when a request body is rejected.

Public helpers
--------------
from_transport_error
    Map a :class:`requests.exceptions.RequestException` to :class:`NetworkError`.
from_response
    Map a non-2xx :class:`requests.Response` to the matching error class.
from_os_error
    Map a local filesystem :class:`OSError` to :class:`LocalIOError`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import requests

__all__ = [
    "Diagnostic",
    "OrthancCliError",
    "ConfigurationError",
    "ValidationError",
    "NetworkError",
    "AuthError",
    "NotFoundError",
    "ServerError",
    "LocalIOError",
    "from_transport_error",
    "from_response",
    "from_os_error",
]


@dataclass(frozen=True)
class Diagnostic:
    """Structured description of a failure."""

    title: str
    reason: Optional[str] = None
    detail: Optional[str] = None

    def message(self) -> str:
        """Return the diagnostic flattened into one line."""
        return ": ".join(part for part in (self.title, self.reason, self.detail) if part)


# -----------------------------------------------------------------------------
# Exception hierarchy
# -----------------------------------------------------------------------------
class OrthancCliError(Exception):
    """Base class for every error raised by the core."""

    title = "Error"

    def __init__(self, reason: str | None = None, detail: str | None = None):
        self.diagnostic = Diagnostic(self.title, reason, detail)
        super().__init__(self.diagnostic.message())


class ConfigurationError(OrthancCliError):
    """Raised when a required configuration source is missing or unreadable."""

    title = "Configuration error"


class ValidationError(OrthancCliError):
    """Raised for malformed caller-supplied values (port, output path …)."""

    title = "Validation error"


class NetworkError(OrthancCliError):
    """Raised when the archive cannot be reached or the request times out."""

    title = "Network error"


class AuthError(OrthancCliError):
    """Raised when the archive rejects the supplied credentials."""

    title = "Authentication error"


class NotFoundError(OrthancCliError):
    """Raised when the archive does not know the requested entity."""

    title = "Not found"


class ServerError(OrthancCliError):
    """Raised for unexpected statuses or response bodies."""

    title = "Server error"


class LocalIOError(OrthancCliError):
    """Raised when a local file cannot be read or written."""

    title = "IO error"


# -----------------------------------------------------------------------------
# Normalisation helpers
# -----------------------------------------------------------------------------
def _archive_message(resp: requests.Response) -> Optional[str]:
    """Return the ``Message`` field of an Orthanc JSON error body, if any."""
    try:
        payload = resp.json()
    except ValueError:
        return None
    if isinstance(payload, dict):
        message = payload.get("Message") or payload.get("Details")
        if message:
            return str(message)
    return None


def from_transport_error(
    exc: requests.exceptions.RequestException, url: str
) -> NetworkError:
    """Translate a *requests* transport exception into :class:`NetworkError`.

    Args:
        exc: Exception raised by :pymod:`requests` before a response arrived.
        url: Target URL, used to make the reason actionable.

    Returns:
        A :class:`NetworkError` whose detail is the original exception text.
    """
    if isinstance(exc, requests.exceptions.Timeout):
        reason = f"Request to {url} timed out"
    elif isinstance(exc, requests.exceptions.SSLError):
        reason = f"TLS handshake with {url} failed"
    elif isinstance(exc, requests.exceptions.ConnectionError):
        reason = f"Could not connect to {url}"
    else:
        reason = f"Request to {url} failed"
    return NetworkError(reason, str(exc))


def from_response(resp: requests.Response, what: str | None = None) -> OrthancCliError:
    """Translate a non-2xx response into the matching error class.

    Args:
        resp: Response object with a non-successful status code.
        what: Optional label of the requested entity (e.g. ``"Patient 1a2b"``)
            used to phrase *not found* reasons.

    Returns:
        :class:`AuthError` for 401/403, :class:`NotFoundError` for 404 and
        :class:`ServerError` for everything else.
    """
    detail = resp.text or None
    message = _archive_message(resp)

    if resp.status_code in (401, 403):
        reason = (
            "Credentials were rejected by the archive"
            if resp.status_code == 401
            else "Access to this resource is forbidden"
        )
        return AuthError(reason, detail)
    if resp.status_code == 404:
        reason = f"{what} not found" if what else (message or "Resource not found")
        return NotFoundError(reason, detail)
    return ServerError(message or f"Unexpected HTTP status {resp.status_code}", detail)


def from_os_error(exc: OSError, path: object) -> LocalIOError:
    """Translate a filesystem error on *path* into :class:`LocalIOError`."""
    return LocalIOError(f"Could not access {path}", str(exc))
