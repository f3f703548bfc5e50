"""
Light-weight HTTP helpers for interacting with the Orthanc REST API.

Only the low-level mechanics of *sending* a request belong here: URL
construction, basic authentication, the per-request timeout and the
translation of failures into :mod:`orthanc_cli.errors`. Every helper either
returns a successful (2xx) :class:`requests.Response` or raises an
:class:`~orthanc_cli.errors.OrthancCliError`; no retries are attempted.

Functions
---------
orthanc_get
    Perform a ``GET`` request.
orthanc_post
    Perform a ``POST`` request with a raw or JSON body.
orthanc_put
    Perform a ``PUT`` request with a JSON body.
orthanc_delete
    Perform a ``DELETE`` request.
decode_json
    Decode a response body, raising :class:`ServerError` when it is not JSON.
stream_to_file
    Stream a binary ``GET`` response atomically to a local path.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

import requests

from orthanc_cli.errors import ServerError, from_response, from_transport_error
from orthanc_cli.models import Connection
from orthanc_cli.utils.files import write_atomically

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


def _check(resp: requests.Response, what: str | None) -> requests.Response:
    """Return *resp* unchanged when 2xx, otherwise raise the mapped error."""
    if 200 <= resp.status_code < 300:
        return resp
    logger.debug("HTTP %d from %s: %s", resp.status_code, resp.url, resp.text)
    raise from_response(resp, what)


def orthanc_get(
    conn: Connection,
    endpoint: str,
    *,
    params: Optional[Dict[str, Any]] = None,
    what: str | None = None,
    stream: bool = False,
) -> requests.Response:
    """Send a GET request to the archive.

    Args:
        conn: Resolved connection.
        endpoint: Path relative to the base address (e.g. ``"patients"``).
        params: Optional query parameters.
        what: Label of the requested entity, used in *not found* reasons.
        stream: Defer downloading the body (used for archives).

    Returns:
        The successful :class:`requests.Response`.
    """
    url = conn.url(endpoint)
    logger.debug("GET %s", url)
    try:
        resp = requests.get(
            url,
            params=params,
            auth=conn.auth,
            timeout=conn.timeout,
            stream=stream,
        )
    except requests.exceptions.RequestException as exc:
        raise from_transport_error(exc, url) from exc
    return _check(resp, what)


def orthanc_post(
    conn: Connection,
    endpoint: str,
    *,
    data: bytes | str | None = None,
    json: Any = None,
    content_type: str | None = None,
    what: str | None = None,
) -> requests.Response:
    """Send a POST request to the archive.

    Exactly one of *data* (forwarded verbatim) or *json* (serialised by
    :pymod:`requests`) is normally supplied.

    Args:
        conn: Resolved connection.
        endpoint: Path relative to the base address.
        data: Raw body.
        json: JSON-serialisable body.
        content_type: ``Content-Type`` header for *data*.
        what: Label of the targeted entity, used in *not found* reasons.

    Returns:
        The successful :class:`requests.Response`.
    """
    url = conn.url(endpoint)
    headers = {"Content-Type": content_type} if content_type else None
    logger.debug("POST %s", url)
    try:
        resp = requests.post(
            url,
            data=data,
            json=json,
            headers=headers,
            auth=conn.auth,
            timeout=conn.timeout,
        )
    except requests.exceptions.RequestException as exc:
        raise from_transport_error(exc, url) from exc
    return _check(resp, what)


def orthanc_put(
    conn: Connection,
    endpoint: str,
    *,
    json: Any = None,
    what: str | None = None,
) -> requests.Response:
    """Send a PUT request with a JSON body to the archive."""
    url = conn.url(endpoint)
    logger.debug("PUT %s", url)
    try:
        resp = requests.put(url, json=json, auth=conn.auth, timeout=conn.timeout)
    except requests.exceptions.RequestException as exc:
        raise from_transport_error(exc, url) from exc
    return _check(resp, what)


def orthanc_delete(
    conn: Connection,
    endpoint: str,
    *,
    what: str | None = None,
) -> requests.Response:
    """Send a DELETE request to the archive."""
    url = conn.url(endpoint)
    logger.debug("DELETE %s", url)
    try:
        resp = requests.delete(url, auth=conn.auth, timeout=conn.timeout)
    except requests.exceptions.RequestException as exc:
        raise from_transport_error(exc, url) from exc
    return _check(resp, what)


def decode_json(resp: requests.Response) -> Any:
    """Return the decoded JSON body of *resp*.

    Raises:
        ServerError: When the body is not valid JSON.
    """
    try:
        return resp.json()
    except ValueError as exc:
        raise ServerError("Archive returned a body that is not JSON", resp.text) from exc


def _iter_body(resp: requests.Response, url: str) -> Iterator[bytes]:
    """Yield body chunks, mapping mid-transfer failures to NetworkError."""
    try:
        yield from resp.iter_content(chunk_size=CHUNK_SIZE)
    except requests.exceptions.RequestException as exc:
        raise from_transport_error(exc, url) from exc


def stream_to_file(
    conn: Connection,
    endpoint: str,
    output_path: str | os.PathLike,
    *,
    what: str | None = None,
) -> int:
    """Download *endpoint* into *output_path* without leaving partial files.

    Returns:
        Number of bytes written.
    """
    resp = orthanc_get(conn, endpoint, what=what, stream=True)
    try:
        written = write_atomically(output_path, _iter_body(resp, conn.url(endpoint)))
    finally:
        resp.close()
    logger.info("Saved %s to %s (%d bytes)", what or endpoint, Path(output_path), written)
    return written
