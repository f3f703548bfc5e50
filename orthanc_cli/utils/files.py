"""Local file helpers shared by downloads and instance transforms."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable

from orthanc_cli.errors import LocalIOError, from_os_error

logger = logging.getLogger(__name__)

__all__ = ["write_atomically", "read_bytes"]


def _default_mode() -> int:
    """Return the mode a plain ``open(path, "w")`` would create under the umask."""
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def _discard(tmp: Path) -> None:
    """Remove a partial temporary file, logging rather than masking errors."""
    try:
        tmp.unlink()
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("Could not remove partial file %s: %s", tmp, exc)


def write_atomically(path: str | os.PathLike, chunks: Iterable[bytes]) -> int:
    """Write *chunks* to *path* so that readers never observe a partial file.

    Data goes to a hidden ``.part`` file in the destination directory, which
    is renamed onto *path* only after the last chunk was written. Any error
    (local or raised by the *chunks* iterator itself) deletes the temporary
    file and propagates unchanged.

    Args:
        path: Final destination.
        chunks: Iterable of byte strings, typically a streamed HTTP body.

    Returns:
        Number of bytes written.

    Raises:
        LocalIOError: When the temporary file cannot be created, written or
            renamed.
    """
    target = Path(path).expanduser()
    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{target.name}.", suffix=".part", dir=target.parent
        )
    except OSError as exc:
        raise from_os_error(exc, target) from exc

    tmp = Path(tmp_name)
    written = 0
    try:
        with os.fdopen(fd, "wb") as fh:
            for chunk in chunks:
                if chunk:
                    fh.write(chunk)
                    written += len(chunk)
        # mkstemp creates the file owner-only.
        os.chmod(tmp, _default_mode())
        os.replace(tmp, target)
    except OSError as exc:
        _discard(tmp)
        raise from_os_error(exc, target) from exc
    except BaseException:
        _discard(tmp)
        raise

    logger.debug("Wrote %d bytes to %s", written, target)
    return written


def read_bytes(path: str | os.PathLike, error: type = LocalIOError) -> bytes:
    """Return the content of *path*, raising *error* when it is unreadable."""
    source = Path(path).expanduser()
    try:
        return source.read_bytes()
    except OSError as exc:
        raise error(f"Could not read {source}", str(exc)) from exc
