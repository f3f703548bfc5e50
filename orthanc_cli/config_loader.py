"""Connection settings resolution.

Each connection field is taken from the first source that provides it:

1. the explicit command-line flag;
2. the ``ORC_ORTHANC_*`` environment variables;
3. the optional YAML settings file (``--config`` or
   ``~/.config/orthanc-cli/config.yaml``).

The environment is passed in as a mapping rather than read here so that the
precedence rules can be exercised without touching the process state.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping, Optional

import pydantic
import yaml
from pydantic import BaseModel, ConfigDict, Field

from orthanc_cli.commands.modalities import DEFAULT_STORE_WORKERS
from orthanc_cli.errors import ConfigurationError
from orthanc_cli.models import DEFAULT_TIMEOUT, Connection

logger = logging.getLogger(__name__)

ENV_ADDRESS = "ORC_ORTHANC_ADDRESS"
ENV_USERNAME = "ORC_ORTHANC_USERNAME"
ENV_PASSWORD = "ORC_ORTHANC_PASSWORD"
ENV_TIMEOUT = "ORC_ORTHANC_TIMEOUT"

DEFAULT_SETTINGS_PATH = Path("~/.config/orthanc-cli/config.yaml")


class Settings(BaseModel):
    """Schema of the YAML settings file. Every key is optional."""

    model_config = ConfigDict(extra="forbid")

    server: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    timeout: Optional[float] = Field(None, gt=0)
    store_workers: int = Field(DEFAULT_STORE_WORKERS, ge=1, le=32)


def load_settings(path: str | os.PathLike | None = None) -> Settings:
    """Read and validate the YAML settings file.

    Args:
        path: Explicit settings file. When ``None`` the default location is
            used if it exists, otherwise built-in defaults apply.

    Raises:
        ConfigurationError: When an explicit file is missing, the YAML cannot
            be parsed, or the content does not match :class:`Settings`.
    """
    if path is None:
        candidate = DEFAULT_SETTINGS_PATH.expanduser()
        if not candidate.is_file():
            return Settings()
    else:
        candidate = Path(path).expanduser()

    try:
        with open(candidate, "r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
    except OSError as exc:
        raise ConfigurationError(f"Could not read settings file {candidate}", str(exc)) from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Settings file {candidate} is not valid YAML", str(exc)) from exc

    if not isinstance(raw, dict):
        raise ConfigurationError(
            f"Settings file {candidate} must contain a mapping",
            f"Got {type(raw).__name__}",
        )
    try:
        settings = Settings(**raw)
    except pydantic.ValidationError as exc:
        raise ConfigurationError(f"Invalid settings in {candidate}", str(exc)) from exc

    logger.debug("Loaded settings from %s", candidate)
    return settings


def _first(flag: Optional[str], *fallbacks: Optional[str]) -> Optional[str]:
    """Return *flag* when given, else the first non-empty fallback.

    An explicit flag wins even when empty; empty environment or settings
    values count as unset.
    """
    if flag is not None:
        return flag
    for value in fallbacks:
        if value:
            return value
    return None


def resolve_connection(
    server: str | None = None,
    username: str | None = None,
    password: str | None = None,
    timeout: float | None = None,
    *,
    env: Mapping[str, str],
    settings: Settings | None = None,
) -> Connection:
    """Merge flags, environment and settings into a :class:`Connection`.

    Args:
        server: ``--server`` value.
        username: ``--username`` value.
        password: ``--password`` value.
        timeout: ``--timeout`` value in seconds.
        env: Environment mapping (normally :data:`os.environ`).
        settings: Parsed settings file.

    Raises:
        ConfigurationError: When no address is available or a timeout value
            cannot be parsed.
    """
    settings = settings or Settings()

    address = _first(server, env.get(ENV_ADDRESS), settings.server)
    if address is None:
        raise ConfigurationError(
            f"Neither --server nor {ENV_ADDRESS} are set",
            "No server address in the settings file either",
        )

    resolved_timeout: float | None = timeout
    if resolved_timeout is None:
        env_timeout = env.get(ENV_TIMEOUT)
        if env_timeout:
            try:
                resolved_timeout = float(env_timeout)
            except ValueError as exc:
                raise ConfigurationError(
                    f"{ENV_TIMEOUT} is not a number", repr(env_timeout)
                ) from exc
    if resolved_timeout is None:
        resolved_timeout = settings.timeout or DEFAULT_TIMEOUT

    return Connection(
        address=address,
        username=_first(username, env.get(ENV_USERNAME), settings.username),
        password=_first(password, env.get(ENV_PASSWORD), settings.password),
        timeout=resolved_timeout,
    )
