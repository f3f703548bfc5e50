"""Anonymize / modify dispatch.

The archive answers these requests in two different ways depending on the
resource kind:

* patients, studies and series are transformed into a **new** archive
  resource; the response is a small JSON record identifying it;
* instances are transformed on the fly and the response body **is** the
  transformed DICOM file, which has to be written to a local path.

:class:`TransformEngine` keeps the two cases apart by returning either
:class:`~orthanc_cli.models.NewResource` or
:class:`~orthanc_cli.models.RawPayload`. The configuration file is an opaque
JSON body owned by the archive's API; it is read before any request is sent
and forwarded verbatim.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from orthanc_cli.api.client import decode_json, orthanc_post
from orthanc_cli.errors import ConfigurationError, ServerError, ValidationError
from orthanc_cli.models import (
    Connection,
    NewResource,
    RawPayload,
    Resource,
    ResourceKind,
    TransformResult,
)
from orthanc_cli.utils.files import read_bytes, write_atomically

logger = logging.getLogger(__name__)

ANONYMIZE = "anonymize"
MODIFY = "modify"

# Body sent when anonymizing without a configuration file; the archive then
# applies its built-in profile.
DEFAULT_ANONYMIZE_BODY = b"{}"


def load_transform_config(config_path: str | os.PathLike) -> bytes:
    """Return the raw content of a transform configuration file.

    Raises:
        ConfigurationError: When the file is missing or unreadable.
    """
    return read_bytes(config_path, error=ConfigurationError)


class TransformEngine:
    """Issue anonymize and modify requests for any resource kind."""

    def __init__(self, conn: Connection):
        self.conn = conn

    def anonymize(
        self,
        kind: ResourceKind,
        resource_id: str,
        config_path: str | os.PathLike | None = None,
        output_path: str | os.PathLike | None = None,
    ) -> TransformResult:
        """Anonymize a resource, using the archive's default profile when
        *config_path* is ``None``.

        Args:
            kind: Kind of the source resource.
            resource_id: Archive identifier of the source resource.
            config_path: Optional JSON body describing the anonymization.
            output_path: Destination of the transformed file; required for
                instances and ignored otherwise.
        """
        body = (
            DEFAULT_ANONYMIZE_BODY
            if config_path is None
            else load_transform_config(config_path)
        )
        return self._transform(ANONYMIZE, kind, resource_id, body, output_path)

    def modify(
        self,
        kind: ResourceKind,
        resource_id: str,
        config_path: str | os.PathLike | None,
        output_path: str | os.PathLike | None = None,
    ) -> TransformResult:
        """Modify a resource according to the configuration in *config_path*.

        Raises:
            ConfigurationError: When *config_path* is missing or unreadable.
        """
        if config_path is None:
            raise ConfigurationError(
                "A modification configuration file is required",
                "There is no default modification profile",
            )
        body = load_transform_config(config_path)
        return self._transform(MODIFY, kind, resource_id, body, output_path)

    # ------------------------------------------------------------------#
    # Internals                                                          #
    # ------------------------------------------------------------------#
    def _transform(
        self,
        operation: str,
        kind: ResourceKind,
        resource_id: str,
        body: bytes,
        output_path: str | os.PathLike | None,
    ) -> TransformResult:
        if kind.returns_payload and output_path is None:
            raise ValidationError(
                f"An output path is required to {operation} an instance",
                "The archive returns the transformed file instead of storing it",
            )

        resp = orthanc_post(
            self.conn,
            f"{kind.collection}/{resource_id}/{operation}",
            data=body,
            content_type="application/json",
            what=f"{kind.label} {resource_id}",
        )

        if kind.returns_payload:
            size = write_atomically(output_path, [resp.content])
            logger.info(
                "%s %s written to %s", operation.capitalize(), resource_id, output_path
            )
            return RawPayload(path=Path(output_path), size=size)

        payload = decode_json(resp)
        new_id = payload.get("ID") if isinstance(payload, dict) else None
        if not new_id:
            raise ServerError(
                f"Archive did not report the {operation}d {kind.value}", resp.text
            )
        if new_id == resource_id:
            raise ServerError(
                f"Archive reported the source {kind.value} as the {operation}d copy",
                resp.text,
            )
        logger.info("%s %s → new %s %s", operation.capitalize(), resource_id, kind.value, new_id)
        return NewResource(Resource.from_json(kind, payload))
