"""High-level operations over the patient / study / series / instance tree.

The four kinds share one REST shape, so a single :class:`HierarchyClient`
serves all of them; the :class:`~orthanc_cli.models.ResourceKind` argument
selects the collection. Results are returned as
:class:`~orthanc_cli.models.Resource` objects in the order the archive sent
them. Rendering is left to :mod:`orthanc_cli.utils.display`.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List

from orthanc_cli.api.client import (
    decode_json,
    orthanc_delete,
    orthanc_get,
    stream_to_file,
)
from orthanc_cli.errors import ServerError, ValidationError
from orthanc_cli.models import Connection, Resource, ResourceKind

logger = logging.getLogger(__name__)


def _label(kind: ResourceKind, resource_id: str) -> str:
    return f"{kind.label} {resource_id}"


def _to_resources(kind: ResourceKind, payload: Any) -> List[Resource]:
    """Convert an expanded listing into resources, rejecting odd shapes."""
    if not isinstance(payload, list):
        raise ServerError(
            f"Expected a list of {kind.collection}", f"Got {type(payload).__name__}"
        )
    try:
        return [Resource.from_json(kind, item) for item in payload]
    except (KeyError, TypeError) as exc:
        raise ServerError(
            f"Unexpected {kind.value} record in listing", repr(exc)
        ) from exc


class HierarchyClient:
    """List, show, delete and download archive resources."""

    def __init__(self, conn: Connection):
        self.conn = conn

    # ------------------------------------------------------------------#
    # Read operations                                                    #
    # ------------------------------------------------------------------#
    def list(self, kind: ResourceKind, parent_id: str | None = None) -> List[Resource]:
        """Return every resource of *kind*, optionally below *parent_id*.

        Args:
            kind: Kind of the resources to list.
            parent_id: Restrict the listing to children of this resource
                (a patient for studies, a study for series, a series for
                instances).

        Raises:
            ValidationError: When *parent_id* is given for patients.
        """
        if parent_id is None:
            resp = orthanc_get(self.conn, kind.collection, params={"expand": ""})
        else:
            parent = kind.parent
            if parent is None:
                raise ValidationError(
                    f"{kind.label} listings cannot be filtered by a parent"
                )
            resp = orthanc_get(
                self.conn,
                f"{parent.collection}/{parent_id}/{kind.collection}",
                what=_label(parent, parent_id),
            )

        resources = _to_resources(kind, decode_json(resp))
        logger.debug("Listed %d %s", len(resources), kind.collection)
        return resources

    def show(self, kind: ResourceKind, resource_id: str) -> Resource:
        """Return the full record of one resource."""
        resp = orthanc_get(
            self.conn,
            f"{kind.collection}/{resource_id}",
            what=_label(kind, resource_id),
        )
        payload = decode_json(resp)
        if not isinstance(payload, dict) or "ID" not in payload:
            raise ServerError(f"Unexpected {kind.value} record", resp.text)
        return Resource.from_json(kind, payload)

    def tags(self, instance_id: str) -> Dict[str, Any]:
        """Return the simplified DICOM tags of one instance."""
        resp = orthanc_get(
            self.conn,
            f"instances/{instance_id}/simplified-tags",
            what=_label(ResourceKind.INSTANCE, instance_id),
        )
        payload = decode_json(resp)
        if not isinstance(payload, dict):
            raise ServerError("Unexpected tag listing", resp.text)
        return payload

    # ------------------------------------------------------------------#
    # Mutating / transferring operations                                 #
    # ------------------------------------------------------------------#
    def delete(self, kind: ResourceKind, resource_id: str) -> None:
        """Delete one resource (and, server-side, everything below it)."""
        orthanc_delete(
            self.conn,
            f"{kind.collection}/{resource_id}",
            what=_label(kind, resource_id),
        )
        logger.info("Deleted %s", _label(kind, resource_id))

    def download(
        self,
        kind: ResourceKind,
        resource_id: str,
        output_path: str | os.PathLike,
    ) -> Path:
        """Save the binary form of a resource to *output_path*.

        Patients, studies and series are fetched as ZIP archives; instances
        as their DICOM file. Nothing is left at *output_path* when the
        transfer fails.

        Returns:
            The destination path.
        """
        stream_to_file(
            self.conn,
            f"{kind.collection}/{resource_id}/{kind.download_endpoint}",
            output_path,
            what=_label(kind, resource_id),
        )
        return Path(output_path)
