"""Modality registry, C-ECHO and C-STORE helpers.

The archive performs the DICOM networking itself; this module only triggers
it through the REST API and reports what happened.

``store`` pushes each requested entity independently. One failing entity
never stops the others: every input id yields exactly one
:class:`~orthanc_cli.models.StoreResult`, in input order, and the caller
inspects :attr:`~orthanc_cli.models.StoreReport.ok` for the overall outcome.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, List, Sequence

from orthanc_cli.api.client import (
    decode_json,
    orthanc_delete,
    orthanc_get,
    orthanc_post,
    orthanc_put,
)
from orthanc_cli.errors import (
    AuthError,
    NetworkError,
    NotFoundError,
    OrthancCliError,
    ServerError,
    ValidationError,
)
from orthanc_cli.models import (
    Connection,
    EchoResult,
    ModalityRecord,
    StoreReport,
    StoreResult,
    parse_port,
)

logger = logging.getLogger(__name__)

DEFAULT_STORE_WORKERS = 4


def _record_from_json(name: str, payload: Any) -> ModalityRecord:
    """Build a :class:`ModalityRecord` from either archive representation.

    Recent archives describe a modality as ``{"AET": …, "Host": …,
    "Port": …}``; older ones as ``[aet, host, port]``.
    """
    try:
        if isinstance(payload, dict):
            aet, host, port = payload["AET"], payload["Host"], payload["Port"]
        else:
            aet, host, port = payload[0], payload[1], payload[2]
        return ModalityRecord(name=name, aet=str(aet), host=str(host), port=int(port))
    except (KeyError, IndexError, TypeError, ValueError) as exc:
        raise ServerError(f"Unexpected description of modality {name!r}", repr(payload)) from exc


def _describe_store(payload: Any) -> tuple[bool, str]:
    """Return ``(success, message)`` for a 2xx store response body."""
    if not isinstance(payload, dict):
        return True, "Sent"
    sent = payload.get("InstancesCount")
    failed = payload.get("FailedInstancesCount") or 0
    if failed:
        return False, f"{failed} instance(s) failed to send"
    if sent is None:
        return True, "Sent"
    return True, f"{sent} instance(s) sent"


class ModalityClient:
    """Manage modalities registered with the archive."""

    def __init__(self, conn: Connection, *, store_workers: int = DEFAULT_STORE_WORKERS):
        self.conn = conn
        self.store_workers = max(1, store_workers)

    # ------------------------------------------------------------------#
    # Registry                                                           #
    # ------------------------------------------------------------------#
    def list(self) -> List[str]:
        """Return the names of all registered modalities."""
        payload = decode_json(orthanc_get(self.conn, "modalities"))
        if not isinstance(payload, list):
            raise ServerError("Expected a list of modality names", repr(payload))
        return [str(name) for name in payload]

    def show(self, name: str) -> ModalityRecord:
        """Return the registration of modality *name*."""
        payload = decode_json(
            orthanc_get(self.conn, "modalities", params={"expand": ""})
        )
        if not isinstance(payload, dict):
            raise ServerError("Expected a mapping of modalities", repr(payload))
        if name not in payload:
            raise NotFoundError(f"Modality {name} not found")
        return _record_from_json(name, payload[name])

    def create(self, name: str, aet: str, host: str, port: Any) -> ModalityRecord:
        """Register a new modality.

        Raises:
            ValidationError: When *port* is not a valid TCP port. The archive
                is not contacted in that case.
        """
        record = ModalityRecord(name=name, aet=aet, host=host, port=parse_port(port))
        self._put(record)
        logger.info("Created modality %s (%s@%s:%d)", name, aet, host, record.port)
        return record

    def modify(self, name: str, aet: str, host: str, port: Any) -> ModalityRecord:
        """Update an existing modality.

        Raises:
            ValidationError: When *port* is not a valid TCP port.
            NotFoundError: When *name* is not registered.
        """
        record = ModalityRecord(name=name, aet=aet, host=host, port=parse_port(port))
        self.show(name)
        self._put(record)
        logger.info("Modified modality %s (%s@%s:%d)", name, aet, host, record.port)
        return record

    def delete(self, name: str) -> None:
        """Remove modality *name* from the registry."""
        orthanc_delete(self.conn, f"modalities/{name}", what=f"Modality {name}")
        logger.info("Deleted modality %s", name)

    def _put(self, record: ModalityRecord) -> None:
        orthanc_put(
            self.conn,
            f"modalities/{record.name}",
            json=record.to_payload(),
            what=f"Modality {record.name}",
        )

    # ------------------------------------------------------------------#
    # DICOM networking triggered through the archive                     #
    # ------------------------------------------------------------------#
    def echo(self, name: str) -> EchoResult:
        """Ask the archive to C-ECHO modality *name* once.

        A refused probe is reported in the returned :class:`EchoResult`.
        Failures to reach the archive itself propagate.

        Raises:
            NetworkError: The archive is unreachable.
            AuthError: The archive rejected the credentials.
        """
        try:
            orthanc_post(
                self.conn,
                f"modalities/{name}/echo",
                data=b"{}",
                content_type="application/json",
                what=f"Modality {name}",
            )
        except (NetworkError, AuthError):
            raise
        except OrthancCliError as exc:
            logger.warning("C-ECHO to %s failed: %s", name, exc)
            return EchoResult(modality=name, success=False, diagnostic=exc.diagnostic)
        logger.info("C-ECHO to %s succeeded", name)
        return EchoResult(modality=name, success=True)

    def store(self, name: str, entity_ids: Sequence[str]) -> StoreReport:
        """Push every entity in *entity_ids* to modality *name*.

        Args:
            name: Target modality.
            entity_ids: Patient, study, series or instance ids. Duplicates are
                pushed again.

        Returns:
            A :class:`StoreReport` with one row per input id, in input order.

        Raises:
            ValidationError: When *entity_ids* is empty.
        """
        ids = list(entity_ids)
        if not ids:
            raise ValidationError("At least one entity id is required")

        if self.store_workers == 1 or len(ids) == 1:
            results = [self._store_one(name, entity_id) for entity_id in ids]
        else:
            workers = min(self.store_workers, len(ids))
            with ThreadPoolExecutor(max_workers=workers) as pool:
                # ``map`` yields in submission order, which is input order.
                results = list(pool.map(lambda eid: self._store_one(name, eid), ids))

        report = StoreReport(modality=name, results=results)
        failed = sum(1 for row in results if not row.success)
        if failed:
            logger.warning("%d of %d push(es) to %s failed", failed, len(ids), name)
        else:
            logger.info("Pushed %d entit(ies) to %s", len(ids), name)
        return report

    def _store_one(self, name: str, entity_id: str) -> StoreResult:
        try:
            resp = orthanc_post(
                self.conn,
                f"modalities/{name}/store",
                data=entity_id,
                content_type="text/plain",
                what=f"Modality {name} or entity {entity_id}",
            )
            payload = decode_json(resp) if resp.content else None
        except OrthancCliError as exc:
            logger.warning("Push of %s to %s failed: %s", entity_id, name, exc)
            return StoreResult(id=entity_id, success=False, message=exc.diagnostic.message())

        success, message = _describe_store(payload)
        return StoreResult(id=entity_id, success=success, message=message)
