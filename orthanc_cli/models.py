"""
Core data-model declarations for *orthanc-cli*.

The module centralises the small containers passed between the request
helpers, the command modules and the display layer. Keeping them in one place
avoids ad-hoc dictionaries whose shape differs from one command to another.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from orthanc_cli.errors import ConfigurationError, Diagnostic, ValidationError

DEFAULT_TIMEOUT = 60.0

MIN_PORT = 1
MAX_PORT = 65535


# -----------------------------------------------------------------------------#
# Connection                                                                   #
# -----------------------------------------------------------------------------#
@dataclass(frozen=True)
class Connection:
    """Resolved address, credentials and timeout for one invocation.

    Attributes:
        address: Base URL of the archive's REST API
            (e.g. ``"http://localhost:8042"``).
        username: Optional HTTP basic-auth user.
        password: Optional HTTP basic-auth password.
        timeout: Per-request timeout in seconds.
    """

    address: str
    username: Optional[str] = None
    password: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT

    def __post_init__(self) -> None:
        if not self.address or not self.address.strip():
            raise ConfigurationError("Archive address is empty")
        if (self.username is None) != (self.password is None):
            raise ConfigurationError(
                "Username and password must be supplied together",
                f"username set: {self.username is not None}, "
                f"password set: {self.password is not None}",
            )
        if self.timeout <= 0:
            raise ConfigurationError(f"Timeout must be positive, got {self.timeout}")

    @property
    def auth(self) -> Optional[Tuple[str, str]]:
        """Return the ``requests`` basic-auth tuple, or ``None``."""
        if self.username is None:
            return None
        return (self.username, self.password or "")

    def url(self, endpoint: str) -> str:
        """Join *endpoint* onto the base address."""
        return f"{self.address.rstrip('/')}/{endpoint.lstrip('/')}"


# -----------------------------------------------------------------------------#
# Resource hierarchy                                                           #
# -----------------------------------------------------------------------------#
class ResourceKind(Enum):
    """The four nested entity kinds stored by the archive."""

    PATIENT = "patient"
    STUDY = "study"
    SERIES = "series"
    INSTANCE = "instance"

    @property
    def collection(self) -> str:
        """REST collection name (``patients``, ``studies`` …)."""
        return _COLLECTIONS[self]

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @property
    def parent(self) -> Optional["ResourceKind"]:
        index = _ORDER.index(self)
        return _ORDER[index - 1] if index > 0 else None

    @property
    def child(self) -> Optional["ResourceKind"]:
        index = _ORDER.index(self)
        return _ORDER[index + 1] if index + 1 < len(_ORDER) else None

    @property
    def download_endpoint(self) -> str:
        """Sub-resource returning the binary representation."""
        return "file" if self is ResourceKind.INSTANCE else "archive"

    @property
    def returns_payload(self) -> bool:
        """``True`` when anonymize/modify answer with raw bytes."""
        return self is ResourceKind.INSTANCE


_ORDER = [
    ResourceKind.PATIENT,
    ResourceKind.STUDY,
    ResourceKind.SERIES,
    ResourceKind.INSTANCE,
]

_COLLECTIONS = {
    ResourceKind.PATIENT: "patients",
    ResourceKind.STUDY: "studies",
    ResourceKind.SERIES: "series",
    ResourceKind.INSTANCE: "instances",
}

# Ordered display columns per kind. "Studies", "Series" and "Instances" show
# the number of children listed in the record.
DISPLAY_FIELDS: Dict[ResourceKind, List[str]] = {
    ResourceKind.PATIENT: [
        "ID",
        "PatientID",
        "PatientName",
        "PatientBirthDate",
        "PatientSex",
        "Studies",
    ],
    ResourceKind.STUDY: [
        "ID",
        "PatientID",
        "PatientName",
        "StudyInstanceUID",
        "StudyDescription",
        "StudyDate",
        "AccessionNumber",
        "Series",
    ],
    ResourceKind.SERIES: [
        "ID",
        "SeriesInstanceUID",
        "SeriesDescription",
        "Modality",
        "BodyPartExamined",
        "SeriesNumber",
        "Instances",
    ],
    ResourceKind.INSTANCE: [
        "ID",
        "SOPInstanceUID",
        "InstanceNumber",
        "IndexInSeries",
        "FileSize",
    ],
}

_TOP_LEVEL_FIELDS = {"ID", "IndexInSeries", "FileSize"}
_CHILD_COUNT_FIELDS = {"Studies", "Series", "Instances"}


@dataclass(frozen=True)
class Resource:
    """One archive entity: kind, server id and the raw JSON record."""

    kind: ResourceKind
    id: str
    metadata: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_json(cls, kind: ResourceKind, payload: Mapping[str, Any]) -> "Resource":
        """Build a :class:`Resource` from an archive record (``ID`` required)."""
        return cls(kind=kind, id=str(payload["ID"]), metadata=dict(payload))

    def value(self, name: str) -> str:
        """Return the display value of column *name* (empty when absent)."""
        if name == "ID":
            return self.id
        if name in _TOP_LEVEL_FIELDS:
            raw = self.metadata.get(name)
            return "" if raw is None else str(raw)
        if name in _CHILD_COUNT_FIELDS and name in self.metadata:
            children = self.metadata.get(name)
            return str(len(children)) if isinstance(children, list) else ""

        for section in ("MainDicomTags", "PatientMainDicomTags"):
            tags = self.metadata.get(section) or {}
            if name in tags:
                return str(tags[name])
        return ""

    def fields(self) -> List[Tuple[str, str]]:
        """Return ``(column, value)`` pairs in display order."""
        return [(name, self.value(name)) for name in DISPLAY_FIELDS[self.kind]]


# -----------------------------------------------------------------------------#
# Transform results (tagged variant)                                           #
# -----------------------------------------------------------------------------#
@dataclass(frozen=True)
class NewResource:
    """Anonymize/modify created a new patient, study or series."""

    resource: Resource


@dataclass(frozen=True)
class RawPayload:
    """Anonymize/modify returned a transformed instance written to *path*."""

    path: Path
    size: int


TransformResult = Union[NewResource, RawPayload]


# -----------------------------------------------------------------------------#
# Modalities                                                                   #
# -----------------------------------------------------------------------------#
def parse_port(value: Any) -> int:
    """Return *value* as a TCP port number.

    Raises:
        ValidationError: When *value* is not an integer in ``[1, 65535]``.
    """
    if isinstance(value, bool):
        raise ValidationError(f"Invalid port {value!r}", "Port must be an integer")
    try:
        port = int(str(value).strip())
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid port {value!r}", str(exc)) from exc
    if not MIN_PORT <= port <= MAX_PORT:
        raise ValidationError(
            f"Invalid port {value!r}",
            f"Port must be between {MIN_PORT} and {MAX_PORT}",
        )
    return port


@dataclass(frozen=True)
class ModalityRecord:
    """A DICOM peer registered with the archive."""

    name: str
    aet: str
    host: str
    port: int

    def to_payload(self) -> Dict[str, Any]:
        """Return the JSON body expected by ``PUT /modalities/{name}``."""
        return {"AET": self.aet, "Host": self.host, "Port": self.port}

    def fields(self) -> List[Tuple[str, str]]:
        return [
            ("Name", self.name),
            ("AET", self.aet),
            ("Host", self.host),
            ("Port", str(self.port)),
        ]


@dataclass(frozen=True)
class StoreResult:
    """Outcome of pushing one entity to a modality."""

    id: str
    success: bool
    message: str = ""


@dataclass(frozen=True)
class StoreReport:
    """All rows of one ``store`` request, in input order."""

    modality: str
    results: List[StoreResult]

    @property
    def ok(self) -> bool:
        return all(row.success for row in self.results)


@dataclass(frozen=True)
class EchoResult:
    """Outcome of a single C-ECHO probe triggered through the archive."""

    modality: str
    success: bool
    diagnostic: Optional[Diagnostic] = None
