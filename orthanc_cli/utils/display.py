"""
Presentation helpers for CLI commands.

The functions here turn already structured results into ``tableprint``
tables. Pure formatting lives here so that the command modules stay free of
console I/O. Tables go to stdout; diagnostics go to stderr.
"""

from __future__ import annotations

import json
import sys
from typing import Any, Iterable, List, Mapping, Sequence, TextIO, Tuple

import click
import tableprint as tp

from orthanc_cli.errors import Diagnostic
from orthanc_cli.models import (
    DISPLAY_FIELDS,
    EchoResult,
    ModalityRecord,
    NewResource,
    Resource,
    ResourceKind,
    StoreReport,
)

# Keys of an anonymize/modify answer worth showing, in order.
NEW_RESOURCE_KEYS = ["ID", "Type", "Path", "PatientID"]


# -----------------------------------------------------------------------------#
# Internal helpers                                                             #
# -----------------------------------------------------------------------------#
def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def _table(
    rows: Sequence[Sequence[str]],
    headers: Sequence[str],
    out: TextIO | None = None,
) -> None:
    """Print *rows* under *headers* with columns sized to their content."""
    # Multi-line archive messages would break the box layout.
    rows = [[" ".join(cell.split()) for cell in r] for r in rows]
    widths = [
        max([len(h)] + [len(r[i]) for r in rows])
        for i, h in enumerate(headers)
    ]
    tp.table(
        [list(r) for r in rows],
        headers=list(headers),
        width=widths,
        out=out or sys.stdout,
    )


def _pairs_table(pairs: Iterable[Tuple[str, str]], out: TextIO | None = None) -> None:
    _table([[k, v] for k, v in pairs], ["Field", "Value"], out=out)


# -----------------------------------------------------------------------------#
# Resources                                                                    #
# -----------------------------------------------------------------------------#
def display_resources(kind: ResourceKind, resources: List[Resource]) -> None:
    """Print one row per resource using the kind's display columns."""
    if not resources:
        click.echo(f"No {kind.collection} found.")
        return
    headers = DISPLAY_FIELDS[kind]
    _table([[value for _, value in res.fields()] for res in resources], headers)


def display_resource(resource: Resource) -> None:
    """Print the display fields of a single resource vertically."""
    _pairs_table(resource.fields())


def display_new_resource(result: NewResource) -> None:
    """Print the identifiers of a resource created by anonymize/modify."""
    meta = result.resource.metadata
    _pairs_table((key, _cell(meta.get(key))) for key in NEW_RESOURCE_KEYS if key in meta)


def display_tags(tags: Mapping[str, Any]) -> None:
    """Print simplified DICOM tags, one per row, in archive order."""
    _table([[name, _cell(value)] for name, value in tags.items()], ["Tag", "Value"])


# -----------------------------------------------------------------------------#
# Modalities                                                                   #
# -----------------------------------------------------------------------------#
def display_modalities(names: List[str]) -> None:
    if not names:
        click.echo("No modalities found.")
        return
    _table([[name] for name in names], ["Name"])


def display_modality(record: ModalityRecord) -> None:
    _pairs_table(record.fields())


def display_store_report(report: StoreReport) -> None:
    """Print one row per pushed entity, in the order they were requested."""
    rows = [
        [row.id, "Success" if row.success else "Failure", row.message]
        for row in report.results
    ]
    _table(rows, ["ID", "Result", "Message"])


def display_echo(result: EchoResult) -> None:
    if result.success:
        click.echo(f"C-ECHO to {result.modality} succeeded.")
    else:
        click.echo(f"C-ECHO to {result.modality} failed.", err=True)
        if result.diagnostic is not None:
            display_diagnostic(result.diagnostic)


# -----------------------------------------------------------------------------#
# Errors                                                                       #
# -----------------------------------------------------------------------------#
def display_diagnostic(diagnostic: Diagnostic) -> None:
    """Print a diagnostic as a one-column table on stderr."""
    rows = [[part] for part in (diagnostic.reason, diagnostic.detail) if part]
    _table(rows, [diagnostic.title], out=sys.stderr)
