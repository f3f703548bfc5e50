"""\b
Command-line interface entry point for *orthanc-cli*.

The module declares the ``orthanc`` Click group, its global connection flags
and one sub-group per entity kind plus ``modality``. Each command resolves the
connection, calls exactly one operation from :mod:`orthanc_cli.commands` and
hands the result to :mod:`orthanc_cli.utils.display`. Any
:class:`~orthanc_cli.errors.OrthancCliError` is rendered on stderr and turned
into exit status 1; no other layer exits the process.
"""

from __future__ import annotations

import functools
import os
from dataclasses import dataclass
from typing import Callable, Optional

import click

from orthanc_cli import __version__
from orthanc_cli.commands import HierarchyClient, ModalityClient, TransformEngine
from orthanc_cli.config_loader import Settings, load_settings, resolve_connection
from orthanc_cli.errors import OrthancCliError
from orthanc_cli.models import Connection, NewResource, ResourceKind
from orthanc_cli.utils.display import (
    display_diagnostic,
    display_echo,
    display_modalities,
    display_modality,
    display_new_resource,
    display_resource,
    display_resources,
    display_store_report,
    display_tags,
)
from orthanc_cli.utils.logging_config import setup_logging


@dataclass
class CliState:
    """Raw global flags; the connection is resolved on first use."""

    server: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    timeout: Optional[float] = None
    config_path: Optional[str] = None
    _settings: Optional[Settings] = None

    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = load_settings(self.config_path)
        return self._settings

    def connection(self) -> Connection:
        return resolve_connection(
            self.server,
            self.username,
            self.password,
            self.timeout,
            env=os.environ,
            settings=self.settings(),
        )


def handle_errors(func: Callable) -> Callable:
    """Render :class:`OrthancCliError` failures and exit with status 1."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except OrthancCliError as exc:
            display_diagnostic(exc.diagnostic)
            raise click.exceptions.Exit(1) from exc

    return wrapper


@click.group()
@click.version_option(__version__)
@click.option("-s", "--server", help="Orthanc server address (or $ORC_ORTHANC_ADDRESS).")
@click.option("-u", "--username", help="Orthanc username (or $ORC_ORTHANC_USERNAME).")
@click.option("-p", "--password", help="Orthanc password (or $ORC_ORTHANC_PASSWORD).")
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    help="Per-request timeout in seconds (or $ORC_ORTHANC_TIMEOUT).",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    help="YAML settings file (default: ~/.config/orthanc-cli/config.yaml).",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug-level logging.")
@click.pass_context
def cli(
    ctx: click.Context,
    server: str | None,
    username: str | None,
    password: str | None,
    timeout: float | None,
    config_path: str | None,
    verbose: bool,
):
    """Command-line administration of an Orthanc DICOM server."""
    setup_logging(verbose=verbose)
    ctx.obj = CliState(
        server=server,
        username=username,
        password=password,
        timeout=timeout,
        config_path=config_path,
    )


# --------------------------------------------------------------------- #
# Patient / study / series / instance groups                            #
# --------------------------------------------------------------------- #
def _resource_group(kind: ResourceKind) -> click.Group:
    """Build the sub-group exposing every operation for *kind*."""
    group = click.Group(name=kind.value, help=f"{kind.label}-level commands")
    plural = "series" if kind is ResourceKind.SERIES else kind.collection
    id_help = f"{kind.label} ID"
    parent = kind.parent
    needs_output = kind.returns_payload

    # ---- list -------------------------------------------------------
    list_params = []
    if parent is not None:
        list_params.append(
            click.Option(
                ["-i", f"--{parent.value}-id", "parent_id"],
                help=f"Show only {plural} belonging to the specified {parent.value}",
            )
        )

    @click.pass_obj
    @handle_errors
    def list_cmd(state: CliState, parent_id: str | None = None):
        client = HierarchyClient(state.connection())
        display_resources(kind, client.list(kind, parent_id))

    group.add_command(
        click.Command("list", callback=list_cmd, params=list_params, help=f"List all {plural}")
    )

    # ---- show -------------------------------------------------------
    @group.command("show", help=f"Show {kind.value} details")
    @click.argument("resource_id", metavar="ID")
    @click.pass_obj
    @handle_errors
    def show_cmd(state: CliState, resource_id: str):
        client = HierarchyClient(state.connection())
        display_resource(client.show(kind, resource_id))

    # ---- anonymize / modify -----------------------------------------
    def _transform_command(name: str, config_required: bool, help_text: str):
        params = [
            click.Argument(["resource_id"], metavar="ID"),
            click.Option(
                ["-c", "--config", "config_path"],
                required=config_required,
                help=(
                    "Modification configuration file"
                    if config_required
                    else "Anonymization configuration file"
                ),
            ),
        ]
        if needs_output:
            params.append(
                click.Option(["-o", "--output", "output_path"], required=True, help="Output file path")
            )

        @click.pass_obj
        @handle_errors
        def callback(state: CliState, resource_id, config_path, output_path=None):
            engine = TransformEngine(state.connection())
            operation = getattr(engine, name)
            result = operation(kind, resource_id, config_path, output_path)
            if isinstance(result, NewResource):
                display_new_resource(result)

        group.add_command(click.Command(name, callback=callback, params=params, help=help_text))

    _transform_command("anonymize", False, f"Anonymize {kind.value}")
    _transform_command("modify", True, f"Modify {kind.value}")

    # ---- download ---------------------------------------------------
    @group.command("download", help=f"Download {kind.value}")
    @click.argument("resource_id", metavar="ID")
    @click.option("-o", "--output", "output_path", required=True, help="Output file path")
    @click.pass_obj
    @handle_errors
    def download_cmd(state: CliState, resource_id: str, output_path: str):
        HierarchyClient(state.connection()).download(kind, resource_id, output_path)

    # ---- delete -----------------------------------------------------
    @group.command("delete", help=f"Delete {kind.value}")
    @click.argument("resource_id", metavar="ID")
    @click.pass_obj
    @handle_errors
    def delete_cmd(state: CliState, resource_id: str):
        HierarchyClient(state.connection()).delete(kind, resource_id)

    # ---- tags (instances only) --------------------------------------
    if kind is ResourceKind.INSTANCE:

        @group.command("tags", help="Show instance tags")
        @click.argument("resource_id", metavar="ID")
        @click.pass_obj
        @handle_errors
        def tags_cmd(state: CliState, resource_id: str):
            display_tags(HierarchyClient(state.connection()).tags(resource_id))

    return group


for _kind in ResourceKind:
    cli.add_command(_resource_group(_kind))


# --------------------------------------------------------------------- #
# Modality group                                                        #
# --------------------------------------------------------------------- #
def _modality_client(state: CliState) -> ModalityClient:
    return ModalityClient(state.connection(), store_workers=state.settings().store_workers)


@cli.group("modality")
def modality():
    """Modality-level commands"""


@modality.command("list")
@click.pass_obj
@handle_errors
def modality_list(state: CliState):
    """List all modalities"""
    display_modalities(_modality_client(state).list())


@modality.command("show")
@click.argument("name")
@click.pass_obj
@handle_errors
def modality_show(state: CliState, name: str):
    """Show modality details"""
    display_modality(_modality_client(state).show(name))


def _modality_options(func):
    for opt in reversed(
        [
            click.argument("name"),
            click.option("-a", "--aet", required=True, help="Modality AET"),
            click.option("-h", "--host", required=True, help="Modality host"),
            click.option("-p", "--port", required=True, help="Modality port"),
        ]
    ):
        func = opt(func)
    return func


@modality.command("create")
@_modality_options
@click.pass_obj
@handle_errors
def modality_create(state: CliState, name: str, aet: str, host: str, port: str):
    """Create a modality"""
    display_modality(_modality_client(state).create(name, aet, host, port))


@modality.command("modify")
@_modality_options
@click.pass_obj
@handle_errors
def modality_modify(state: CliState, name: str, aet: str, host: str, port: str):
    """Modify a modality"""
    display_modality(_modality_client(state).modify(name, aet, host, port))


@modality.command("echo")
@click.argument("name", metavar="MODALITY")
@click.pass_obj
@handle_errors
def modality_echo(state: CliState, name: str):
    """Send a C-ECHO request to a modality"""
    result = _modality_client(state).echo(name)
    display_echo(result)
    if not result.success:
        raise click.exceptions.Exit(1)


@modality.command("store")
@click.argument("name", metavar="MODALITY")
@click.argument("more_ids", nargs=-1, metavar="[ID]...")
@click.option(
    "-e",
    "--entities",
    "entity_ids",
    required=True,
    multiple=True,
    help=(
        "Entity ID (patient, study, series or instance); repeatable, "
        "further IDs may follow it (-e A B C)"
    ),
)
@click.pass_obj
@handle_errors
def modality_store(
    state: CliState, name: str, more_ids: tuple[str, ...], entity_ids: tuple[str, ...]
):
    """Send entities (patients, studies, series or instances) to a modality"""
    # IDs given with -e come first, then the trailing ones.
    report = _modality_client(state).store(name, [*entity_ids, *more_ids])
    display_store_report(report)
    if not report.ok:
        raise click.exceptions.Exit(1)


@modality.command("delete")
@click.argument("name")
@click.pass_obj
@handle_errors
def modality_delete(state: CliState, name: str):
    """Delete modality"""
    _modality_client(state).delete(name)


def main() -> None:
    """Console-script entry point."""
    cli(prog_name="orthanc")


if __name__ == "__main__":
    main()
