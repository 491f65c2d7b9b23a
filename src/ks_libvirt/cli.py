"""CLI adapter for ``ks_libvirt`` built on ``lib_cli_exit_tools``.

Purpose
-------
Expose the kickstart pipeline on the command line: render a template into an
install-ready document and inspect the effective configuration with its
provenance.

Contents
--------
* :data:`CLICK_CONTEXT_SETTINGS` – shared Click settings ensuring ``-h`` works.
* :func:`cli` – root command wiring traceback handling into
  ``lib_cli_exit_tools``.
* :func:`cli_info` – prints distribution metadata.
* :func:`cli_render` – runs :func:`ks_libvirt.core.prepare_kickstart`, writes
  the document and prints a JSON summary.
* :func:`cli_config` – prints the effective configuration as JSON.
* :func:`main` – entry point used by ``console_scripts`` registration.

System Role
-----------
Outermost layer. Every option defaults to ``None`` so that only values the
user actually typed reach the ``cli`` tier; ``--disk2 0`` or ``--no-ssh`` are
still explicit values and beat directives and settings files.
"""

from __future__ import annotations

import json
import logging
import sys
from importlib import metadata
from pathlib import Path
from typing import Any, Callable, Final, Optional, Sequence

import lib_cli_exit_tools
import rich_click as click

from .core import prepare_kickstart, read_settings, write_kickstart
from .domain.config import EffectiveConfig
from .observability import enable_console_logging

CLICK_CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
_TRACEBACK_SUMMARY_LIMIT: Final[int] = 500
_TRACEBACK_VERBOSE_LIMIT: Final[int] = 10_000

_VALUE_OPTIONS: Final[tuple[tuple[str, Any, str], ...]] = (
    ("name", str, "VM name"),
    ("arch", str, "Guest architecture (replaces $basearch)"),
    ("machine", str, "Machine type"),
    ("cpu", int, "Number of virtual CPUs"),
    ("ram", int, "Memory in MiB"),
    ("disk", int, "Primary disk size in GiB"),
    ("disk2", int, "Secondary disk size in GiB (0 for none)"),
    ("iso", str, "Install from this ISO image"),
    ("os", str, "OS variant"),
    ("pool", str, "Storage pool"),
    ("net", str, "Network or bridge"),
    ("ip", str, "Static address as a.b.c.d/prefix"),
    ("gw", str, "Static gateway"),
    ("hostname", str, "Guest hostname"),
    ("firmware", str, "Directory holding the OVMF images"),
    ("mirrors", str, "Mirror map file"),
    ("fetch-timeout", float, "Network timeout in seconds"),
)

_FLAG_OPTIONS: Final[tuple[tuple[str, str], ...]] = (
    ("qga", "Install the QEMU guest agent"),
    ("ssh", "Inject discovered SSH keys for root"),
    ("console", "Add a serial console"),
    ("uefi", "Boot with UEFI"),
    ("secureboot", "Enable secure boot"),
    ("tpm", "Add an emulated TPM"),
    ("verbose", "Log progress"),
    ("quiet", "Only log errors"),
)


def _resolve_version() -> str:
    """Return the installed package version, ``"0.0.0"`` when not installed."""

    try:
        return metadata.version("ks-libvirt")
    except metadata.PackageNotFoundError:
        return "0.0.0"


def _pipeline_options(function: Callable[..., Any]) -> Callable[..., Any]:
    """Attach the configuration options shared by ``render`` and ``config``."""

    decorators = [
        click.argument("kickstart"),
        click.option("--config", "config_files", multiple=True, help="Extra settings file (repeatable)"),
        click.option("--dns", multiple=True, help="DNS server (repeatable)"),
    ]
    for name, kind, help_text in _VALUE_OPTIONS:
        decorators.append(click.option(f"--{name}", type=kind, default=None, help=help_text))
    for name, help_text in _FLAG_OPTIONS:
        decorators.append(click.option(f"--{name}/--no-{name}", default=None, help=help_text))
    for decorator in reversed(decorators):
        function = decorator(function)
    return function


@click.group(
    help="Turn a kickstart template into an install-ready document",
    context_settings=CLICK_CONTEXT_SETTINGS,
    invoke_without_command=False,
)
@click.version_option(
    version=_resolve_version(),
    prog_name="ks-libvirt",
    message="ks-libvirt version %(version)s",
)
@click.option(
    "--traceback/--no-traceback",
    is_flag=True,
    default=False,
    help="Show full Python traceback on errors",
)
@click.pass_context
def cli(ctx: click.Context, traceback: bool) -> None:
    """Root command configuring traceback handling for all subcommands."""

    ctx.ensure_object(dict)
    ctx.obj["traceback"] = traceback
    lib_cli_exit_tools.config.traceback = traceback
    lib_cli_exit_tools.config.traceback_force_color = traceback


@cli.command("info", context_settings=CLICK_CONTEXT_SETTINGS)
def cli_info() -> None:
    """Print basic distribution metadata so users can confirm installation."""

    try:
        meta = metadata.metadata("ks-libvirt")
    except metadata.PackageNotFoundError:
        click.echo("ks-libvirt (metadata unavailable)")
        return
    click.echo(f"Info for {meta.get('Name', 'ks-libvirt')}:")
    click.echo(f"  Version         : {meta.get('Version', _resolve_version())}")
    click.echo(f"  Requires-Python : {meta.get('Requires-Python', '>=3.11')}")
    summary = meta.get("Summary")
    if summary:
        click.echo(f"  Summary         : {summary}")


@cli.command("render", context_settings=CLICK_CONTEXT_SETTINGS)
@_pipeline_options
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path, dir_okay=False, writable=True),
    default=None,
    help="Write the document here instead of a temporary file",
)
@click.option("--indent", type=int, default=None, help="Pretty-print JSON output with the provided indent size")
def cli_render(
    kickstart: str, config_files: Sequence[str], output: Optional[Path], indent: Optional[int], **options: Any
) -> None:
    """Render KICKSTART and print the hand-off summary as JSON.

    KICKSTART may be a local path or an http(s) URL.
    """

    cli_values = _cli_tier(options)
    _configure_logging(_settings_config(cli_values, config_files))
    prepared = prepare_kickstart(kickstart, cli=cli_values, config_files=config_files)
    _configure_logging(prepared.config)
    path = write_kickstart(prepared, path=output)
    payload = {"kickstart": str(path), **prepared.summary()}
    click.echo(json.dumps(payload, indent=indent, separators=(",", ":")))


@cli.command("config", context_settings=CLICK_CONTEXT_SETTINGS)
@_pipeline_options
@click.option(
    "--provenance/--no-provenance",
    default=False,
    help="Include the winning tier and file for each key",
)
@click.option("--indent", type=int, default=None, help="Pretty-print JSON output with the provided indent size")
def cli_config(
    kickstart: str, config_files: Sequence[str], provenance: bool, indent: Optional[int], **options: Any
) -> None:
    """Print the effective configuration for KICKSTART as JSON."""

    cli_values = _cli_tier(options)
    _configure_logging(_settings_config(cli_values, config_files))
    prepared = prepare_kickstart(kickstart, cli=cli_values, config_files=config_files)
    _configure_logging(prepared.config)
    config: EffectiveConfig = prepared.config
    if provenance:
        payload: dict[str, Any] = {"config": config.as_dict(), "provenance": config.provenance()}
    else:
        payload = config.as_dict()
    click.echo(json.dumps(payload, indent=indent, separators=(",", ":")))


def _cli_tier(options: dict[str, Any]) -> dict[str, Any]:
    """Keep only the options the user actually gave.

    Examples
    --------
    >>> _cli_tier({"ram": None, "disk2": 0, "ssh": False, "dns": (), "fetch_timeout": 5.0})
    {'disk2': 0, 'ssh': False, 'fetch_timeout': 5.0}
    """

    values: dict[str, Any] = {}
    for key, value in options.items():
        if value is None:
            continue
        if key == "dns":
            if not value:
                continue
            value = list(value)
        values[key] = value
    return values


def _settings_config(cli_values: dict[str, Any], config_files: Sequence[str]) -> EffectiveConfig:
    """Resolve the cli and settings file tiers ahead of the run, for logging setup."""

    values, paths = read_settings(config_files=config_files)
    return EffectiveConfig.from_layers(cli=cli_values, file=values, file_paths=paths)


def _configure_logging(config: EffectiveConfig) -> None:
    """Map the ``quiet``/``verbose`` keys (any tier) onto the console log level."""

    if config.flag("quiet"):
        level = logging.ERROR
    elif config.flag("verbose"):
        level = logging.INFO
    else:
        level = logging.WARNING
    enable_console_logging(level)


def main(argv: Optional[Sequence[str]] = None, *, restore_traceback: bool = True) -> int:
    """Execute the CLI with shared exit handling and return the exit code."""

    previous_traceback = getattr(lib_cli_exit_tools.config, "traceback", False)
    previous_force_color = getattr(lib_cli_exit_tools.config, "traceback_force_color", False)
    try:
        try:
            return lib_cli_exit_tools.run_cli(
                cli,
                argv=list(argv) if argv is not None else None,
                prog_name="ks-libvirt",
            )
        except BaseException as exc:  # noqa: BLE001 - funnel through shared printers
            lib_cli_exit_tools.print_exception_message(
                trace_back=lib_cli_exit_tools.config.traceback,
                length_limit=(
                    _TRACEBACK_VERBOSE_LIMIT if lib_cli_exit_tools.config.traceback else _TRACEBACK_SUMMARY_LIMIT
                ),
            )
            return lib_cli_exit_tools.get_system_exit_code(exc)
    finally:
        if restore_traceback:
            lib_cli_exit_tools.config.traceback = previous_traceback
            lib_cli_exit_tools.config.traceback_force_color = previous_force_color


if __name__ == "__main__":  # pragma: no cover - exercised via console entry point
    raise SystemExit(main(sys.argv[1:]))
