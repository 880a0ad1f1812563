"""
clickpkg — CLI entrypoint.

Usage:
    python -m clickpkg.main --help
    clickpkg install foo_1.0_all.click --allow-unauthenticated
    clickpkg list
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from typing import NoReturn

import click

from clickpkg import __version__
from clickpkg.adapters.base import InstallContext, Interacter
from clickpkg.core.config.loader import ConfigError, load_config
from clickpkg.core.errors import ClickError
from clickpkg.core.models.flags import InstallFlags
from clickpkg.core.models.layout import EngineConfig
from clickpkg.core.observability.logging_config import setup_logging


def build_context(config: EngineConfig, interacter: Interacter) -> InstallContext:
    """Wire the engine to the real system adapters."""
    from clickpkg.adapters.archive import TarArchiveReader
    from clickpkg.adapters.security import FrameworkPolicyRegistrar, SeccompPolicyGenerator
    from clickpkg.adapters.systemd import SystemctlServiceManager
    from clickpkg.core.services.click_install import InstalledDependentResolver

    policy = SeccompPolicyGenerator(config)
    return InstallContext(
        config=config,
        archives=TarArchiveReader(),
        services=SystemctlServiceManager(config.root_dir, config.launcher),
        policy=policy,
        framework_policy=FrameworkPolicyRegistrar(config),
        dependents=InstalledDependentResolver(config, policy),
        interacter=interacter,
    )


def _fail(message: str) -> NoReturn:
    click.secho(f"❌ {message}", fg="red", err=True)
    sys.exit(1)


def _load(ctx: click.Context) -> EngineConfig:
    try:
        return load_config(ctx.obj.get("config_path"), root_dir=ctx.obj.get("root_dir"))
    except ConfigError as e:
        _fail(str(e))


def _engine(ctx: click.Context, assume_yes: bool = False) -> InstallContext:
    from clickpkg.adapters.console import ConsoleInteracter

    config = _load(ctx)
    interacter = ConsoleInteracter(assume_yes=assume_yes, quiet=ctx.obj.get("quiet", False))
    return build_context(config, interacter)


@click.group()
@click.version_option(version=__version__, prog_name="clickpkg")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to the engine config (default: /etc/clickpkg/config.yml).",
)
@click.option(
    "--root",
    "root_dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Operate on an alternative root directory.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
    root_dir: str | None,
) -> None:
    """clickpkg — install, activate and remove click packages."""
    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = Path(config_path) if config_path else None
    ctx.obj["root_dir"] = Path(root_dir) if root_dir else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("CLICKPKG_LOG_LEVEL", "WARNING")

    setup_logging(
        level=level,
        log_file=os.environ.get("CLICKPKG_LOG_FILE"),
        log_file_level=os.environ.get("CLICKPKG_LOG_FILE_LEVEL"),
    )


@cli.command()
@click.argument("archive", type=click.Path(dir_okay=False))
@click.option("--allow-unauthenticated", is_flag=True, help="Install archives without a checksum.")
@click.option("--allow-oem", is_flag=True, help="Allow installing OEM packages.")
@click.option("--inhibit-hooks", is_flag=True, help="Do not run hooks or start services.")
@click.option("--origin", default="", help="Publisher of the package.")
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Accept licenses without asking.")
@click.pass_context
def install(
    ctx: click.Context,
    archive: str,
    allow_unauthenticated: bool,
    allow_oem: bool,
    inhibit_hooks: bool,
    origin: str,
    assume_yes: bool,
) -> None:
    """Install a package archive and make it active."""
    from clickpkg.core.services.click_install import install_click

    flags = InstallFlags.NONE
    if allow_unauthenticated:
        flags |= InstallFlags.ALLOW_UNAUTHENTICATED
    if allow_oem:
        flags |= InstallFlags.ALLOW_OEM
    if inhibit_hooks:
        flags |= InstallFlags.INHIBIT_HOOKS

    engine = _engine(ctx, assume_yes=assume_yes)
    try:
        name = install_click(engine, archive, flags, origin)
    except ClickError as e:
        _fail(f"install of {archive} failed: {e}")

    if not ctx.obj.get("quiet"):
        click.secho(f"✅ Installed {name}", fg="green")


@cli.command()
@click.argument("name")
@click.argument("version", required=False)
@click.pass_context
def remove(ctx: click.Context, name: str, version: str | None) -> None:
    """Remove a version of a package (default: the active one)."""
    from clickpkg.core.services.click_install import remove_click, resolve_version_dir

    engine = _engine(ctx)
    try:
        basedir = resolve_version_dir(engine, name, version)
        remove_click(engine, basedir)
    except ClickError as e:
        _fail(str(e))

    if not ctx.obj.get("quiet"):
        click.secho(f"✅ Removed {name} {basedir.name}", fg="green")


@cli.command()
@click.argument("name")
@click.argument("version")
@click.option("--inhibit-hooks", is_flag=True, help="Do not run hooks or start services.")
@click.pass_context
def activate(ctx: click.Context, name: str, version: str, inhibit_hooks: bool) -> None:
    """Make an installed version the active one."""
    from clickpkg.core.services.click_install import activate_version

    try:
        activate_version(_engine(ctx), name, version, inhibit_hooks)
    except ClickError as e:
        _fail(str(e))


@cli.command()
@click.argument("name")
@click.option("--inhibit-hooks", is_flag=True, help="Do not run hooks.")
@click.pass_context
def deactivate(ctx: click.Context, name: str, inhibit_hooks: bool) -> None:
    """Deactivate the active version of a package."""
    from clickpkg.core.services.click_install import deactivate_package

    try:
        deactivate_package(_engine(ctx), name, inhibit_hooks)
    except ClickError as e:
        _fail(str(e))


@cli.command()
@click.argument("name")
@click.argument("version")
@click.pass_context
def purge(ctx: click.Context, name: str, version: str) -> None:
    """Remove the data of an inactive version."""
    from clickpkg.core.services.click_install import purge_click_data

    try:
        purge_click_data(_engine(ctx), name, version)
    except ClickError as e:
        _fail(str(e))


@cli.command("run-hooks")
@click.pass_context
def run_hooks_cmd(ctx: click.Context) -> None:
    """Run every system hook command once."""
    from clickpkg.core.services.click_install import run_hooks

    try:
        count = run_hooks(_load(ctx))
    except ClickError as e:
        _fail(str(e))

    if not ctx.obj.get("quiet"):
        click.echo(f"Ran {count} hook(s)")


@cli.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_cmd(ctx: click.Context, as_json: bool) -> None:
    """List installed package versions."""
    from clickpkg.core.services.click_install import list_installed

    entries = list_installed(_load(ctx))

    if as_json:
        click.echo(json.dumps(entries, indent=2))
        return

    if not entries:
        click.echo("No packages installed.")
        return

    for entry in entries:
        marker = " ← active" if entry["active"] else ""
        click.echo(f"  {entry['name']:<30} {entry['version']:<12}{marker}")


@cli.command("internal-unpack", hidden=True)
@click.argument("archive", type=click.Path(dir_okay=False))
@click.argument("dest", type=click.Path(file_okay=False))
@click.argument("root", type=click.Path(file_okay=False))
@click.pass_context
def internal_unpack(ctx: click.Context, archive: str, dest: str, root: str) -> None:
    """Unpack ARCHIVE into DEST without root privileges."""
    from clickpkg.adapters.archive import TarArchiveReader
    from clickpkg.core.services.click_install import drop_privileges
    from clickpkg.core.services.click_install.execution.unpack import UNPACK_USER_ENV

    ctx.obj["root_dir"] = Path(root)
    config = _load(ctx)
    dest_dir = Path(dest)

    try:
        if os.geteuid() == 0:
            drop_privileges(os.environ.get(UNPACK_USER_ENV) or config.unpack_user, dest_dir)
        # the parent process verified the archive already
        with TarArchiveReader().open(archive, allow_unauthenticated=True) as handle:
            handle.unpack_into(dest_dir)
    except (ClickError, OSError) as e:
        _fail(f"unpack of {archive} failed: {e}")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
