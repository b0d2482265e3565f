"""Command line interface for pluginkit."""

from __future__ import annotations

from concurrent.futures import TimeoutError as FutureTimeoutError

import click
from pydantic import ValidationError

from core.config import ConfigManager, SystemConfig
from core.exceptions import PluginError
from core.logger import setup_logging
from plugins.manager import PluginSystem


def _load_config(path: str | None) -> SystemConfig:
    manager = ConfigManager()
    try:
        if path is None:
            return manager.from_dict({})
        return manager.load(path)
    except ValidationError as e:
        raise click.ClickException(f"Invalid configuration: {e}") from e


@click.group()
@click.version_option(version="0.1.0", prog_name="pluginkit")
def cli() -> None:
    """Plugin Lifecycle Framework CLI"""


@cli.command()
@click.option("--config", "-c", type=click.Path(exists=True), help="Config file path")
def check(config: str | None) -> None:
    """Validate configuration and list configured plugins"""
    system_config = _load_config(config)
    click.echo(f"app={system_config.app.name}")
    click.echo(f"plugins={len(system_config.plugins)}")
    for entry in system_config.plugins:
        click.echo(f"- {entry.target}")


@cli.command()
@click.option("--config", "-c", type=click.Path(exists=True), help="Config file path")
@click.option(
    "--timeout",
    type=float,
    default=30.0,
    show_default=True,
    help="Seconds to wait for all plugins to finish executing",
)
def run(config: str | None, timeout: float) -> None:
    """Run the plugin lifecycle: prepared, ready, pluginsexecuted"""
    system_config = _load_config(config)
    setup_logging(system_config.logging.model_dump())

    try:
        system = PluginSystem.from_config(system_config)
    except PluginError as e:
        raise click.ClickException(str(e)) from e

    click.echo(f"Plugin system started with {len(system.plugins)} plugin(s)")
    try:
        finished = system.run()
        try:
            plugins = finished.result(timeout=timeout)
        except FutureTimeoutError:
            pending = ", ".join(plugin.name for plugin in system.pending)
            raise click.ClickException(
                f"Timed out after {timeout}s waiting for: {pending}"
            ) from None
        click.echo(f"All {len(plugins)} plugin(s) executed")
    finally:
        system.shutdown()


if __name__ == "__main__":
    cli()
