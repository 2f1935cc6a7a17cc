#!/usr/bin/env python
"""Command-line interface for vault-secret-sync.

This module provides the main CLI entry point, resolving the settings,
connecting to the cluster and the vault, and running the poll driver.
"""

import signal
import sys

import click
from icecream import ic

from vault_secret_sync import __version__, console
from vault_secret_sync.cluster import Cluster
from vault_secret_sync.config import Settings
from vault_secret_sync.core.driver import PollDriver
from vault_secret_sync.core.provisioning import provision_workload_secrets
from vault_secret_sync.core.synchronizer import SecretSynchronizer
from vault_secret_sync.exceptions import ClusterConnectionError, ConfigurationError
from vault_secret_sync.vault import VaultClient


def _install_signal_handlers(driver: PollDriver) -> None:
    """Stop the driver gracefully on SIGTERM and SIGINT."""

    def _handle(signum: int, _frame: object) -> None:
        console.warning(f"Received {signal.Signals(signum).name}, finishing current cycle")
        driver.stop()

    signal.signal(signal.SIGTERM, _handle)
    signal.signal(signal.SIGINT, _handle)


@click.command(help="Keep Kubernetes secrets in sync with vault items and restart their consumers")
@click.option("--version", "-v", required=False, is_flag=True, help="print version")
@click.option("--debug", required=False, is_flag=True, help="print debug information")
@click.option("--select", required=False, is_flag=True, default=False, help="prompt for context select")
@click.option("--once", required=False, is_flag=True, help="run a single sync cycle and exit")
@click.option("--config", "-c", "config_file", required=False, help="YAML settings file")
@click.option("--interval", required=False, type=int, help="polling interval in seconds")
@click.option("--namespaces", "-n", required=False, help="comma-separated namespaces to watch, or 'all'")
@click.option(
    "--auto-restart/--no-auto-restart",
    required=False,
    default=None,
    help="restart deployments consuming updated secrets",
)
def cli(
    debug: bool,
    select: bool,
    once: bool,
    config_file: str | None,
    interval: int | None,
    namespaces: str | None,
    auto_restart: bool | None,
    version: bool,
) -> None:
    """Process CLI arguments and run the operator.

    Args:
        debug: Enable debug output.
        select: Prompt for Kubernetes context selection.
        once: Run a single cycle and print a summary.
        config_file: Path to a YAML settings file.
        interval: Polling interval override.
        namespaces: Namespace scope override.
        auto_restart: Restart propagation override.
        version: Print version and exit.

    """
    if not debug:
        ic.disable()

    if version:
        click.echo(__version__)
        return

    try:
        settings = Settings.load(
            config_file=config_file,
            polling_interval=interval,
            namespaces=namespaces,
            auto_restart=auto_restart,
        )
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from None
    ic(settings)

    try:
        cluster = Cluster(select_context=select)
    except ClusterConnectionError as e:
        console.error(f"Cluster connection failed: {e}")
        sys.exit(1)

    watched = list(settings.namespaces) if settings.namespaces is not None else None
    console.info(f"Watching namespaces: {console.highlight(', '.join(watched) if watched else 'all')}")

    with VaultClient(settings.vault_host, settings.vault_token, timeout=settings.request_timeout) as vault:
        synchronizer = SecretSynchronizer(
            cluster,
            vault,
            namespaces=watched,
            auto_restart=settings.auto_restart,
            workers=settings.workers,
        )
        driver = PollDriver(
            synchronizer,
            interval=settings.polling_interval,
            provisioner=lambda: provision_workload_secrets(cluster, vault, watched),
        )

        if once:
            report = driver.run_once()
            if report is None:
                sys.exit(1)
            console.summary_panel("Sync summary", report.summary())
            return

        _install_signal_handlers(driver)
        driver.run()


if __name__ == "__main__":
    cli()
