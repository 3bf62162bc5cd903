#!/usr/bin/env python
"""Command-line interface for dockercfg-controller.

This module provides the main CLI entry point, which loads the cluster
and controller configuration and runs the controller until interrupted.
"""

import sys
import threading

import click
from icecream import ic

from dockercfg_controller import __version__, console
from dockercfg_controller.cluster import Cluster
from dockercfg_controller.config import load_options
from dockercfg_controller.controller import DockercfgController
from dockercfg_controller.exceptions import ClusterConnectionError, ConfigError
from dockercfg_controller.store import KubeStore

_ENV_PREFIX = "DOCKERCFG_CONTROLLER"


def wait_for_shutdown(controller: DockercfgController) -> None:
    """Block until the process is interrupted.

    Args:
        controller: The running controller.

    """
    shutdown = threading.Event()
    console.success("Controller running, press Ctrl+C to stop")
    while controller.informer.running:
        shutdown.wait(1.0)


@click.command(help="Generate dockercfg secrets for Kubernetes service accounts")
@click.option("--version", "-v", required=False, is_flag=True, help="print version")
@click.option("--debug", required=False, is_flag=True, help="print debug information")
@click.option(
    "--config", "config_path", required=False, envvar=f"{_ENV_PREFIX}_CONFIG", help="YAML configuration file"
)
@click.option("--docker-url", required=False, envvar=f"{_ENV_PREFIX}_DOCKER_URL", help="registry endpoint")
@click.option(
    "--resync", type=int, required=False, envvar=f"{_ENV_PREFIX}_RESYNC", help="full re-list period in seconds"
)
@click.option(
    "--token-wait-interval",
    type=float,
    required=False,
    envvar=f"{_ENV_PREFIX}_TOKEN_WAIT_INTERVAL",
    help="seconds between token secret polls",
)
@click.option(
    "--token-wait-attempts",
    type=int,
    required=False,
    envvar=f"{_ENV_PREFIX}_TOKEN_WAIT_ATTEMPTS",
    help="token secret polls before giving up",
)
@click.option("--context", required=False, envvar=f"{_ENV_PREFIX}_CONTEXT", help="kubeconfig context to use")
@click.option(
    "--in-cluster", required=False, is_flag=True, envvar=f"{_ENV_PREFIX}_IN_CLUSTER", help="use in-cluster config"
)
def cli(
    version: bool,
    debug: bool,
    config_path: str | None,
    docker_url: str | None,
    resync: int | None,
    token_wait_interval: float | None,
    token_wait_attempts: int | None,
    context: str | None,
    in_cluster: bool,
) -> None:
    """Process CLI arguments and run the controller.

    Args:
        version: Print version and exit.
        debug: Enable debug output.
        config_path: Path to a YAML configuration file.
        docker_url: Registry endpoint written into dockercfg secrets.
        resync: Full re-list period in seconds.
        token_wait_interval: Seconds between token secret polls.
        token_wait_attempts: Number of token secret polls.
        context: Kubeconfig context to use.
        in_cluster: Use the pod's service account credentials.

    """
    if not debug:
        ic.disable()

    if version:
        click.echo(__version__)
        return

    try:
        options = load_options(
            config_path,
            docker_url=docker_url,
            resync_seconds=resync,
            token_wait_interval=token_wait_interval,
            token_wait_attempts=token_wait_attempts,
        )
        ic(options)

        cluster = Cluster(context=context, in_cluster=in_cluster)
        server_version = cluster.check_connection()
        store = KubeStore(cluster.core_v1_api())
    except ConfigError as e:
        console.error(f"Invalid configuration: {e}")
        sys.exit(1)
    except ClusterConnectionError as e:
        console.error(f"Cluster connection failed: {e}")
        sys.exit(1)

    console.summary_panel(
        "dockercfg-controller",
        {
            "Cluster": cluster.context,
            "Server version": server_version,
            "Docker URL": options.docker_url or "(unset)",
            "Resync": f"{options.resync_seconds}s" if options.resync_seconds else "server default",
            "Token wait": f"{options.token_wait_attempts} x {options.token_wait_interval}s",
        },
    )

    try:
        with DockercfgController(store, options) as controller:
            wait_for_shutdown(controller)
    except KeyboardInterrupt:
        console.warning("Interrupted")


if __name__ == "__main__":
    cli()
