"""
Command implementations behind the ``nodepool-ingress`` CLI.
"""
import logging
import sys
from typing import List, Optional

import click
from rich.console import Console

from ..addon.client import RemoteObjectClient
from ..addon.orchestrator import IngressAddonOrchestrator
from ..addon.sequence import SequenceResult
from ..config import AddonConfig
from ..errors import AddonError

logger = logging.getLogger(__name__)


def build_orchestrator(configuration: AddonConfig) -> IngressAddonOrchestrator:
    return IngressAddonOrchestrator.from_config(RemoteObjectClient(), configuration)


def _report(console: Console, action: str, result: Optional[SequenceResult]) -> None:
    if result is None:
        console.print(f"[green]✔[/green] {action}.")
    else:
        console.print(f"[green]✔[/green] {action} ({result.completed}/{result.total} steps).")


def _run(console: Console, action: str, operation, *args, **kwargs) -> None:
    try:
        result = operation(*args, **kwargs)
    except AddonError as exc:
        raise click.ClickException(f"{action} failed: {exc}") from exc
    _report(console, action, result)


def install_common(configuration: AddonConfig) -> None:
    console = Console()
    orchestrator = build_orchestrator(configuration)
    _run(console, "Installed common resources", orchestrator.install_common_resources)


def uninstall_common(configuration: AddonConfig) -> None:
    console = Console()
    orchestrator = build_orchestrator(configuration)
    _run(console, "Uninstalled common resources", orchestrator.uninstall_common_resources)


def install_pool(
    configuration: AddonConfig,
    pool: str,
    external_ips: List[str],
    controller_image: Optional[str],
    webhook_image: Optional[str],
    replicas: int,
) -> None:
    console = Console()
    orchestrator = build_orchestrator(configuration)
    owner_ref = orchestrator.resolve_owner_reference()
    _run(
        console,
        f"Installed ingress for pool '{pool}'",
        orchestrator.install_pool_resources,
        pool,
        external_ips,
        controller_image or configuration.controller_image,
        webhook_image or configuration.webhook_certgen_image,
        replicas,
        owner_ref,
    )


def uninstall_pool(configuration: AddonConfig, pool: str, force_cleanup: bool) -> None:
    console = Console()
    orchestrator = build_orchestrator(configuration)
    _run(
        console,
        f"Uninstalled ingress for pool '{pool}'",
        orchestrator.uninstall_pool_resources,
        pool,
        force_cleanup=force_cleanup,
    )


def scale(configuration: AddonConfig, pool: str, replicas: int) -> None:
    console = Console()
    orchestrator = build_orchestrator(configuration)
    _run(
        console,
        f"Scaled pool '{pool}' controller to {replicas} replica(s)",
        orchestrator.scale_controller_deployment,
        pool,
        replicas,
    )


def update(configuration: AddonConfig, pool: str, replicas: int, image: str) -> None:
    console = Console()
    orchestrator = build_orchestrator(configuration)
    _run(
        console,
        f"Updated pool '{pool}' controller to '{image}'",
        orchestrator.update_controller_deployment,
        pool,
        replicas,
        image,
    )


def set_external_ips(configuration: AddonConfig, pool: str, external_ips: List[str]) -> None:
    console = Console()
    orchestrator = build_orchestrator(configuration)
    _run(
        console,
        f"Set pool '{pool}' external IPs to {external_ips or 'none'}",
        orchestrator.update_service_external_ips,
        pool,
        external_ips,
    )


def recreate_jobs(configuration: AddonConfig, pool: str, image: Optional[str]) -> None:
    console = Console()
    orchestrator = build_orchestrator(configuration)
    image = image or configuration.webhook_certgen_image
    with console.status(f"Recreating certificate Jobs for pool '{pool}'..."):
        _run(
            console,
            f"Recreated certificate Jobs for pool '{pool}'",
            orchestrator.recreate_webhook_jobs,
            pool,
            image,
        )


def status(configuration: AddonConfig) -> None:
    console = Console()
    orchestrator = build_orchestrator(configuration)
    if orchestrator.is_ingress_namespace_ready():
        console.print(f"[green]✔[/green] Namespace '{configuration.namespace}' is active.")
    else:
        console.print(f"[yellow]ℹ[/yellow] Namespace '{configuration.namespace}' is not ready.")
        sys.exit(1)
