import logging
from pathlib import Path

import click

from ..config import AddonConfig
from ..errors import KubernetesConfigurationError
from ..utils.kube import configure_kube_client
from . import handlers


def _split_ips(value: str) -> list:
    return [ip.strip() for ip in value.split(",") if ip.strip()] if value else []


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to the addon config file.",
)
@click.option("--kubeconfig", type=str, default=None, help="Path to a kubeconfig file.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx, config_path, kubeconfig, verbose) -> None:
    """Manage the per-node-pool ingress addon."""
    ctx.ensure_object(dict)
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO)

    ctx.obj["CONFIG"] = AddonConfig(str(config_path) if config_path else None)
    try:
        configure_kube_client(logging.getLogger(__name__), kubeconfig_path=kubeconfig)
    except KubernetesConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc


@main.command(name="install-common", help="Create the cluster-shared resources.")
@click.pass_context
def install_common(ctx) -> None:
    handlers.install_common(ctx.obj["CONFIG"])


@main.command(name="uninstall-common", help="Delete the cluster-shared resources.")
@click.pass_context
def uninstall_common(ctx) -> None:
    handlers.uninstall_common(ctx.obj["CONFIG"])


@main.command(name="install-pool", help="Create the ingress resources for a node pool.")
@click.argument("pool")
@click.option("--external-ips", type=str, default="", help="Comma separated external IPs.")
@click.option("--controller-image", type=str, default=None, help="Ingress controller image.")
@click.option("--webhook-image", type=str, default=None, help="Webhook certgen image.")
@click.option("--replicas", type=click.IntRange(min=0), default=1, help="Controller replicas.")
@click.pass_context
def install_pool(ctx, pool, external_ips, controller_image, webhook_image, replicas) -> None:
    handlers.install_pool(
        ctx.obj["CONFIG"],
        pool,
        _split_ips(external_ips),
        controller_image,
        webhook_image,
        replicas,
    )


@main.command(name="uninstall-pool", help="Delete the ingress resources for a node pool.")
@click.argument("pool")
@click.option(
    "--force-cleanup",
    is_flag=True,
    help="Also remove the pods of the certificate Jobs.",
)
@click.pass_context
def uninstall_pool(ctx, pool, force_cleanup) -> None:
    handlers.uninstall_pool(ctx.obj["CONFIG"], pool, force_cleanup)


@main.command(help="Scale a node pool's ingress controller.")
@click.argument("pool")
@click.option("--replicas", type=click.IntRange(min=0), required=True)
@click.pass_context
def scale(ctx, pool, replicas) -> None:
    handlers.scale(ctx.obj["CONFIG"], pool, replicas)


@main.command(help="Update a node pool's controller image and replicas.")
@click.argument("pool")
@click.option("--replicas", type=click.IntRange(min=0), required=True)
@click.option("--image", type=str, required=True)
@click.pass_context
def update(ctx, pool, replicas, image) -> None:
    handlers.update(ctx.obj["CONFIG"], pool, replicas, image)


@main.command(name="set-external-ips", help="Replace a node pool's controller external IPs.")
@click.argument("pool")
@click.argument("external_ips", default="")
@click.pass_context
def set_external_ips(ctx, pool, external_ips) -> None:
    handlers.set_external_ips(ctx.obj["CONFIG"], pool, _split_ips(external_ips))


@main.command(name="recreate-jobs", help="Recreate a node pool's webhook certificate Jobs.")
@click.argument("pool")
@click.option("--image", type=str, default=None, help="Webhook certgen image.")
@click.pass_context
def recreate_jobs(ctx, pool, image) -> None:
    handlers.recreate_jobs(ctx.obj["CONFIG"], pool, image)


@main.command(help="Check whether the ingress namespace is active.")
@click.pass_context
def status(ctx) -> None:
    handlers.status(ctx.obj["CONFIG"])
