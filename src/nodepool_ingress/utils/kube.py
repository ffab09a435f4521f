"""
Kubernetes client setup shared by the CLI and the remote object client.
"""
from __future__ import annotations

import logging
from typing import Dict, Literal, Optional

from kubernetes import config as kube_config

from ..errors import KubernetesConfigurationError

_logger = logging.getLogger(__name__)

ConfigSource = Literal["in-cluster", "kubeconfig"]


def _load_kubeconfig(path: Optional[str], log: logging.Logger) -> ConfigSource:
    try:
        kube_config.load_kube_config(config_file=path)
    except (kube_config.ConfigException, OSError) as exc:
        where = f"'{path}'" if path else "the default location"
        message = f"Could not load a kubeconfig from {where}."
        log.error("%s %s", message, exc)
        raise KubernetesConfigurationError(message) from exc
    log.info("Using kubeconfig at %s.", path or "the default location")
    return "kubeconfig"


def configure_kube_client(
    logger: Optional[logging.Logger] = None,
    *,
    kubeconfig_path: Optional[str] = None,
) -> ConfigSource:
    """
    Point the Kubernetes client at a cluster.

    An explicit ``kubeconfig_path`` is used as-is. Otherwise in-cluster
    credentials are tried first and the default kubeconfig second.

    Returns:
        Which configuration source was used.

    Raises:
        KubernetesConfigurationError: If no source could be loaded.
    """
    log = logger or _logger

    if kubeconfig_path:
        return _load_kubeconfig(kubeconfig_path, log)

    try:
        kube_config.load_incluster_config()
    except kube_config.ConfigException as exc:
        log.debug("In-cluster configuration unavailable: %s", exc)
        return _load_kubeconfig(None, log)

    log.info("Using in-cluster Kubernetes configuration.")
    return "in-cluster"


def format_label_selector(labels: Dict[str, str]) -> str:
    """Render a label dict as an equality-based selector (e.g. ``a=b,c=d``)."""
    return ",".join(f"{k}={v}" for k, v in labels.items())
