from typing import Any, Dict, List, Optional

from .. import names
from ..const import APP_NAME, POOL_LABEL_KEY


def _selector(pool_name: str, component: str) -> Dict[str, str]:
    return {
        "app.kubernetes.io/name": APP_NAME,
        "app.kubernetes.io/component": component,
        POOL_LABEL_KEY: pool_name,
    }


def build_controller_service(
    namespace: str, pool_name: str, external_ips: Optional[List[str]] = None
) -> Dict[str, Any]:
    """Builds the NodePort Service exposing a pool's controller."""
    selector = _selector(pool_name, "controller")
    spec: Dict[str, Any] = {
        "type": "NodePort",
        "selector": selector,
        "ports": [
            {"name": "http", "port": 80, "targetPort": "http", "protocol": "TCP"},
            {"name": "https", "port": 443, "targetPort": "https", "protocol": "TCP"},
        ],
    }
    if external_ips:
        spec["externalIPs"] = list(external_ips)
    return {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {
            "name": names.controller_name(pool_name),
            "namespace": namespace,
            "labels": dict(selector),
        },
        "spec": spec,
    }


def build_admission_service(namespace: str, pool_name: str) -> Dict[str, Any]:
    """Builds the ClusterIP Service the API server calls the webhook through."""
    selector = _selector(pool_name, "admission-webhook")
    return {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {
            "name": names.admission_name(pool_name),
            "namespace": namespace,
            "labels": dict(selector),
        },
        "spec": {
            "type": "ClusterIP",
            "selector": selector,
            "ports": [
                {"name": "https-webhook", "port": 443, "targetPort": "webhook", "protocol": "TCP"}
            ],
        },
    }
