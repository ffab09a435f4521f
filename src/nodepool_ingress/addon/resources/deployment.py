from typing import Any, Dict, List

from .. import names
from ..const import (
    ADMISSION_SERVICE_ACCOUNT_NAME,
    APP_NAME,
    CONTROLLER_CONFIG_MAP_NAME,
    CONTROLLER_SERVICE_ACCOUNT_NAME,
    POOL_LABEL_KEY,
)

NODEPOOL_NODE_LABEL = "apps.openyurt.io/nodepool"
WEBHOOK_PORT = 8443


def _selector_labels(pool_name: str, component: str) -> Dict[str, str]:
    return {
        "app.kubernetes.io/name": APP_NAME,
        "app.kubernetes.io/component": component,
        POOL_LABEL_KEY: pool_name,
    }


def _pod_env() -> List[Dict[str, Any]]:
    return [
        {
            "name": "POD_NAME",
            "valueFrom": {"fieldRef": {"fieldPath": "metadata.name"}},
        },
        {
            "name": "POD_NAMESPACE",
            "valueFrom": {"fieldRef": {"fieldPath": "metadata.namespace"}},
        },
    ]


def _deployment(
    name: str,
    namespace: str,
    labels: Dict[str, str],
    replicas: int,
    pool_name: str,
    service_account: str,
    container: Dict[str, Any],
    volumes: List[Dict[str, Any]],
) -> Dict[str, Any]:
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {"name": name, "namespace": namespace, "labels": dict(labels)},
        "spec": {
            "replicas": replicas,
            "revisionHistoryLimit": 10,
            "selector": {"matchLabels": dict(labels)},
            "template": {
                "metadata": {"labels": dict(labels)},
                "spec": {
                    "nodeSelector": {
                        "kubernetes.io/os": "linux",
                        NODEPOOL_NODE_LABEL: pool_name,
                    },
                    "serviceAccountName": service_account,
                    "terminationGracePeriodSeconds": 300,
                    "containers": [container],
                    "volumes": volumes,
                },
            },
        },
    }


def build_controller_deployment(
    namespace: str, pool_name: str, image: str = "", replicas: int = 1
) -> Dict[str, Any]:
    """Builds the ingress controller Deployment pinned to one node pool."""
    if replicas < 0:
        raise ValueError(f"replicas must be non-negative, got {replicas}")
    labels = _selector_labels(pool_name, "controller")
    container = {
        "name": "controller",
        "image": image,
        "imagePullPolicy": "IfNotPresent",
        "args": [
            "/nginx-ingress-controller",
            f"--election-id={names.controller_name(pool_name)}-leader",
            f"--controller-class=k8s.io/{names.ingress_class_name(pool_name)}",
            f"--ingress-class={names.ingress_class_name(pool_name)}",
            f"--configmap=$(POD_NAMESPACE)/{CONTROLLER_CONFIG_MAP_NAME}",
            f"--publish-service=$(POD_NAMESPACE)/{names.controller_name(pool_name)}",
        ],
        "env": _pod_env(),
        "ports": [
            {"name": "http", "containerPort": 80, "protocol": "TCP"},
            {"name": "https", "containerPort": 443, "protocol": "TCP"},
        ],
        "livenessProbe": {
            "httpGet": {"path": "/healthz", "port": 10254, "scheme": "HTTP"},
            "initialDelaySeconds": 10,
            "periodSeconds": 10,
        },
        "readinessProbe": {
            "httpGet": {"path": "/healthz", "port": 10254, "scheme": "HTTP"},
            "initialDelaySeconds": 10,
            "periodSeconds": 10,
        },
        "resources": {"requests": {"cpu": "100m", "memory": "90Mi"}},
    }
    return _deployment(
        names.controller_name(pool_name),
        namespace,
        labels,
        replicas,
        pool_name,
        CONTROLLER_SERVICE_ACCOUNT_NAME,
        container,
        volumes=[],
    )


def build_admission_deployment(
    namespace: str, pool_name: str, image: str = "", replicas: int = 1
) -> Dict[str, Any]:
    """Builds the Deployment serving the validating admission webhook."""
    if replicas < 0:
        raise ValueError(f"replicas must be non-negative, got {replicas}")
    labels = _selector_labels(pool_name, "admission-webhook")
    container = {
        "name": "webhook",
        "image": image,
        "imagePullPolicy": "IfNotPresent",
        "args": [
            "/nginx-ingress-controller",
            f"--election-id={names.admission_name(pool_name)}-leader",
            f"--ingress-class={names.ingress_class_name(pool_name)}",
            f"--validating-webhook=:{WEBHOOK_PORT}",
            "--validating-webhook-certificate=/usr/local/certificates/cert",
            "--validating-webhook-key=/usr/local/certificates/key",
        ],
        "env": _pod_env(),
        "ports": [{"name": "webhook", "containerPort": WEBHOOK_PORT, "protocol": "TCP"}],
        "volumeMounts": [
            {"name": "webhook-cert", "mountPath": "/usr/local/certificates/", "readOnly": True}
        ],
    }
    volumes = [
        {
            "name": "webhook-cert",
            "secret": {"secretName": names.admission_secret_name(pool_name)},
        }
    ]
    return _deployment(
        names.admission_name(pool_name),
        namespace,
        labels,
        replicas,
        pool_name,
        ADMISSION_SERVICE_ACCOUNT_NAME,
        container,
        volumes,
    )
