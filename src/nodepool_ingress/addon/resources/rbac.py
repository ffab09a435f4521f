"""
RBAC objects and service accounts shared by every node pool.
"""
from typing import Any, Dict, List

from ..const import (
    ADMISSION_SERVICE_ACCOUNT_NAME,
    APP_NAME,
    CONTROLLER_CONFIG_MAP_NAME,
    CONTROLLER_SERVICE_ACCOUNT_NAME,
)

CONTROLLER_CLUSTER_ROLE_NAME = "ingress-nginx"
ADMISSION_CLUSTER_ROLE_NAME = "ingress-nginx-admission"


def _labels(component: str) -> Dict[str, str]:
    return {
        "app.kubernetes.io/name": APP_NAME,
        "app.kubernetes.io/instance": APP_NAME,
        "app.kubernetes.io/component": component,
    }


def _rule(api_groups: List[str], resources: List[str], verbs: List[str]) -> Dict[str, Any]:
    return {"apiGroups": api_groups, "resources": resources, "verbs": verbs}


def build_controller_cluster_role() -> Dict[str, Any]:
    """Builds the ClusterRole the ingress controllers run under."""
    return {
        "apiVersion": "rbac.authorization.k8s.io/v1",
        "kind": "ClusterRole",
        "metadata": {"name": CONTROLLER_CLUSTER_ROLE_NAME, "labels": _labels("controller")},
        "rules": [
            _rule(
                [""],
                ["configmaps", "endpoints", "nodes", "pods", "secrets", "namespaces"],
                ["list", "watch"],
            ),
            _rule(["coordination.k8s.io"], ["leases"], ["list", "watch"]),
            _rule([""], ["nodes"], ["get"]),
            _rule([""], ["services"], ["get", "list", "watch"]),
            _rule(["networking.k8s.io"], ["ingresses"], ["get", "list", "watch"]),
            _rule([""], ["events"], ["create", "patch"]),
            _rule(["networking.k8s.io"], ["ingresses/status"], ["update"]),
            _rule(["networking.k8s.io"], ["ingressclasses"], ["get", "list", "watch"]),
            _rule(["discovery.k8s.io"], ["endpointslices"], ["list", "watch", "get"]),
        ],
    }


def build_admission_cluster_role() -> Dict[str, Any]:
    """Builds the ClusterRole used by the certificate Jobs to patch the webhook."""
    return {
        "apiVersion": "rbac.authorization.k8s.io/v1",
        "kind": "ClusterRole",
        "metadata": {"name": ADMISSION_CLUSTER_ROLE_NAME, "labels": _labels("admission-webhook")},
        "rules": [
            _rule(
                ["admissionregistration.k8s.io"],
                ["validatingwebhookconfigurations"],
                ["get", "update"],
            ),
        ],
    }


def build_controller_cluster_role_binding(namespace: str) -> Dict[str, Any]:
    return {
        "apiVersion": "rbac.authorization.k8s.io/v1",
        "kind": "ClusterRoleBinding",
        "metadata": {"name": CONTROLLER_CLUSTER_ROLE_NAME, "labels": _labels("controller")},
        "roleRef": {
            "apiGroup": "rbac.authorization.k8s.io",
            "kind": "ClusterRole",
            "name": CONTROLLER_CLUSTER_ROLE_NAME,
        },
        "subjects": [
            {
                "kind": "ServiceAccount",
                "name": CONTROLLER_SERVICE_ACCOUNT_NAME,
                "namespace": namespace,
            }
        ],
    }


def build_admission_cluster_role_binding(namespace: str) -> Dict[str, Any]:
    return {
        "apiVersion": "rbac.authorization.k8s.io/v1",
        "kind": "ClusterRoleBinding",
        "metadata": {"name": ADMISSION_CLUSTER_ROLE_NAME, "labels": _labels("admission-webhook")},
        "roleRef": {
            "apiGroup": "rbac.authorization.k8s.io",
            "kind": "ClusterRole",
            "name": ADMISSION_CLUSTER_ROLE_NAME,
        },
        "subjects": [
            {
                "kind": "ServiceAccount",
                "name": ADMISSION_SERVICE_ACCOUNT_NAME,
                "namespace": namespace,
            }
        ],
    }


def build_controller_role(namespace: str) -> Dict[str, Any]:
    """Builds the namespaced Role for leader election and config access."""
    return {
        "apiVersion": "rbac.authorization.k8s.io/v1",
        "kind": "Role",
        "metadata": {
            "name": CONTROLLER_SERVICE_ACCOUNT_NAME,
            "namespace": namespace,
            "labels": _labels("controller"),
        },
        "rules": [
            _rule([""], ["namespaces"], ["get"]),
            _rule([""], ["configmaps", "pods", "secrets", "endpoints"], ["get", "list", "watch"]),
            _rule([""], ["services"], ["get", "list", "watch"]),
            _rule(["networking.k8s.io"], ["ingresses", "ingressclasses"], ["get", "list", "watch"]),
            _rule(["networking.k8s.io"], ["ingresses/status"], ["update"]),
            {
                "apiGroups": [""],
                "resources": ["configmaps"],
                "resourceNames": [CONTROLLER_CONFIG_MAP_NAME],
                "verbs": ["get", "update"],
            },
            _rule(["coordination.k8s.io"], ["leases"], ["get", "create", "update"]),
            _rule([""], ["events"], ["create", "patch"]),
            _rule(["discovery.k8s.io"], ["endpointslices"], ["list", "watch", "get"]),
        ],
    }


def build_admission_role(namespace: str) -> Dict[str, Any]:
    """Builds the Role the certificate Jobs use to manage the webhook secret."""
    return {
        "apiVersion": "rbac.authorization.k8s.io/v1",
        "kind": "Role",
        "metadata": {
            "name": ADMISSION_SERVICE_ACCOUNT_NAME,
            "namespace": namespace,
            "labels": _labels("admission-webhook"),
        },
        "rules": [_rule([""], ["secrets"], ["get", "create"])],
    }


def build_controller_role_binding(namespace: str) -> Dict[str, Any]:
    return {
        "apiVersion": "rbac.authorization.k8s.io/v1",
        "kind": "RoleBinding",
        "metadata": {
            "name": CONTROLLER_SERVICE_ACCOUNT_NAME,
            "namespace": namespace,
            "labels": _labels("controller"),
        },
        "roleRef": {
            "apiGroup": "rbac.authorization.k8s.io",
            "kind": "Role",
            "name": CONTROLLER_SERVICE_ACCOUNT_NAME,
        },
        "subjects": [
            {
                "kind": "ServiceAccount",
                "name": CONTROLLER_SERVICE_ACCOUNT_NAME,
                "namespace": namespace,
            }
        ],
    }


def build_admission_role_binding(namespace: str) -> Dict[str, Any]:
    return {
        "apiVersion": "rbac.authorization.k8s.io/v1",
        "kind": "RoleBinding",
        "metadata": {
            "name": ADMISSION_SERVICE_ACCOUNT_NAME,
            "namespace": namespace,
            "labels": _labels("admission-webhook"),
        },
        "roleRef": {
            "apiGroup": "rbac.authorization.k8s.io",
            "kind": "Role",
            "name": ADMISSION_SERVICE_ACCOUNT_NAME,
        },
        "subjects": [
            {
                "kind": "ServiceAccount",
                "name": ADMISSION_SERVICE_ACCOUNT_NAME,
                "namespace": namespace,
            }
        ],
    }


def build_controller_service_account(namespace: str) -> Dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "ServiceAccount",
        "metadata": {
            "name": CONTROLLER_SERVICE_ACCOUNT_NAME,
            "namespace": namespace,
            "labels": _labels("controller"),
        },
        "automountServiceAccountToken": True,
    }


def build_admission_service_account(namespace: str) -> Dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "ServiceAccount",
        "metadata": {
            "name": ADMISSION_SERVICE_ACCOUNT_NAME,
            "namespace": namespace,
            "labels": _labels("admission-webhook"),
        },
    }
