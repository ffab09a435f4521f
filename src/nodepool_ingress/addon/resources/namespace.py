from typing import Any, Dict

from ..const import APP_NAME


def build_namespace(namespace: str) -> Dict[str, Any]:
    """Builds the Namespace every namespaced addon object lives in."""
    return {
        "apiVersion": "v1",
        "kind": "Namespace",
        "metadata": {
            "name": namespace,
            "labels": {
                "app.kubernetes.io/name": APP_NAME,
                "app.kubernetes.io/instance": APP_NAME,
            },
        },
    }
