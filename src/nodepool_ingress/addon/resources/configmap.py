from typing import Any, Dict

from ..const import APP_NAME, CONTROLLER_CONFIG_MAP_NAME


def build_controller_config_map(namespace: str) -> Dict[str, Any]:
    """Builds the ConfigMap shared by the controllers of every pool."""
    return {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {
            "name": CONTROLLER_CONFIG_MAP_NAME,
            "namespace": namespace,
            "labels": {
                "app.kubernetes.io/name": APP_NAME,
                "app.kubernetes.io/component": "controller",
            },
        },
        "data": {
            "allow-snippet-annotations": "true",
        },
    }
