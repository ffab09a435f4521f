from typing import Any, Dict

from .. import names
from ..const import APP_NAME, POOL_LABEL_KEY


def build_validating_webhook_configuration(namespace: str, pool_name: str) -> Dict[str, Any]:
    """
    Builds the ValidatingWebhookConfiguration routing Ingress admission for a
    pool to that pool's webhook Service.

    The caBundle is left empty; the certificate patch Job fills it in.
    """
    return {
        "apiVersion": "admissionregistration.k8s.io/v1",
        "kind": "ValidatingWebhookConfiguration",
        "metadata": {
            "name": names.admission_name(pool_name),
            "labels": {
                "app.kubernetes.io/name": APP_NAME,
                "app.kubernetes.io/component": "admission-webhook",
                POOL_LABEL_KEY: pool_name,
            },
        },
        "webhooks": [
            {
                "name": f"validate.{names.ingress_class_name(pool_name)}.ingress.kubernetes.io",
                "matchPolicy": "Equivalent",
                "rules": [
                    {
                        "apiGroups": ["networking.k8s.io"],
                        "apiVersions": ["v1"],
                        "operations": ["CREATE", "UPDATE"],
                        "resources": ["ingresses"],
                    }
                ],
                "failurePolicy": "Fail",
                "sideEffects": "None",
                "admissionReviewVersions": ["v1"],
                "clientConfig": {
                    "service": {
                        "namespace": namespace,
                        "name": names.admission_name(pool_name),
                        "path": "/networking/v1/ingresses",
                    }
                },
            }
        ],
    }
