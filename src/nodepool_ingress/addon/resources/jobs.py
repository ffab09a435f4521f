"""
Certificate provisioning Jobs for a pool's admission webhook.

The create Job generates a self-signed certificate into a Secret; the patch
Job writes its CA into the pool's ValidatingWebhookConfiguration.
"""
from typing import Any, Dict, List

from .. import names
from ..const import ADMISSION_SERVICE_ACCOUNT_NAME, APP_NAME, POOL_LABEL_KEY


def _job(
    name: str, namespace: str, pool_name: str, image: str, args: List[str]
) -> Dict[str, Any]:
    labels = {
        "app.kubernetes.io/name": APP_NAME,
        "app.kubernetes.io/component": "admission-certgen",
        POOL_LABEL_KEY: pool_name,
    }
    return {
        "apiVersion": "batch/v1",
        "kind": "Job",
        "metadata": {"name": name, "namespace": namespace, "labels": dict(labels)},
        "spec": {
            "template": {
                "metadata": {"name": name, "labels": dict(labels)},
                "spec": {
                    "restartPolicy": "OnFailure",
                    "serviceAccountName": ADMISSION_SERVICE_ACCOUNT_NAME,
                    "securityContext": {"runAsNonRoot": True, "runAsUser": 2000},
                    "containers": [
                        {
                            "name": name.rsplit("-", 1)[-1],
                            "image": image,
                            "imagePullPolicy": "IfNotPresent",
                            "args": args,
                            "env": [
                                {
                                    "name": "POD_NAMESPACE",
                                    "valueFrom": {"fieldRef": {"fieldPath": "metadata.namespace"}},
                                }
                            ],
                        }
                    ],
                },
            },
        },
    }


def build_admission_create_job(namespace: str, pool_name: str, image: str = "") -> Dict[str, Any]:
    service = names.admission_name(pool_name)
    return _job(
        names.admission_create_job_name(pool_name),
        namespace,
        pool_name,
        image,
        [
            "create",
            f"--host={service},{service}.$(POD_NAMESPACE).svc",
            "--namespace=$(POD_NAMESPACE)",
            f"--secret-name={names.admission_secret_name(pool_name)}",
        ],
    )


def build_admission_patch_job(namespace: str, pool_name: str, image: str = "") -> Dict[str, Any]:
    return _job(
        names.admission_patch_job_name(pool_name),
        namespace,
        pool_name,
        image,
        [
            "patch",
            f"--webhook-name={names.admission_name(pool_name)}",
            "--namespace=$(POD_NAMESPACE)",
            "--patch-mutating=false",
            f"--secret-name={names.admission_secret_name(pool_name)}",
            "--patch-failure-policy=Fail",
        ],
    )
