"""
Object names for the per-pool part of the addon.

All pools share one namespace, so every pool-scoped object name is prefixed
with the pool name.
"""


def controller_name(pool_name: str) -> str:
    return f"{pool_name}-ingress-nginx-controller"


def admission_name(pool_name: str) -> str:
    return f"{pool_name}-ingress-nginx-admission"


def admission_create_job_name(pool_name: str) -> str:
    return f"{admission_name(pool_name)}-create"


def admission_patch_job_name(pool_name: str) -> str:
    return f"{admission_name(pool_name)}-patch"


def admission_secret_name(pool_name: str) -> str:
    return f"{admission_name(pool_name)}-cert"


def ingress_class_name(pool_name: str) -> str:
    return f"{pool_name}-nginx"
