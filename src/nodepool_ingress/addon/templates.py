"""
Template resolution for addon manifests.

Every template identifier in ``const`` maps to a builder function that turns a
set of parameters into a concrete manifest dict.
"""
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from ..errors import RenderError, TemplateNotFound
from . import const
from .resources import configmap, deployment, jobs, namespace, rbac, services, webhook

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResourceDescriptor:
    template_id: str
    kind: str
    builder: Callable[..., Dict[str, Any]]
    cluster_shared: bool
    namespaced: bool = True


def _shared(template_id, kind, builder, namespaced=True) -> ResourceDescriptor:
    return ResourceDescriptor(template_id, kind, builder, cluster_shared=True, namespaced=namespaced)


def _pooled(template_id, kind, builder, namespaced=True) -> ResourceDescriptor:
    return ResourceDescriptor(template_id, kind, builder, cluster_shared=False, namespaced=namespaced)


DEFAULT_DESCRIPTORS = [
    _shared(const.CONTROLLER_NAMESPACE, "Namespace", namespace.build_namespace, namespaced=False),
    _shared(
        const.CONTROLLER_CLUSTER_ROLE,
        "ClusterRole",
        rbac.build_controller_cluster_role,
        namespaced=False,
    ),
    _shared(
        const.ADMISSION_WEBHOOK_CLUSTER_ROLE,
        "ClusterRole",
        rbac.build_admission_cluster_role,
        namespaced=False,
    ),
    _shared(
        const.CONTROLLER_CLUSTER_ROLE_BINDING,
        "ClusterRoleBinding",
        rbac.build_controller_cluster_role_binding,
        namespaced=False,
    ),
    _shared(
        const.ADMISSION_WEBHOOK_CLUSTER_ROLE_BINDING,
        "ClusterRoleBinding",
        rbac.build_admission_cluster_role_binding,
        namespaced=False,
    ),
    _shared(const.CONTROLLER_ROLE, "Role", rbac.build_controller_role),
    _shared(const.ADMISSION_WEBHOOK_ROLE, "Role", rbac.build_admission_role),
    _shared(const.CONTROLLER_ROLE_BINDING, "RoleBinding", rbac.build_controller_role_binding),
    _shared(const.ADMISSION_WEBHOOK_ROLE_BINDING, "RoleBinding", rbac.build_admission_role_binding),
    _shared(
        const.CONTROLLER_SERVICE_ACCOUNT,
        "ServiceAccount",
        rbac.build_controller_service_account,
    ),
    _shared(
        const.ADMISSION_WEBHOOK_SERVICE_ACCOUNT,
        "ServiceAccount",
        rbac.build_admission_service_account,
    ),
    _shared(const.CONTROLLER_CONFIG_MAP, "ConfigMap", configmap.build_controller_config_map),
    _pooled(const.CONTROLLER_DEPLOYMENT, "Deployment", deployment.build_controller_deployment),
    _pooled(const.ADMISSION_WEBHOOK_DEPLOYMENT, "Deployment", deployment.build_admission_deployment),
    _pooled(const.CONTROLLER_SERVICE, "Service", services.build_controller_service),
    _pooled(const.ADMISSION_WEBHOOK_SERVICE, "Service", services.build_admission_service),
    _pooled(
        const.VALIDATING_WEBHOOK_CONFIGURATION,
        "ValidatingWebhookConfiguration",
        webhook.build_validating_webhook_configuration,
        namespaced=False,
    ),
    _pooled(const.ADMISSION_WEBHOOK_JOB, "Job", jobs.build_admission_create_job),
    _pooled(const.ADMISSION_WEBHOOK_JOB_PATCH, "Job", jobs.build_admission_patch_job),
]


def _accepted_params(builder, params: Dict[str, Any]) -> Dict[str, Any]:
    """Drop parameters a template does not use; missing ones still fail."""
    signature = inspect.signature(builder)
    if any(p.kind is p.VAR_KEYWORD for p in signature.parameters.values()):
        return dict(params)
    return {k: v for k, v in params.items() if k in signature.parameters}


class TemplateResolver:
    """Renders manifests from registered template identifiers."""

    def __init__(self, descriptors=None):
        self._descriptors: Dict[str, ResourceDescriptor] = {
            d.template_id: d for d in (descriptors or DEFAULT_DESCRIPTORS)
        }

    def descriptor(self, template_id: str) -> ResourceDescriptor:
        try:
            return self._descriptors[template_id]
        except KeyError:
            raise TemplateNotFound(f"No template registered as '{template_id}'") from None

    def render(self, template_id: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Build the manifest for ``template_id``.

        Raises:
            TemplateNotFound: If the identifier is unknown.
            RenderError: If the parameters do not fit the template.
        """
        descriptor = self.descriptor(template_id)
        params = _accepted_params(descriptor.builder, params or {})
        try:
            manifest = descriptor.builder(**params)
        except (TypeError, ValueError, KeyError) as e:
            logger.error(f"Failed to render template '{template_id}' with {sorted(params)}: {e}")
            raise RenderError(f"Cannot render template '{template_id}': {e}") from e

        if manifest.get("kind") != descriptor.kind:
            raise RenderError(
                f"Template '{template_id}' produced kind '{manifest.get('kind')}', "
                f"expected '{descriptor.kind}'"
            )
        return manifest
