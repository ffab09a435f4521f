"""
Kind-generic CRUD over the Kubernetes API for the fixed addon resource set.

Objects go in and come out as plain manifest dicts. API errors are translated
into the addon error taxonomy so callers never handle ``ApiException``.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from kubernetes import client

from ..errors import (
    AlreadyExistsError,
    ConflictError,
    InvalidObjectKey,
    NotFoundError,
    StoreError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KindInfo:
    api_version: str
    api_class: str
    method_suffix: str
    namespaced: bool


KINDS: Dict[str, KindInfo] = {
    "Namespace": KindInfo("v1", "CoreV1Api", "namespace", False),
    "ServiceAccount": KindInfo("v1", "CoreV1Api", "service_account", True),
    "ConfigMap": KindInfo("v1", "CoreV1Api", "config_map", True),
    "Service": KindInfo("v1", "CoreV1Api", "service", True),
    "ClusterRole": KindInfo(
        "rbac.authorization.k8s.io/v1", "RbacAuthorizationV1Api", "cluster_role", False
    ),
    "ClusterRoleBinding": KindInfo(
        "rbac.authorization.k8s.io/v1", "RbacAuthorizationV1Api", "cluster_role_binding", False
    ),
    "Role": KindInfo("rbac.authorization.k8s.io/v1", "RbacAuthorizationV1Api", "role", True),
    "RoleBinding": KindInfo(
        "rbac.authorization.k8s.io/v1", "RbacAuthorizationV1Api", "role_binding", True
    ),
    "Deployment": KindInfo("apps/v1", "AppsV1Api", "deployment", True),
    "Job": KindInfo("batch/v1", "BatchV1Api", "job", True),
    "ValidatingWebhookConfiguration": KindInfo(
        "admissionregistration.k8s.io/v1",
        "AdmissionregistrationV1Api",
        "validating_webhook_configuration",
        False,
    ),
}


def kind_info(kind: str) -> KindInfo:
    try:
        return KINDS[kind]
    except KeyError:
        raise InvalidObjectKey(f"Unsupported kind '{kind}'") from None


class RemoteObjectClient:
    """
    get / create / update / delete / list keyed by kind, namespace and name.

    Args:
        api_client: Shared ``kubernetes.client.ApiClient``. A default one is
            created when omitted, so the client must already be configured.
        apis: Optional mapping of API class name (e.g. ``"AppsV1Api"``) to an
            instance, overriding the ones built from ``api_client``.
    """

    def __init__(
        self,
        api_client: Optional[client.ApiClient] = None,
        apis: Optional[Dict[str, Any]] = None,
    ):
        self.api_client = api_client or client.ApiClient()
        self._apis: Dict[str, Any] = dict(apis or {})

    def _api(self, info: KindInfo) -> Any:
        api = self._apis.get(info.api_class)
        if api is None:
            api = getattr(client, info.api_class)(self.api_client)
            self._apis[info.api_class] = api
        return api

    def _method(self, verb: str, info: KindInfo):
        scope = "namespaced_" if info.namespaced else ""
        return getattr(self._api(info), f"{verb}_{scope}{info.method_suffix}")

    def _to_dict(self, kind: str, obj: Any) -> Dict[str, Any]:
        data = self.api_client.sanitize_for_serialization(obj)
        # Typed responses may omit the type meta; fill it in for owner references.
        data.setdefault("apiVersion", KINDS[kind].api_version)
        data.setdefault("kind", kind)
        return data

    @staticmethod
    def _translate(
        exc: client.ApiException,
        verb: str,
        kind: str,
        name: str,
        namespace: Optional[str],
    ) -> Exception:
        if exc.status == 404:
            return NotFoundError(kind, name, namespace)
        if exc.status == 409:
            if verb == "create":
                return AlreadyExistsError(kind, name, namespace)
            return ConflictError(f"Conflict on {verb} of {kind} '{name}': {exc.reason}")
        location = f"{namespace}/{name}" if namespace else name
        return StoreError(
            f"Failed to {verb} {kind} '{location}': {exc.status} {exc.reason}",
            status=exc.status,
        )

    @staticmethod
    def _check_namespace(info: KindInfo, kind: str, namespace: Optional[str]) -> None:
        if info.namespaced and not namespace:
            raise InvalidObjectKey(f"Namespace is required for namespaced kind '{kind}'")
        if not info.namespaced and namespace:
            raise InvalidObjectKey(f"Cluster-scoped kind '{kind}' must not receive a namespace")

    def get(self, kind: str, name: str, namespace: Optional[str] = None) -> Dict[str, Any]:
        info = kind_info(kind)
        self._check_namespace(info, kind, namespace)
        read = self._method("read", info)
        try:
            if info.namespaced:
                obj = read(name=name, namespace=namespace)
            else:
                obj = read(name=name)
        except client.ApiException as e:
            raise self._translate(e, "get", kind, name, namespace) from e
        return self._to_dict(kind, obj)

    def create(self, manifest: Dict[str, Any]) -> Dict[str, Any]:
        kind = manifest["kind"]
        name = manifest["metadata"]["name"]
        namespace = manifest["metadata"].get("namespace")
        info = kind_info(kind)
        self._check_namespace(info, kind, namespace)
        create = self._method("create", info)
        try:
            if info.namespaced:
                obj = create(namespace=namespace, body=manifest)
            else:
                obj = create(body=manifest)
        except client.ApiException as e:
            raise self._translate(e, "create", kind, name, namespace) from e
        return self._to_dict(kind, obj)

    def update(self, manifest: Dict[str, Any]) -> Dict[str, Any]:
        """Replace an existing object. ``manifest`` should carry its resourceVersion."""
        kind = manifest["kind"]
        name = manifest["metadata"]["name"]
        namespace = manifest["metadata"].get("namespace")
        info = kind_info(kind)
        self._check_namespace(info, kind, namespace)
        replace = self._method("replace", info)
        try:
            if info.namespaced:
                obj = replace(name=name, namespace=namespace, body=manifest)
            else:
                obj = replace(name=name, body=manifest)
        except client.ApiException as e:
            raise self._translate(e, "update", kind, name, namespace) from e
        return self._to_dict(kind, obj)

    def delete(
        self,
        kind: str,
        name: str,
        namespace: Optional[str] = None,
        propagation_policy: Optional[str] = None,
    ) -> None:
        info = kind_info(kind)
        self._check_namespace(info, kind, namespace)
        delete = self._method("delete", info)
        body = client.V1DeleteOptions(propagation_policy=propagation_policy)
        try:
            if info.namespaced:
                delete(name=name, namespace=namespace, body=body)
            else:
                delete(name=name, body=body)
        except client.ApiException as e:
            raise self._translate(e, "delete", kind, name, namespace) from e

    def list(
        self,
        kind: str,
        namespace: Optional[str] = None,
        label_selector: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        info = kind_info(kind)
        self._check_namespace(info, kind, namespace)
        list_method = self._method("list", info)
        kwargs: Dict[str, Any] = {}
        if label_selector:
            kwargs["label_selector"] = label_selector
        try:
            if info.namespaced:
                result = list_method(namespace=namespace, **kwargs)
            else:
                result = list_method(**kwargs)
        except client.ApiException as e:
            raise self._translate(e, "list", kind, label_selector or "*", namespace) from e
        return [self._to_dict(kind, item) for item in result.items]
