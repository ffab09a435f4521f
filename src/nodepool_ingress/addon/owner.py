"""
Owner references tying the cluster-shared addon objects to the manager.

Shared objects carry an owner reference to the manager's identity object so
that they are garbage collected when the manager is uninstalled. The lookup
is best effort: the manager may not exist yet on first install.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import kopf

from ..errors import AddonError
from . import const
from .client import RemoteObjectClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ManagerIdentity:
    """Key of the object that owns the cluster-shared resources."""

    kind: str = const.MANAGER_KIND
    name: str = const.MANAGER_NAME
    namespace: Optional[str] = None


@dataclass(frozen=True)
class OwnerReference:
    api_version: str = ""
    kind: str = ""
    name: str = ""
    uid: str = ""
    controller: bool = True
    block_owner_deletion: bool = True

    @classmethod
    def from_object(cls, obj: Mapping[str, Any]) -> "OwnerReference":
        ref = kopf.build_owner_reference(obj, controller=True, block_owner_deletion=True)
        return cls(
            api_version=ref.get("apiVersion") or "",
            kind=ref.get("kind") or "",
            name=ref.get("name") or "",
            uid=ref.get("uid") or "",
            controller=bool(ref.get("controller")),
            block_owner_deletion=bool(ref.get("blockOwnerDeletion")),
        )

    @property
    def is_zero(self) -> bool:
        return not (self.api_version or self.kind or self.name or self.uid)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "name": self.name,
            "uid": self.uid,
            "controller": self.controller,
            "blockOwnerDeletion": self.block_owner_deletion,
        }

    def attach(self, manifest: Dict[str, Any]) -> Dict[str, Any]:
        """
        Append this reference to ``manifest``'s ownerReferences in place.

        A zero-valued reference is not attached: the API server rejects owner
        references without a uid.
        """
        if self.is_zero:
            return manifest
        refs = manifest.setdefault("metadata", {}).setdefault("ownerReferences", [])
        refs.append(self.to_dict())
        return manifest


def owner_reference_for(manager: Optional[Mapping[str, Any]]) -> OwnerReference:
    """Owner reference for a fetched manager object, zero-valued when absent."""
    if not manager:
        return OwnerReference()
    return OwnerReference.from_object(manager)


def resolve_owner_reference(
    client: RemoteObjectClient,
    identity: ManagerIdentity,
    logger: logging.Logger = logger,
) -> OwnerReference:
    """
    Look up the manager object and build the owner reference for it.

    Lookup failures are not fatal: a zero-valued reference is returned and
    resource creation carries on.
    """
    try:
        manager = client.get(identity.kind, identity.name, identity.namespace)
    except AddonError as e:
        logger.warning(f"Failed to get manager {identity.kind} '{identity.name}': {e}")
        return OwnerReference()
    return owner_reference_for(manager)
