from dataclasses import dataclass
from typing import Any, Dict, Mapping

import kopf

from ..utils.kube import format_label_selector
from .const import POOL_LABEL_KEY

# Pod templates inherit the pool label so pods can be selected per pool too.
NESTED_LABEL_PATHS = ("spec.template",)


def key_for(pool_name: str) -> Dict[str, str]:
    """The label pair tagging every object of one pool's addon instance."""
    return {POOL_LABEL_KEY: pool_name}


@dataclass(frozen=True)
class PoolScope:
    pool_name: str

    def __post_init__(self):
        if not self.pool_name:
            raise ValueError("Pool name must be a non-empty string")

    @property
    def labels(self) -> Dict[str, str]:
        return key_for(self.pool_name)

    @property
    def selector(self) -> str:
        return format_label_selector(self.labels)

    def matches(self, obj: Mapping[str, Any]) -> bool:
        labels = (obj.get("metadata") or {}).get("labels") or {}
        return labels.get(POOL_LABEL_KEY) == self.pool_name

    def apply(self, manifest: Dict[str, Any]) -> Dict[str, Any]:
        """Tag ``manifest`` (and its pod template, if any) with the pool label."""
        kopf.label(manifest, self.labels, forced=True, nested=NESTED_LABEL_PATHS)
        return manifest
