"""
In-memory stand-in for the remote object client used by unit tests.
"""
import copy
import uuid
from typing import Any, Dict, List, Optional, Tuple

from nodepool_ingress.errors import AlreadyExistsError, NotFoundError

Key = Tuple[str, Optional[str], str]


def _parse_selector(selector: Optional[str]) -> Dict[str, str]:
    if not selector:
        return {}
    return dict(part.split("=", 1) for part in selector.split(","))


class FakeObjectClient:
    """
    Records every call and keeps objects in a dict keyed by kind/namespace/name.

    Attributes:
        calls: (verb, kind, name) tuples in call order.
        failures: maps (verb, kind, name) to an exception raised on that call.
        linger: number of ``list``/``get`` calls a deleted object stays
            visible for, simulating asynchronous deletion.
    """

    def __init__(self, linger: int = 0):
        self.objects: Dict[Key, Dict[str, Any]] = {}
        self.calls: List[Tuple[str, str, str]] = []
        self.delete_options: Dict[Tuple[str, str], Optional[str]] = {}
        self.failures: Dict[Tuple[str, str, str], Exception] = {}
        self.linger = linger
        self._terminating: Dict[Key, int] = {}

    def _record(self, verb: str, kind: str, name: str) -> None:
        self.calls.append((verb, kind, name))
        failure = self.failures.get((verb, kind, name))
        if failure is not None:
            raise failure

    def _tick(self, key: Key) -> None:
        remaining = self._terminating.get(key)
        if remaining is None:
            return
        if remaining <= 0:
            del self._terminating[key]
            del self.objects[key]
        else:
            self._terminating[key] = remaining - 1

    def add(self, manifest: Dict[str, Any]) -> Dict[str, Any]:
        """Seed an object without recording a call."""
        obj = copy.deepcopy(manifest)
        obj.setdefault("metadata", {}).setdefault("uid", str(uuid.uuid4()))
        obj["metadata"].setdefault("resourceVersion", "1")
        meta = obj["metadata"]
        self.objects[(obj["kind"], meta.get("namespace"), meta["name"])] = obj
        return obj

    def find(self, kind: str, name: str, namespace: Optional[str] = None) -> Optional[Dict[str, Any]]:
        return self.objects.get((kind, namespace, name))

    def of_kind(self, kind: str) -> List[Dict[str, Any]]:
        return [obj for (k, _, _), obj in self.objects.items() if k == kind]

    def verbs(self, verb: str) -> List[Tuple[str, str]]:
        return [(kind, name) for v, kind, name in self.calls if v == verb]

    def get(self, kind: str, name: str, namespace: Optional[str] = None) -> Dict[str, Any]:
        self._record("get", kind, name)
        key = (kind, namespace, name)
        self._tick(key)
        if key not in self.objects:
            raise NotFoundError(kind, name, namespace)
        return copy.deepcopy(self.objects[key])

    def create(self, manifest: Dict[str, Any]) -> Dict[str, Any]:
        kind = manifest["kind"]
        meta = manifest["metadata"]
        self._record("create", kind, meta["name"])
        key = (kind, meta.get("namespace"), meta["name"])
        if key in self.objects:
            raise AlreadyExistsError(kind, meta["name"], meta.get("namespace"))
        return copy.deepcopy(self.add(manifest))

    def update(self, manifest: Dict[str, Any]) -> Dict[str, Any]:
        kind = manifest["kind"]
        meta = manifest["metadata"]
        self._record("update", kind, meta["name"])
        key = (kind, meta.get("namespace"), meta["name"])
        if key not in self.objects:
            raise NotFoundError(kind, meta["name"], meta.get("namespace"))
        obj = copy.deepcopy(manifest)
        obj["metadata"]["resourceVersion"] = str(int(meta.get("resourceVersion", "1")) + 1)
        self.objects[key] = obj
        return copy.deepcopy(obj)

    def delete(
        self,
        kind: str,
        name: str,
        namespace: Optional[str] = None,
        propagation_policy: Optional[str] = None,
    ) -> None:
        self._record("delete", kind, name)
        key = (kind, namespace, name)
        if key not in self.objects or key in self._terminating:
            raise NotFoundError(kind, name, namespace)
        self.delete_options[(kind, name)] = propagation_policy
        if self.linger:
            self._terminating[key] = self.linger
        else:
            del self.objects[key]

    def list(
        self,
        kind: str,
        namespace: Optional[str] = None,
        label_selector: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        self._record("list", kind, label_selector or "")
        for key in [k for k in self._terminating if k[0] == kind]:
            self._tick(key)
        wanted = _parse_selector(label_selector)
        result = []
        for (k, ns, _), obj in self.objects.items():
            if k != kind or ns != namespace:
                continue
            labels = obj["metadata"].get("labels") or {}
            if all(labels.get(lk) == lv for lk, lv in wanted.items()):
                result.append(copy.deepcopy(obj))
        return result
