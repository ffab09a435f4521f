"""
Errors raised while installing, mutating or tearing down the ingress addon.
"""
from typing import Optional


class AddonError(Exception):
    """Base class for all addon lifecycle errors."""


class LookupFailure(AddonError):
    """A required object could not be found in the cluster."""

    def __init__(self, kind: str, name: str, namespace: Optional[str] = None):
        self.kind = kind
        self.name = name
        self.namespace = namespace
        location = f"{namespace}/{name}" if namespace else name
        super().__init__(f"{kind} '{location}' not found")


NotFoundError = LookupFailure


class AlreadyExistsError(AddonError):
    """An object with the same identity already exists."""

    def __init__(self, kind: str, name: str, namespace: Optional[str] = None):
        self.kind = kind
        self.name = name
        self.namespace = namespace
        location = f"{namespace}/{name}" if namespace else name
        super().__init__(f"{kind} '{location}' already exists")


class InvalidObjectKey(AddonError, ValueError):
    """A kind is unsupported, or its namespace does not fit the kind's scope."""


class ConflictError(AddonError):
    """An update was rejected because the object changed underneath us."""


class TemplateNotFound(AddonError):
    """No manifest builder is registered for the template identifier."""


class RenderError(AddonError):
    """A manifest could not be rendered from the supplied parameters."""


class StoreError(AddonError):
    """Any other failure talking to the Kubernetes API server."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)


class RecreateTimeout(AddonError):
    """Deleted Jobs did not disappear before the recreation deadline."""


class KubernetesConfigurationError(RuntimeError):
    """Raised when the Kubernetes client cannot be configured."""
