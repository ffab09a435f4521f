"""
Install, mutate and tear down the ingress addon across node pools.

The addon is split into cluster-shared resources (namespace, RBAC, service
accounts, config) that exist once per cluster, and pool-scoped resources
(deployments, services, webhook configuration, certificate Jobs) that exist
once per node pool and carry the pool label.

Operations here are one-shot imperative sequences, not a reconciliation
loop. Each one is fail-fast: the first failing step aborts the sequence and
its error is raised unchanged. Create steps treat "already exists" as done and
delete steps treat "not found" as done, so re-running a sequence after a
partial failure converges.

Callers must serialize operations on the same pool, and on the shared
resources; nothing here coordinates concurrent writers.
"""
import copy
import logging
import threading
import time
from typing import Any, Dict, List, Optional

from ..errors import (
    AddonError,
    AlreadyExistsError,
    NotFoundError,
    RecreateTimeout,
    RenderError,
)
from . import const
from .client import RemoteObjectClient
from .owner import ManagerIdentity, OwnerReference, resolve_owner_reference
from .scope import PoolScope
from .sequence import Sequence, SequenceResult, Step
from .templates import TemplateResolver

logger = logging.getLogger(__name__)

DEFAULT_SETTLE_DELAY = 3.0
DEFAULT_RECREATE_TIMEOUT = 60.0
DEFAULT_POLL_INTERVAL = 1.0

# Propagation policy used when a Job's pods must go with it.
FORCE_CLEANUP_PROPAGATION = "Background"

COMMON_INSTALL_ORDER = [
    const.CONTROLLER_NAMESPACE,
    const.CONTROLLER_CLUSTER_ROLE,
    const.ADMISSION_WEBHOOK_CLUSTER_ROLE,
    const.CONTROLLER_CLUSTER_ROLE_BINDING,
    const.ADMISSION_WEBHOOK_CLUSTER_ROLE_BINDING,
    const.CONTROLLER_ROLE,
    const.ADMISSION_WEBHOOK_ROLE,
    const.CONTROLLER_ROLE_BINDING,
    const.ADMISSION_WEBHOOK_ROLE_BINDING,
    const.CONTROLLER_SERVICE_ACCOUNT,
    const.ADMISSION_WEBHOOK_SERVICE_ACCOUNT,
    const.CONTROLLER_CONFIG_MAP,
]

# Consumers go before what they reference; the namespace goes last so the
# namespaced objects can still be deleted explicitly.
COMMON_UNINSTALL_ORDER = [
    const.CONTROLLER_CONFIG_MAP,
    const.CONTROLLER_ROLE_BINDING,
    const.ADMISSION_WEBHOOK_ROLE_BINDING,
    const.CONTROLLER_ROLE,
    const.ADMISSION_WEBHOOK_ROLE,
    const.CONTROLLER_CLUSTER_ROLE_BINDING,
    const.ADMISSION_WEBHOOK_CLUSTER_ROLE_BINDING,
    const.CONTROLLER_CLUSTER_ROLE,
    const.ADMISSION_WEBHOOK_CLUSTER_ROLE,
    const.CONTROLLER_SERVICE_ACCOUNT,
    const.ADMISSION_WEBHOOK_SERVICE_ACCOUNT,
    const.CONTROLLER_NAMESPACE,
]

WEBHOOK_JOBS = [const.ADMISSION_WEBHOOK_JOB, const.ADMISSION_WEBHOOK_JOB_PATCH]


class IngressAddonOrchestrator:
    """
    Sequences create/update/delete calls for the ingress addon.

    Args:
        client: Remote object client used for every API call.
        resolver: Template resolver; defaults to the built-in manifests.
        namespace: Namespace holding every namespaced addon object.
        manager: Identity of the object the shared resources are owned by.
        settle_delay: Minimum wait between deleting and recreating the
            certificate Jobs.
        recreate_timeout: Upper bound on waiting for deleted Jobs to vanish.
        poll_interval: Pause between absence checks while waiting.
        logger: Logger for step outcomes.
    """

    def __init__(
        self,
        client: RemoteObjectClient,
        resolver: Optional[TemplateResolver] = None,
        *,
        namespace: str = const.NAMESPACE,
        manager: Optional[ManagerIdentity] = None,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        recreate_timeout: float = DEFAULT_RECREATE_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        logger: logging.Logger = logger,
    ):
        self.client = client
        self.resolver = resolver or TemplateResolver()
        self.namespace = namespace
        self.manager = manager or ManagerIdentity()
        self.settle_delay = settle_delay
        self.recreate_timeout = recreate_timeout
        self.poll_interval = poll_interval
        self.logger = logger

    @classmethod
    def from_config(
        cls,
        client: RemoteObjectClient,
        config,
        logger: logging.Logger = logger,
    ) -> "IngressAddonOrchestrator":
        return cls(
            client,
            namespace=config.namespace,
            manager=ManagerIdentity(
                kind=config.manager_kind,
                name=config.manager_name,
                namespace=config.manager_namespace,
            ),
            settle_delay=config.settle_delay,
            recreate_timeout=config.recreate_timeout,
            poll_interval=config.poll_interval,
            logger=logger,
        )

    # -- primitives -----------------------------------------------------

    def _params(self, scope: Optional[PoolScope] = None, **extra: Any) -> Dict[str, Any]:
        params: Dict[str, Any] = {"namespace": self.namespace}
        if scope is not None:
            params["pool_name"] = scope.pool_name
        params.update(extra)
        return params

    def _namespace_for(self, template_id: str) -> Optional[str]:
        return self.namespace if self.resolver.descriptor(template_id).namespaced else None

    def _check_scope(self, template_id: str, scope: Optional[PoolScope]) -> None:
        """Pool templates need a scope; cluster-shared ones must not get one."""
        shared = self.resolver.descriptor(template_id).cluster_shared
        if shared and scope is not None:
            raise RenderError(f"Cluster-shared template '{template_id}' cannot be pool scoped")
        if not shared and scope is None:
            raise RenderError(f"Pool template '{template_id}' requires a pool scope")

    def _create(
        self,
        template_id: str,
        params: Dict[str, Any],
        owner_ref: Optional[OwnerReference] = None,
        scope: Optional[PoolScope] = None,
    ) -> None:
        self._check_scope(template_id, scope)
        manifest = self.resolver.render(template_id, params)
        if scope is not None:
            scope.apply(manifest)
        if owner_ref is not None:
            owner_ref.attach(manifest)

        kind = manifest["kind"]
        name = manifest["metadata"]["name"]
        try:
            self.client.create(manifest)
        except AlreadyExistsError:
            self.logger.info(f"{kind} '{name}' already exists, skipping.")
            return
        self.logger.info(f"{kind} '{name}' created.")

    def _delete(self, template_id: str, params: Dict[str, Any]) -> None:
        self._check_scope(template_id, None)
        manifest = self.resolver.render(template_id, params)
        kind = manifest["kind"]
        name = manifest["metadata"]["name"]
        try:
            self.client.delete(kind, name, self._namespace_for(template_id))
        except NotFoundError:
            self.logger.info(f"{kind} '{name}' already deleted.")
            return
        self.logger.info(f"{kind} '{name}' deleted.")

    def _find_scoped(
        self, template_id: str, scope: PoolScope
    ) -> Optional[Dict[str, Any]]:
        """The object of ``template_id`` carrying the pool label, if present."""
        self._check_scope(template_id, scope)
        manifest = self.resolver.render(template_id, self._params(scope))
        kind = manifest["kind"]
        name = manifest["metadata"]["name"]
        for obj in self.client.list(
            kind, self._namespace_for(template_id), label_selector=scope.selector
        ):
            if obj["metadata"]["name"] == name and scope.matches(obj):
                return obj
        return None

    def _delete_scoped(
        self,
        template_id: str,
        scope: PoolScope,
        propagation_policy: Optional[str] = None,
    ) -> None:
        obj = self._find_scoped(template_id, scope)
        descriptor = self.resolver.descriptor(template_id)
        if obj is None:
            self.logger.info(
                f"{descriptor.kind} for pool '{scope.pool_name}' not found, nothing to delete."
            )
            return
        name = obj["metadata"]["name"]
        try:
            self.client.delete(
                descriptor.kind,
                name,
                self._namespace_for(template_id),
                propagation_policy=propagation_policy,
            )
        except NotFoundError:
            self.logger.info(f"{descriptor.kind} '{name}' already deleted.")
            return
        self.logger.info(f"{descriptor.kind} '{name}' deleted.")

    def _require_scoped(self, template_id: str, scope: PoolScope) -> Dict[str, Any]:
        obj = self._find_scoped(template_id, scope)
        if obj is None:
            descriptor = self.resolver.descriptor(template_id)
            manifest = self.resolver.render(template_id, self._params(scope))
            raise NotFoundError(
                descriptor.kind, manifest["metadata"]["name"], self._namespace_for(template_id)
            )
        return copy.deepcopy(obj)

    def _update_deployment(
        self,
        template_id: str,
        scope: PoolScope,
        replicas: Optional[int] = None,
        image: str = "",
    ) -> None:
        """Update replicas and/or image in place; an empty image means unchanged."""
        deployment = self._require_scoped(template_id, scope)
        if replicas is not None:
            deployment["spec"]["replicas"] = replicas
        if image:
            deployment["spec"]["template"]["spec"]["containers"][0]["image"] = image
        self.client.update(deployment)
        self.logger.info(
            f"Deployment '{deployment['metadata']['name']}' updated "
            f"(replicas={replicas}, image={image or 'unchanged'})."
        )

    def _update_service_external_ips(
        self, scope: PoolScope, external_ips: Optional[List[str]]
    ) -> None:
        service = self._require_scoped(const.CONTROLLER_SERVICE, scope)
        if external_ips:
            service["spec"]["externalIPs"] = list(external_ips)
        else:
            service["spec"].pop("externalIPs", None)
        self.client.update(service)
        self.logger.info(
            f"Service '{service['metadata']['name']}' external IPs set to {external_ips or []}."
        )

    def _execute(self, name: str, steps: List[Step]) -> SequenceResult:
        return Sequence(name, steps, logger=self.logger).execute()

    # -- owner reference -------------------------------------------------

    def resolve_owner_reference(self) -> OwnerReference:
        return resolve_owner_reference(self.client, self.manager, logger=self.logger)

    # -- cluster-shared resources ----------------------------------------

    def common_install_steps(self, owner_ref: OwnerReference) -> List[Step]:
        params = self._params()
        return [
            Step(
                f"create {template_id}",
                lambda template_id=template_id: self._create(template_id, params, owner_ref),
            )
            for template_id in COMMON_INSTALL_ORDER
        ]

    def common_uninstall_steps(self) -> List[Step]:
        params = self._params()
        return [
            Step(
                f"delete {template_id}",
                lambda template_id=template_id: self._delete(template_id, params),
            )
            for template_id in COMMON_UNINSTALL_ORDER
        ]

    def install_common_resources(self) -> SequenceResult:
        """Create the resources shared by every pool, owned by the manager."""
        owner_ref = self.resolve_owner_reference()
        if owner_ref.is_zero:
            self.logger.warning(
                "Manager owner reference could not be resolved; shared resources "
                "will not be garbage collected with the manager."
            )
        return self._execute("install common resources", self.common_install_steps(owner_ref))

    def uninstall_common_resources(self) -> SequenceResult:
        return self._execute("uninstall common resources", self.common_uninstall_steps())

    # -- pool-scoped resources -------------------------------------------

    def pool_install_steps(
        self,
        pool_name: str,
        external_ips: Optional[List[str]],
        controller_image: str,
        webhook_image: str,
        replicas: int,
        owner_ref: Optional[OwnerReference] = None,
    ) -> List[Step]:
        scope = PoolScope(pool_name)
        return [
            Step(
                "create controller deployment",
                lambda: self._create(
                    const.CONTROLLER_DEPLOYMENT,
                    self._params(scope, image=controller_image, replicas=replicas),
                    owner_ref,
                    scope,
                ),
            ),
            # The webhook runs the controller image and carries no owner
            # reference; it goes away with its pool only.
            Step(
                "create admission webhook deployment",
                lambda: self._create(
                    const.ADMISSION_WEBHOOK_DEPLOYMENT,
                    self._params(scope, image=controller_image, replicas=const.WEBHOOK_REPLICAS),
                    None,
                    scope,
                ),
            ),
            Step(
                "create controller service",
                lambda: self._create(
                    const.CONTROLLER_SERVICE,
                    self._params(scope, external_ips=external_ips),
                    None,
                    scope,
                ),
            ),
            Step(
                "create admission webhook service",
                lambda: self._create(
                    const.ADMISSION_WEBHOOK_SERVICE, self._params(scope), None, scope
                ),
            ),
            Step(
                "create validating webhook configuration",
                lambda: self._create(
                    const.VALIDATING_WEBHOOK_CONFIGURATION, self._params(scope), owner_ref, scope
                ),
            ),
            *self._job_create_steps(scope, webhook_image),
        ]

    def _job_create_steps(self, scope: PoolScope, image: str) -> List[Step]:
        return [
            Step(
                f"create {template_id}",
                lambda template_id=template_id: self._create(
                    template_id, self._params(scope, image=image), None, scope
                ),
            )
            for template_id in WEBHOOK_JOBS
        ]

    def _job_delete_steps(self, scope: PoolScope, force_cleanup: bool) -> List[Step]:
        policy = FORCE_CLEANUP_PROPAGATION if force_cleanup else None
        return [
            Step(
                f"delete {template_id}",
                lambda template_id=template_id: self._delete_scoped(
                    template_id, scope, propagation_policy=policy
                ),
            )
            for template_id in WEBHOOK_JOBS
        ]

    def pool_uninstall_steps(self, pool_name: str, force_cleanup: bool = False) -> List[Step]:
        scope = PoolScope(pool_name)
        return [
            Step(
                f"delete {template_id}",
                lambda template_id=template_id: self._delete_scoped(template_id, scope),
            )
            for template_id in (
                const.CONTROLLER_DEPLOYMENT,
                const.ADMISSION_WEBHOOK_DEPLOYMENT,
                const.CONTROLLER_SERVICE,
                const.ADMISSION_WEBHOOK_SERVICE,
                const.VALIDATING_WEBHOOK_CONFIGURATION,
            )
        ] + self._job_delete_steps(scope, force_cleanup)

    def install_pool_resources(
        self,
        pool_name: str,
        external_ips: Optional[List[str]],
        controller_image: str,
        webhook_image: str,
        replicas: int,
        owner_ref: Optional[OwnerReference] = None,
    ) -> SequenceResult:
        """Create one pool's controller, webhook and certificate Jobs."""
        return self._execute(
            f"install pool '{pool_name}' resources",
            self.pool_install_steps(
                pool_name, external_ips, controller_image, webhook_image, replicas, owner_ref
            ),
        )

    def uninstall_pool_resources(
        self, pool_name: str, force_cleanup: bool = False
    ) -> SequenceResult:
        """
        Delete one pool's resources.

        ``force_cleanup`` only affects the certificate Jobs: when set, their
        pods are removed with them instead of being left to normal GC.
        """
        return self._execute(
            f"uninstall pool '{pool_name}' resources",
            self.pool_uninstall_steps(pool_name, force_cleanup),
        )

    # -- scaling and updates ---------------------------------------------

    def scale_controller_deployment(self, pool_name: str, replicas: int) -> None:
        if replicas < 0:
            raise ValueError(f"replicas must be non-negative, got {replicas}")
        scope = PoolScope(pool_name)
        try:
            self._update_deployment(const.CONTROLLER_DEPLOYMENT, scope, replicas=replicas)
        except AddonError as e:
            self.logger.error(f"Failed to scale controller for pool '{pool_name}': {e}")
            raise

    def update_controller_deployment(self, pool_name: str, replicas: int, image: str) -> SequenceResult:
        """Set controller replicas and image; the webhook follows the image at one replica."""
        if replicas < 0:
            raise ValueError(f"replicas must be non-negative, got {replicas}")
        scope = PoolScope(pool_name)
        return self._execute(
            f"update pool '{pool_name}' controller",
            [
                Step(
                    "update controller deployment",
                    lambda: self._update_deployment(
                        const.CONTROLLER_DEPLOYMENT, scope, replicas=replicas, image=image
                    ),
                ),
                Step(
                    "update admission webhook deployment",
                    lambda: self._update_deployment(
                        const.ADMISSION_WEBHOOK_DEPLOYMENT,
                        scope,
                        replicas=const.WEBHOOK_REPLICAS,
                        image=image,
                    ),
                ),
            ],
        )

    def update_service_external_ips(
        self, pool_name: str, external_ips: Optional[List[str]]
    ) -> None:
        scope = PoolScope(pool_name)
        try:
            self._update_service_external_ips(scope, external_ips)
        except AddonError as e:
            self.logger.error(f"Failed to update external IPs for pool '{pool_name}': {e}")
            raise

    # -- certificate Job recreation --------------------------------------

    def _wait_for_jobs_absent(
        self, scope: PoolScope, cancel: Optional[threading.Event] = None
    ) -> None:
        """
        Wait the settle delay, then poll until both Jobs are gone.

        Raises:
            RecreateTimeout: If the Jobs are still present at the deadline or
                the wait is cancelled.
        """
        waiter = cancel or threading.Event()
        deadline = time.monotonic() + max(self.recreate_timeout, self.settle_delay)

        if waiter.wait(self.settle_delay):
            raise RecreateTimeout(f"Recreation of pool '{scope.pool_name}' Jobs was cancelled")

        while True:
            remaining = [
                template_id
                for template_id in WEBHOOK_JOBS
                if self._find_scoped(template_id, scope) is not None
            ]
            if not remaining:
                return
            if time.monotonic() >= deadline:
                raise RecreateTimeout(
                    f"Jobs {remaining} for pool '{scope.pool_name}' still present "
                    f"after {self.recreate_timeout}s"
                )
            self.logger.debug(f"Waiting for {remaining} to be deleted...")
            if waiter.wait(self.poll_interval):
                raise RecreateTimeout(
                    f"Recreation of pool '{scope.pool_name}' Jobs was cancelled"
                )

    def recreate_webhook_jobs(
        self,
        pool_name: str,
        image: str,
        cancel: Optional[threading.Event] = None,
    ) -> SequenceResult:
        """
        Delete the certificate Jobs, wait for them to go away, then create
        them again with ``image``.
        """
        scope = PoolScope(pool_name)
        steps = self._job_delete_steps(scope, force_cleanup=False)
        steps.append(
            Step("wait for jobs to be deleted", lambda: self._wait_for_jobs_absent(scope, cancel))
        )
        steps.extend(self._job_create_steps(scope, image))
        return self._execute(f"recreate pool '{pool_name}' webhook jobs", steps)

    # -- status -----------------------------------------------------------

    def is_ingress_namespace_ready(self) -> bool:
        try:
            namespace = self.client.get("Namespace", self.namespace)
        except AddonError:
            return False
        return (namespace.get("status") or {}).get("phase") == "Active"
