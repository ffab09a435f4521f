import copy
from unittest.mock import MagicMock

import pytest

from nodepool_ingress.addon import const
from nodepool_ingress.addon.orchestrator import (
    COMMON_INSTALL_ORDER,
    FORCE_CLEANUP_PROPAGATION,
    IngressAddonOrchestrator,
)
from nodepool_ingress.addon.owner import ManagerIdentity, OwnerReference
from nodepool_ingress.addon.scope import PoolScope
from nodepool_ingress.errors import NotFoundError, RenderError, StoreError
from tests.conftest import CERTGEN_IMAGE, CONTROLLER_IMAGE, TEST_NAMESPACE

SHARED_KINDS = [
    ("Namespace", "ingress-nginx"),
    ("ClusterRole", "ingress-nginx"),
    ("ClusterRole", "ingress-nginx-admission"),
    ("ClusterRoleBinding", "ingress-nginx"),
    ("ClusterRoleBinding", "ingress-nginx-admission"),
    ("Role", "ingress-nginx"),
    ("Role", "ingress-nginx-admission"),
    ("RoleBinding", "ingress-nginx"),
    ("RoleBinding", "ingress-nginx-admission"),
    ("ServiceAccount", "ingress-nginx"),
    ("ServiceAccount", "ingress-nginx-admission"),
    ("ConfigMap", "ingress-nginx-controller"),
]


def _install_pool(orchestrator, pool, external_ips=None, replicas=2, owner_ref=None):
    return orchestrator.install_pool_resources(
        pool, external_ips, CONTROLLER_IMAGE, CERTGEN_IMAGE, replicas, owner_ref
    )


def _pool_objects(fake_client, pool):
    return [
        obj
        for obj in fake_client.objects.values()
        if (obj["metadata"].get("labels") or {}).get(const.POOL_LABEL_KEY) == pool
    ]


class TestCommonResources:
    def test_install_creates_shared_resources_in_order(self, orchestrator, managed_client):
        result = orchestrator.install_common_resources()

        assert result.ok
        assert result.completed == len(COMMON_INSTALL_ORDER)
        assert managed_client.verbs("create") == SHARED_KINDS

    def test_install_attaches_manager_owner_reference(self, orchestrator, managed_client):
        orchestrator.install_common_resources()

        for kind, name in SHARED_KINDS:
            namespace = None if kind in ("Namespace", "ClusterRole", "ClusterRoleBinding") else TEST_NAMESPACE
            obj = managed_client.find(kind, name, namespace)
            refs = obj["metadata"]["ownerReferences"]
            assert len(refs) == 1
            assert refs[0]["uid"] == "manager-uid-1234"
            assert refs[0]["controller"] is True
            assert refs[0]["blockOwnerDeletion"] is True

    def test_install_without_manager_creates_unowned_resources(self, fake_client):
        logger = MagicMock()
        orchestrator = IngressAddonOrchestrator(fake_client, logger=logger)

        result = orchestrator.install_common_resources()

        assert result.ok
        assert len(fake_client.verbs("create")) == len(SHARED_KINDS)
        assert all("ownerReferences" not in o["metadata"] for o in fake_client.objects.values())
        logger.warning.assert_called()

    def test_custom_manager_identity_is_used(self, fake_client):
        fake_client.add(
            {
                "apiVersion": "apps/v1",
                "kind": "Deployment",
                "metadata": {"name": "manager", "namespace": "kube-system", "uid": "dep-uid"},
            }
        )
        orchestrator = IngressAddonOrchestrator(
            fake_client,
            manager=ManagerIdentity(kind="Deployment", name="manager", namespace="kube-system"),
        )

        orchestrator.install_common_resources()

        namespace = fake_client.find("Namespace", "ingress-nginx")
        assert namespace["metadata"]["ownerReferences"][0]["kind"] == "Deployment"
        assert namespace["metadata"]["ownerReferences"][0]["uid"] == "dep-uid"

    def test_install_is_idempotent(self, orchestrator, managed_client):
        orchestrator.install_common_resources()
        snapshot = dict(managed_client.objects)

        result = orchestrator.install_common_resources()

        assert result.ok
        assert managed_client.objects == snapshot

    def test_install_stops_at_first_failure(self, orchestrator, managed_client):
        error = StoreError("api unavailable", status=503)
        managed_client.failures[("create", "ClusterRoleBinding", "ingress-nginx")] = error

        with pytest.raises(StoreError) as exc_info:
            orchestrator.install_common_resources()

        assert exc_info.value is error
        assert managed_client.verbs("create") == SHARED_KINDS[:4]
        assert managed_client.find("Role", "ingress-nginx", TEST_NAMESPACE) is None

    def test_rerun_after_partial_failure_completes(self, orchestrator, managed_client):
        key = ("create", "Role", "ingress-nginx")
        managed_client.failures[key] = StoreError("transient")
        with pytest.raises(StoreError):
            orchestrator.install_common_resources()

        del managed_client.failures[key]
        orchestrator.install_common_resources()

        for kind, name in SHARED_KINDS:
            assert any(k == kind and n == name for k, _, n in managed_client.objects)

    def test_reinstall_after_uninstall_resolves_fresh_owner(self, orchestrator, managed_client):
        orchestrator.install_common_resources()
        orchestrator.uninstall_common_resources()
        managed_client.find("ClusterRole", "yurt-app-manager-role")["metadata"]["uid"] = "new-uid"

        orchestrator.install_common_resources()

        for kind, name in SHARED_KINDS:
            namespace = None if kind in ("Namespace", "ClusterRole", "ClusterRoleBinding") else TEST_NAMESPACE
            refs = managed_client.find(kind, name, namespace)["metadata"]["ownerReferences"]
            assert [ref["uid"] for ref in refs] == ["new-uid"]

    def test_uninstall_deletes_dependents_before_namespace(self, orchestrator, managed_client):
        orchestrator.install_common_resources()

        result = orchestrator.uninstall_common_resources()

        assert result.ok
        deleted = managed_client.verbs("delete")
        assert deleted[0] == ("ConfigMap", "ingress-nginx-controller")
        assert deleted[-1] == ("Namespace", "ingress-nginx")
        assert deleted.index(("RoleBinding", "ingress-nginx")) < deleted.index(
            ("Role", "ingress-nginx")
        )
        assert deleted.index(("ClusterRoleBinding", "ingress-nginx")) < deleted.index(
            ("ClusterRole", "ingress-nginx")
        )
        assert list(managed_client.objects) == [
            ("ClusterRole", None, "yurt-app-manager-role")
        ]

    def test_uninstall_on_empty_cluster_succeeds(self, orchestrator, fake_client):
        result = orchestrator.uninstall_common_resources()

        assert result.ok
        assert len(fake_client.verbs("delete")) == len(SHARED_KINDS)

    def test_uninstall_propagates_store_errors(self, orchestrator, managed_client):
        orchestrator.install_common_resources()
        managed_client.failures[("delete", "Role", "ingress-nginx")] = StoreError("forbidden", 403)

        with pytest.raises(StoreError):
            orchestrator.uninstall_common_resources()

        assert managed_client.find("Namespace", "ingress-nginx") is not None

    def test_namespace_ready(self, orchestrator, fake_client):
        assert orchestrator.is_ingress_namespace_ready() is False

        fake_client.add(
            {
                "apiVersion": "v1",
                "kind": "Namespace",
                "metadata": {"name": TEST_NAMESPACE},
                "status": {"phase": "Terminating"},
            }
        )
        assert orchestrator.is_ingress_namespace_ready() is False

        fake_client.find("Namespace", TEST_NAMESPACE)["status"]["phase"] = "Active"
        assert orchestrator.is_ingress_namespace_ready() is True


class TestPoolResources:
    def test_install_creates_pool_resources_in_order(self, orchestrator, fake_client):
        result = _install_pool(orchestrator, "hangzhou", ["192.168.0.10"])

        assert result.ok
        assert result.completed == 7
        assert fake_client.verbs("create") == [
            ("Deployment", "hangzhou-ingress-nginx-controller"),
            ("Deployment", "hangzhou-ingress-nginx-admission"),
            ("Service", "hangzhou-ingress-nginx-controller"),
            ("Service", "hangzhou-ingress-nginx-admission"),
            ("ValidatingWebhookConfiguration", "hangzhou-ingress-nginx-admission"),
            ("Job", "hangzhou-ingress-nginx-admission-create"),
            ("Job", "hangzhou-ingress-nginx-admission-patch"),
        ]

    def test_every_pool_object_carries_pool_label(self, orchestrator, fake_client):
        _install_pool(orchestrator, "hangzhou")

        assert len(_pool_objects(fake_client, "hangzhou")) == 7
        controller = fake_client.find(
            "Deployment", "hangzhou-ingress-nginx-controller", TEST_NAMESPACE
        )
        template_labels = controller["spec"]["template"]["metadata"]["labels"]
        assert template_labels[const.POOL_LABEL_KEY] == "hangzhou"

    def test_install_applies_images_replicas_and_external_ips(self, orchestrator, fake_client):
        _install_pool(orchestrator, "hangzhou", ["10.0.0.1"], replicas=3)

        controller = fake_client.find("Deployment", "hangzhou-ingress-nginx-controller", TEST_NAMESPACE)
        webhook = fake_client.find("Deployment", "hangzhou-ingress-nginx-admission", TEST_NAMESPACE)
        service = fake_client.find("Service", "hangzhou-ingress-nginx-controller", TEST_NAMESPACE)
        job = fake_client.find("Job", "hangzhou-ingress-nginx-admission-create", TEST_NAMESPACE)

        assert controller["spec"]["replicas"] == 3
        assert webhook["spec"]["replicas"] == 1
        assert webhook["spec"]["template"]["spec"]["containers"][0]["image"] == CONTROLLER_IMAGE
        assert service["spec"]["externalIPs"] == ["10.0.0.1"]
        assert job["spec"]["template"]["spec"]["containers"][0]["image"] == CERTGEN_IMAGE

    def test_owner_reference_only_on_controller_and_webhook_configuration(
        self, orchestrator, fake_client
    ):
        owner_ref = OwnerReference(
            api_version="rbac.authorization.k8s.io/v1",
            kind="ClusterRole",
            name="yurt-app-manager-role",
            uid="manager-uid-1234",
        )
        _install_pool(orchestrator, "hangzhou", owner_ref=owner_ref)

        owned = sorted(
            (obj["kind"], obj["metadata"]["name"])
            for obj in fake_client.objects.values()
            if obj["metadata"].get("ownerReferences")
        )
        assert owned == [
            ("Deployment", "hangzhou-ingress-nginx-controller"),
            ("ValidatingWebhookConfiguration", "hangzhou-ingress-nginx-admission"),
        ]

    def test_install_is_idempotent(self, orchestrator, fake_client):
        _install_pool(orchestrator, "hangzhou")
        snapshot = dict(fake_client.objects)

        assert _install_pool(orchestrator, "hangzhou").ok
        assert fake_client.objects == snapshot

    def test_install_stops_at_failed_service(self, orchestrator, fake_client):
        fake_client.failures[("create", "Service", "hangzhou-ingress-nginx-controller")] = (
            StoreError("quota exceeded", status=403)
        )

        with pytest.raises(StoreError):
            _install_pool(orchestrator, "hangzhou")

        assert [kind for kind, _ in fake_client.verbs("create")] == [
            "Deployment",
            "Deployment",
            "Service",
        ]
        assert fake_client.of_kind("Job") == []

    def test_install_leaves_other_pools_untouched(self, orchestrator, fake_client):
        _install_pool(orchestrator, "beijing", ["10.0.1.1"])
        beijing_before = copy.deepcopy(_pool_objects(fake_client, "beijing"))
        fake_client.calls.clear()

        _install_pool(orchestrator, "hangzhou", ["10.0.0.1"])

        assert _pool_objects(fake_client, "beijing") == beijing_before
        assert all(not name.startswith("beijing-") for _, _, name in fake_client.calls)

    def test_uninstall_removes_only_that_pool(self, orchestrator, fake_client):
        _install_pool(orchestrator, "hangzhou")
        _install_pool(orchestrator, "beijing")
        beijing_before = _pool_objects(fake_client, "beijing")

        result = orchestrator.uninstall_pool_resources("hangzhou")

        assert result.ok
        assert _pool_objects(fake_client, "hangzhou") == []
        assert _pool_objects(fake_client, "beijing") == beijing_before

    def test_uninstall_then_install_round_trip(self, orchestrator, fake_client):
        _install_pool(orchestrator, "hangzhou", ["10.0.0.1"])
        before = {k: o["spec"] for k, o in fake_client.objects.items() if "spec" in o}

        orchestrator.uninstall_pool_resources("hangzhou")
        _install_pool(orchestrator, "hangzhou", ["10.0.0.1"])

        after = {k: o["spec"] for k, o in fake_client.objects.items() if "spec" in o}
        assert after == before
        assert len(_pool_objects(fake_client, "hangzhou")) == 7

    def test_uninstall_ignores_same_named_object_without_pool_label(
        self, orchestrator, fake_client
    ):
        fake_client.add(
            {
                "apiVersion": "apps/v1",
                "kind": "Deployment",
                "metadata": {
                    "name": "hangzhou-ingress-nginx-controller",
                    "namespace": TEST_NAMESPACE,
                    "labels": {"app": "someone-else"},
                },
            }
        )

        orchestrator.uninstall_pool_resources("hangzhou")

        assert fake_client.find(
            "Deployment", "hangzhou-ingress-nginx-controller", TEST_NAMESPACE
        ) is not None
        assert ("Deployment", "hangzhou-ingress-nginx-controller") not in fake_client.verbs("delete")

    def test_uninstall_of_absent_pool_succeeds(self, orchestrator, fake_client):
        assert orchestrator.uninstall_pool_resources("nowhere").ok
        assert fake_client.verbs("delete") == []

    def test_force_cleanup_only_changes_job_propagation(self, orchestrator, fake_client):
        _install_pool(orchestrator, "hangzhou")

        orchestrator.uninstall_pool_resources("hangzhou", force_cleanup=True)

        for (kind, _), policy in fake_client.delete_options.items():
            if kind == "Job":
                assert policy == FORCE_CLEANUP_PROPAGATION
            else:
                assert policy is None

    def test_uninstall_without_force_cleanup_uses_default_propagation(
        self, orchestrator, fake_client
    ):
        _install_pool(orchestrator, "hangzhou")

        orchestrator.uninstall_pool_resources("hangzhou")

        assert set(fake_client.delete_options.values()) == {None}

    def test_empty_pool_name_is_rejected(self, orchestrator):
        with pytest.raises(ValueError):
            _install_pool(orchestrator, "")


class TestMutations:
    @pytest.fixture(autouse=True)
    def _installed(self, orchestrator):
        _install_pool(orchestrator, "hangzhou", ["10.0.0.1"])
        _install_pool(orchestrator, "beijing", ["10.0.1.1"])

    def _get(self, fake_client, kind, name):
        return fake_client.find(kind, name, TEST_NAMESPACE)

    def test_scale_sets_controller_replicas_only(self, orchestrator, fake_client):
        orchestrator.scale_controller_deployment("hangzhou", 5)

        controller = self._get(fake_client, "Deployment", "hangzhou-ingress-nginx-controller")
        assert controller["spec"]["replicas"] == 5
        webhook = self._get(fake_client, "Deployment", "hangzhou-ingress-nginx-admission")
        assert webhook["spec"]["replicas"] == 1
        assert controller["spec"]["template"]["spec"]["containers"][0]["image"] == CONTROLLER_IMAGE
        assert self._get(fake_client, "Deployment", "beijing-ingress-nginx-controller")[
            "spec"
        ]["replicas"] == 2

    def test_scale_to_zero(self, orchestrator, fake_client):
        orchestrator.scale_controller_deployment("hangzhou", 0)

        controller = self._get(fake_client, "Deployment", "hangzhou-ingress-nginx-controller")
        assert controller["spec"]["replicas"] == 0

    def test_scale_rejects_negative_replicas(self, orchestrator, fake_client):
        with pytest.raises(ValueError):
            orchestrator.scale_controller_deployment("hangzhou", -1)
        assert fake_client.verbs("update") == []

    def test_scale_missing_pool_raises_not_found(self, orchestrator, fake_client):
        with pytest.raises(NotFoundError) as exc_info:
            orchestrator.scale_controller_deployment("shanghai", 2)
        assert exc_info.value.kind == "Deployment"
        assert fake_client.verbs("update") == []

    def test_update_sets_image_on_both_deployments(self, orchestrator, fake_client):
        result = orchestrator.update_controller_deployment("hangzhou", 4, "controller:v2")

        assert result.ok
        controller = self._get(fake_client, "Deployment", "hangzhou-ingress-nginx-controller")
        webhook = self._get(fake_client, "Deployment", "hangzhou-ingress-nginx-admission")
        assert controller["spec"]["replicas"] == 4
        assert webhook["spec"]["replicas"] == 1
        for deployment in (controller, webhook):
            assert deployment["spec"]["template"]["spec"]["containers"][0]["image"] == "controller:v2"
        assert fake_client.verbs("update") == [
            ("Deployment", "hangzhou-ingress-nginx-controller"),
            ("Deployment", "hangzhou-ingress-nginx-admission"),
        ]

    def test_update_with_empty_image_keeps_current_image(self, orchestrator, fake_client):
        orchestrator.update_controller_deployment("hangzhou", 3, "")

        controller = self._get(fake_client, "Deployment", "hangzhou-ingress-nginx-controller")
        assert controller["spec"]["template"]["spec"]["containers"][0]["image"] == CONTROLLER_IMAGE
        assert controller["spec"]["replicas"] == 3

    def test_update_stops_when_webhook_missing(self, orchestrator, fake_client):
        del fake_client.objects[("Deployment", TEST_NAMESPACE, "hangzhou-ingress-nginx-admission")]

        with pytest.raises(NotFoundError):
            orchestrator.update_controller_deployment("hangzhou", 3, "controller:v2")

        assert fake_client.verbs("update") == [("Deployment", "hangzhou-ingress-nginx-controller")]

    def test_update_external_ips(self, orchestrator, fake_client):
        orchestrator.update_service_external_ips("hangzhou", ["10.0.0.2", "10.0.0.3"])

        service = self._get(fake_client, "Service", "hangzhou-ingress-nginx-controller")
        other = self._get(fake_client, "Service", "beijing-ingress-nginx-controller")
        assert service["spec"]["externalIPs"] == ["10.0.0.2", "10.0.0.3"]
        assert other["spec"]["externalIPs"] == ["10.0.1.1"]

    def test_clearing_external_ips_removes_field(self, orchestrator, fake_client):
        orchestrator.update_service_external_ips("hangzhou", [])

        service = self._get(fake_client, "Service", "hangzhou-ingress-nginx-controller")
        assert "externalIPs" not in service["spec"]

    def test_update_external_ips_missing_service(self, orchestrator):
        with pytest.raises(NotFoundError):
            orchestrator.update_service_external_ips("shanghai", ["10.0.0.9"])


def test_from_config_copies_settings(fake_client):
    config = MagicMock(
        namespace="custom-ns",
        manager_kind="Deployment",
        manager_name="yurt-manager",
        manager_namespace="kube-system",
        settle_delay=1.5,
        recreate_timeout=30.0,
        poll_interval=0.5,
    )

    orchestrator = IngressAddonOrchestrator.from_config(fake_client, config)

    assert orchestrator.namespace == "custom-ns"
    assert orchestrator.manager == ManagerIdentity(
        kind="Deployment", name="yurt-manager", namespace="kube-system"
    )
    assert orchestrator.settle_delay == 1.5
    assert orchestrator.recreate_timeout == 30.0
    assert orchestrator.poll_interval == 0.5


def test_shared_templates_cannot_be_pool_scoped(orchestrator, fake_client):
    with pytest.raises(RenderError):
        orchestrator._create(
            const.CONTROLLER_CONFIG_MAP, {"namespace": TEST_NAMESPACE}, scope=PoolScope("p")
        )
    assert fake_client.verbs("create") == []


def test_pool_templates_require_a_scope(orchestrator, fake_client):
    with pytest.raises(RenderError):
        orchestrator._create(
            const.CONTROLLER_DEPLOYMENT,
            {"namespace": TEST_NAMESPACE, "pool_name": "p", "image": "img"},
        )
    with pytest.raises(RenderError):
        orchestrator._delete(const.CONTROLLER_DEPLOYMENT, {"namespace": TEST_NAMESPACE, "pool_name": "p"})
    assert fake_client.calls == []
