"""
This file contains shared fixtures for all tests.
"""
import logging
from unittest.mock import MagicMock

import pytest
from kubernetes import client

from nodepool_ingress.addon.orchestrator import IngressAddonOrchestrator
from tests.helpers import FakeObjectClient

TEST_NAMESPACE = "ingress-nginx"
CONTROLLER_IMAGE = "controller:v1"
CERTGEN_IMAGE = "certgen:v1"

MANAGER_ROLE = {
    "apiVersion": "rbac.authorization.k8s.io/v1",
    "kind": "ClusterRole",
    "metadata": {"name": "yurt-app-manager-role", "uid": "manager-uid-1234"},
}


@pytest.fixture
def fake_client() -> FakeObjectClient:
    """An empty in-memory object store."""
    return FakeObjectClient()


@pytest.fixture
def orchestrator(fake_client: FakeObjectClient) -> IngressAddonOrchestrator:
    """Orchestrator over the fake store with no settle delay."""
    return IngressAddonOrchestrator(
        fake_client,
        namespace=TEST_NAMESPACE,
        settle_delay=0,
        recreate_timeout=1,
        poll_interval=0,
        logger=logging.getLogger("tests"),
    )


@pytest.fixture
def managed_client(fake_client: FakeObjectClient) -> FakeObjectClient:
    """Fake store that already holds the manager ClusterRole."""
    fake_client.add(MANAGER_ROLE)
    return fake_client


@pytest.fixture
def mock_k8s_apis() -> dict:
    """
    MagicMocks for every Kubernetes API class the remote object client uses,
    suitable for unit tests.
    """
    return {
        "CoreV1Api": MagicMock(spec=client.CoreV1Api),
        "RbacAuthorizationV1Api": MagicMock(spec=client.RbacAuthorizationV1Api),
        "AppsV1Api": MagicMock(spec=client.AppsV1Api),
        "BatchV1Api": MagicMock(spec=client.BatchV1Api),
        "AdmissionregistrationV1Api": MagicMock(spec=client.AdmissionregistrationV1Api),
    }
