"""
Pytest configuration and in-memory cluster fakes for suss tests.

SPDX-License-Identifier: Apache-2.0
Copyright 2025 Sebastian Daberdaku
"""

import sys
import threading
from pathlib import Path

import pytest
from kubernetes import client as k8s

# Add src directory to Python path for imports
project_root = Path(__file__).parent.parent
src_path = project_root / "src"
sys.path.insert(0, str(src_path))

from suss.k8s.exception import ConflictException, NotFoundException  # noqa: E402


class InMemoryLeaseStore:
    """Lease storage enforcing resource-version checks like the API server."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.records: dict[tuple[str, str], tuple[str | None, int]] = {}
        self.version = 0
        self.inject_conflicts = 0
        self.creates = 0
        self.writes = 0

    def _next_version(self) -> int:
        self.version += 1
        return self.version

    @staticmethod
    def _to_lease(name: str, namespace: str, holder: str | None, version: int) -> k8s.V1Lease:
        return k8s.V1Lease(
            metadata=k8s.V1ObjectMeta(
                name=name, namespace=namespace, resource_version=str(version)
            ),
            spec=k8s.V1LeaseSpec(holder_identity=holder),
        )

    def holder(self, name: str = "sync", namespace: str = "default") -> str | None:
        return self.records[(namespace, name)][0]

    def set_holder(self, holder: str | None, name: str = "sync", namespace: str = "default"):
        with self._lock:
            self.records[(namespace, name)] = (holder, self._next_version())

    def read_lease(self, name: str, namespace: str) -> k8s.V1Lease:
        with self._lock:
            if (namespace, name) not in self.records:
                raise NotFoundException("'Not found' error when running read_lease")
            holder, version = self.records[(namespace, name)]
            return self._to_lease(name, namespace, holder, version)

    def create_lease(self, lease: k8s.V1Lease) -> k8s.V1Lease:
        with self._lock:
            key = (lease.metadata.namespace, lease.metadata.name)
            if key in self.records:
                raise ConflictException("'Conflict' error when running create_lease")
            self.creates += 1
            holder = lease.spec.holder_identity if lease.spec else None
            self.records[key] = (holder, self._next_version())
            return self._to_lease(key[1], key[0], *self.records[key])

    def replace_lease(self, lease: k8s.V1Lease) -> k8s.V1Lease:
        with self._lock:
            key = (lease.metadata.namespace, lease.metadata.name)
            holder, version = self.records[key]
            if self.inject_conflicts > 0:
                # another writer touched the Lease in between
                self.inject_conflicts -= 1
                self.records[key] = (holder, self._next_version())
                raise ConflictException("'Conflict' error when running replace_lease")
            if lease.metadata.resource_version != str(version):
                raise ConflictException("'Conflict' error when running replace_lease")
            self.writes += 1
            self.records[key] = (lease.spec.holder_identity, self._next_version())
            return self._to_lease(key[1], key[0], *self.records[key])


class FakeCluster(InMemoryLeaseStore):
    """In-memory stand-in for KubernetesClient covering leases, nodes, pods and ReplicaSets."""

    def __init__(self) -> None:
        super().__init__()
        self.nodes: dict[str, k8s.V1Node] = {}
        self.pods: list[k8s.V1Pod] = []
        self.replica_sets: dict[tuple[str, str], int] = {}
        self.evicted: list[str] = []

    def add_node(self, name: str, labels: dict[str, str] = None, cordoned: bool = False):
        self.nodes[name] = k8s.V1Node(
            metadata=k8s.V1ObjectMeta(name=name, labels=dict(labels or {})),
            spec=k8s.V1NodeSpec(unschedulable=cordoned),
        )
        return self.nodes[name]

    def add_pod(
        self,
        name: str,
        node_name: str,
        namespace: str = "default",
        labels: dict[str, str] = None,
        owner: tuple[str, str] = None,
        phase: str = "Running",
    ) -> k8s.V1Pod:
        owner_references = None
        if owner:
            owner_references = [
                k8s.V1OwnerReference(api_version="apps/v1", kind=owner[0], name=owner[1], uid="1")
            ]
        pod = k8s.V1Pod(
            metadata=k8s.V1ObjectMeta(
                name=name,
                namespace=namespace,
                labels=dict(labels or {}),
                owner_references=owner_references,
            ),
            spec=k8s.V1PodSpec(node_name=node_name, containers=[]),
            status=k8s.V1PodStatus(phase=phase),
        )
        self.pods.append(pod)
        return pod

    def list_nodes(self) -> list[k8s.V1Node]:
        return list(self.nodes.values())

    def read_node(self, name: str) -> k8s.V1Node:
        if name not in self.nodes:
            raise NotFoundException("'Not found' error when running read_node")
        return self.nodes[name]

    def patch_node(self, name: str, body: dict) -> k8s.V1Node:
        node = self.read_node(name)
        for key, value in body.get("metadata", {}).get("labels", {}).items():
            if value is None:
                node.metadata.labels.pop(key, None)
            else:
                node.metadata.labels[key] = value
        if "unschedulable" in body.get("spec", {}):
            node.spec.unschedulable = body["spec"]["unschedulable"]
        return node

    def list_running_pods_on_node(self, node_name: str, label_selector: str = ""):
        return [
            pod
            for pod in self.pods
            if pod.spec.node_name == node_name
            and pod.status.phase == "Running"
            and (not label_selector or label_selector in (pod.metadata.labels or {}))
        ]

    def _find_pod(self, name: str, namespace: str) -> k8s.V1Pod | None:
        for pod in self.pods:
            if pod.metadata.name == name and pod.metadata.namespace == namespace:
                return pod
        return None

    def patch_pod(self, name: str, namespace: str, body: dict) -> k8s.V1Pod:
        pod = self._find_pod(name, namespace)
        if pod is None:
            raise NotFoundException("'Not found' error when running patch_pod")
        pod.metadata.labels.update(body["metadata"]["labels"])
        return pod

    def evict_pod(self, name: str, namespace: str) -> bool:
        pod = self._find_pod(name, namespace)
        if pod is None:
            return False
        self.pods.remove(pod)
        self.evicted.append(f"{namespace}/{name}")
        return True

    def read_replica_set(self, name: str, namespace: str) -> k8s.V1ReplicaSet:
        if (namespace, name) not in self.replica_sets:
            raise NotFoundException("'Not found' error when running read_replica_set")
        return k8s.V1ReplicaSet(
            metadata=k8s.V1ObjectMeta(name=name, namespace=namespace),
            spec=k8s.V1ReplicaSetSpec(
                replicas=self.replica_sets[(namespace, name)],
                selector=k8s.V1LabelSelector(),
            ),
        )


@pytest.fixture
def lease_store():
    """Empty Lease store."""
    return InMemoryLeaseStore()


@pytest.fixture
def cluster():
    """Fake cluster with the nodes n1 and n2."""
    fake = FakeCluster()
    fake.add_node("n1")
    fake.add_node("n2")
    return fake


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test (requires Kubernetes cluster)"
    )


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers automatically."""
    for item in items:
        # Add integration marker to tests in integration directory
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
