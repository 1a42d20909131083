"""
Maintenance coordinator serializing disruptive node maintenance across the cluster.

A node calls ``synchronize`` to take the cluster-wide lock, ``teardown`` to cordon
itself and drain its critical pods, and ``release`` (or ``release_delayed`` ahead of
a reboot) to hand the lock to the next node.

SPDX-License-Identifier: Apache-2.0
Copyright 2025 Sebastian Daberdaku
"""

import logging
import threading
import time

from kubernetes import client as k8s

from suss.config import CoordinatorConfig
from suss.k8s import KubernetesClient, NodeRegistry, NotFoundException, PodClassifier
from suss.k8s.pod import pod_ref
from suss.kmutex import KubernetesMutex, LockNotHeldException
from suss.labels import LABEL_DELAYED_RELEASE, LABEL_LAST_RELEASE, LABEL_POD_EVICTED
from suss.looper import loop

logger = logging.getLogger(__name__)


class MaintenanceCoordinator:
    """Runs the maintenance workflow steps for the node it is configured for."""

    def __init__(self, config: CoordinatorConfig, k8s_client: KubernetesClient = None) -> None:
        """Initialize the coordinator.

        :param config: Coordinator configuration
        :param k8s_client: Kubernetes client, created from the environment if omitted
        """
        self.config = config
        self.k8s_client = KubernetesClient() if k8s_client is None else k8s_client
        self.nodes = NodeRegistry(self.k8s_client)
        self.classifier = PodClassifier(
            self.k8s_client,
            consider_statefulset_critical=config.consider_statefulset_critical,
            consider_sole_replicas_critical=config.consider_sole_replicas_critical,
        )
        self.mutex = KubernetesMutex(
            self.k8s_client,
            lease_name=config.lease_name,
            lease_namespace=config.lease_namespace,
            holder_identity=config.node_name,
            retry_interval=config.lease_retry_interval,
            dont_create_lease_if_not_exists=config.dont_create_lease,
        )
        logger.info(
            f"Coordinator initialized with "
            f"node_name={config.node_name}, "
            f"lease={config.lease_namespace}/{config.lease_name}, "
            f"consider_statefulset_critical={config.consider_statefulset_critical}, "
            f"consider_sole_replicas_critical={config.consider_sole_replicas_critical}"
        )

    def start(self) -> None:
        """Validate the own node and replay a pending delayed release."""
        own = self.nodes.get(self.config.node_name)
        logger.info(f"Node {own.name} found")

        if own.get_label(LABEL_DELAYED_RELEASE) == "true":
            logger.info("Node marked for delayed release, releasing lock now")
            self.release()
            self.nodes.set_label(own, LABEL_DELAYED_RELEASE, "")

    def synchronize(self, cancel: threading.Event | None = None) -> None:
        """Block until this node holds the lock.

        :param cancel: Event that stops waiting for the lock
        :raises OperationCancelled: if ``cancel`` is set before the lock was acquired
        """
        loop(lambda: self._try_synchronize(cancel), self.config.synchronize_interval, cancel)

    def _try_synchronize(self, cancel: threading.Event | None) -> bool:
        # informational only, try_acquire decides
        owner = self.mutex.current_owner()
        if owner == self.config.node_name:
            logger.info(f"Lock already owned by us {owner}")
            return True

        if not self.mutex.try_acquire(cancel):
            logger.info(
                f"Could not acquire Lease, currently owned by {self.mutex.current_owner()}"
            )
            return False

        logger.info(f"Lease successfully acquired by {self.config.node_name}")
        return True

    def teardown(self, cancel: threading.Event | None = None) -> None:
        """Cordon the own node, evict its critical pods and wait until they are gone.

        :param cancel: Event that stops waiting for the evicted pods to terminate
        :raises OperationCancelled: if ``cancel`` is set before the drain converged
        """
        own = self.nodes.get(self.config.node_name)
        self.nodes.set_cordoned(own, True)

        for pod in self.classifier.critical_pods(own.name):
            if not self._mark_evicted(pod):
                continue
            logger.info(f"Evict pod {pod_ref(pod)}")
            self.k8s_client.evict_pod(pod.metadata.name, pod.metadata.namespace)

        loop(lambda: self._drain_converged(own.name), self.config.drain_poll_interval, cancel)
        logger.info(f"Teardown of node {own.name} completed")

    def _mark_evicted(self, pod: k8s.V1Pod) -> bool:
        """Put the evicted marker on a pod, False if the pod is already gone."""
        if (pod.metadata.labels or {}).get(LABEL_POD_EVICTED):
            return True
        try:
            self.k8s_client.patch_pod(
                pod.metadata.name,
                pod.metadata.namespace,
                {"metadata": {"labels": {LABEL_POD_EVICTED: "true"}}},
            )
        except NotFoundException:
            logger.info(f"Pod {pod_ref(pod)} already gone")
            return False
        return True

    def _drain_converged(self, node_name: str) -> bool:
        remaining = self.classifier.evicted_critical_pods(node_name)
        if not remaining:
            return True
        logger.info(
            f"Waiting for {len(remaining)} evicted critical pod(s) to terminate: "
            f"{', '.join(pod_ref(pod) for pod in remaining)}"
        )
        return False

    def release(self) -> None:
        """Release the lock, record the release time and uncordon the own node.

        A free lock is tolerated so that a node never stays cordoned.

        :raises LockNotHeldException: if another node holds the lock
        """
        owner = self.mutex.current_owner()
        if owner == self.config.node_name:
            self.mutex.release()
            logger.info("Lock released")
        elif not owner:
            logger.warning("Lock is not held by anyone, nothing to release")
        else:
            raise LockNotHeldException(f"unable to release lock not held, owned by {owner}")

        own = self.nodes.get(self.config.node_name)
        self.nodes.set_label(own, LABEL_LAST_RELEASE, str(int(time.time())))
        self.nodes.set_cordoned(own, False)

    def release_delayed(self) -> None:
        """Flag the own node so the lock is released on the next start."""
        own = self.nodes.get(self.config.node_name)
        self.nodes.set_label(own, LABEL_DELAYED_RELEASE, "true")
        logger.info(f"Node {own.name} marked for delayed release")

    def get_critical_pods(self) -> list[k8s.V1Pod]:
        """List the critical pods running on the own node."""
        own = self.nodes.get(self.config.node_name)
        pods = self.classifier.critical_pods(own.name)
        logger.info(
            f"Found {len(pods)} critical pod(s) on node {own.name}: "
            f"{', '.join(pod_ref(pod) for pod in pods)}"
        )
        return pods
