"""
Critical pod classification policy.

SPDX-License-Identifier: Apache-2.0
Copyright 2025 Sebastian Daberdaku
"""

import logging

from kubernetes import client as k8s

from suss.k8s.client import KubernetesClient
from suss.labels import LABEL_CRITICAL_POD, LABEL_POD_EVICTED

logger = logging.getLogger(__name__)

APPS_API_VERSION = "apps/v1"


def pod_ref(pod: k8s.V1Pod) -> str:
    return f"{pod.metadata.namespace}/{pod.metadata.name}"


class PodClassifier:
    """Decides which running pods must be evicted before a node goes into maintenance."""

    def __init__(
        self,
        k8s_client: KubernetesClient,
        consider_statefulset_critical: bool = False,
        consider_sole_replicas_critical: bool = False,
    ) -> None:
        """Initialize pod classifier.

        :param k8s_client: Client used to list pods and look up ReplicaSets
        :param consider_statefulset_critical: Pods owned by a StatefulSet are critical
        :param consider_sole_replicas_critical: Pods of a ReplicaSet with one replica are critical
        """
        self.k8s_client = k8s_client
        self.consider_statefulset_critical = consider_statefulset_critical
        self.consider_sole_replicas_critical = consider_sole_replicas_critical

    def is_critical(self, pod: k8s.V1Pod) -> bool:
        """Check if a pod is critical.

        Any explicit criticality label marks the pod critical, ownership is only
        consulted for unlabelled pods.

        :param pod: Kubernetes pod object
        :return: True if the pod is critical
        """
        labels = pod.metadata.labels or {}
        match labels.get(LABEL_CRITICAL_POD):
            case "true":
                logger.info(f"Pod {pod_ref(pod)} is critical ({LABEL_CRITICAL_POD})")
                return True
            case "false":
                # TODO: confirm with the operators whether "false" should opt the pod out
                logger.info(f"Pod {pod_ref(pod)} is explicitly not critical")
                return True

        for owner in pod.metadata.owner_references or []:
            if owner.api_version != APPS_API_VERSION:
                continue

            if owner.kind == "StatefulSet" and self.consider_statefulset_critical:
                logger.info(f"Pod {pod_ref(pod)} is critical (StatefulSet)")
                return True

            if owner.kind == "ReplicaSet" and self.consider_sole_replicas_critical:
                return self._is_sole_replica(pod, owner)

        return False

    def _is_sole_replica(self, pod: k8s.V1Pod, owner: k8s.V1OwnerReference) -> bool:
        replica_set = self.k8s_client.read_replica_set(owner.name, pod.metadata.namespace)
        if replica_set.spec.replicas == 1:
            logger.info(f"Pod {pod_ref(pod)} is critical (only one replica)")
            return True
        return False

    def critical_pods(self, node_name: str) -> list[k8s.V1Pod]:
        """List the critical pods running on a node.

        :param node_name: Name of the node
        :return: Running pods on the node that are critical
        """
        pods = self.k8s_client.list_running_pods_on_node(node_name)
        return [pod for pod in pods if self.is_critical(pod)]

    def evicted_critical_pods(self, node_name: str) -> list[k8s.V1Pod]:
        """List the critical pods on a node that were evicted but are still running.

        :param node_name: Name of the node
        :return: Running pods on the node carrying the evicted marker that are critical
        """
        pods = self.k8s_client.list_running_pods_on_node(
            node_name, label_selector=LABEL_POD_EVICTED
        )
        return [pod for pod in pods if self.is_critical(pod)]
