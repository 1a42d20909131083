"""
Kubernetes API client wrapper exposing the operations the coordinator needs.

SPDX-License-Identifier: Apache-2.0
Copyright 2025 Sebastian Daberdaku
"""

import logging

from kubernetes import client as k8s
from kubernetes import config as k8s_config
from kubernetes.client import ApiException

from suss.k8s.exception import KubernetesException, handle_k8s_api_exception
from suss.settings import KUBE_CONTEXT, KUBECONFIG

logger = logging.getLogger(__name__)

RUNNING_PHASE = "Running"


class KubernetesClient:
    """Wrapper for Kubernetes API operations."""

    def __init__(self, kubeconfig: str = None, context: str = None) -> None:
        """Initialize Kubernetes client.

        In-cluster configuration wins unless a kubeconfig file is given explicitly.

        :param kubeconfig: Path to a kubeconfig file
        :param context: kube-context to use from the kubeconfig file
        """
        _kubeconfig = KUBECONFIG if kubeconfig is None else kubeconfig
        _context = KUBE_CONTEXT if context is None else context

        try:
            if _kubeconfig:
                self._load_kube_config(_kubeconfig, _context)
            else:
                try:
                    k8s_config.load_incluster_config()
                    logger.info("Loaded in-cluster Kubernetes config")
                except k8s_config.ConfigException:
                    self._load_kube_config(None, _context)
        except k8s_config.ConfigException as e:
            raise KubernetesException(
                f"Failed to load Kubernetes config: {e}. Ensure you have a valid "
                f"kubeconfig file or are running in a Kubernetes cluster"
            ) from e
        except Exception as e:
            raise KubernetesException(f"Unexpected error loading kube config: {e}") from e

        self.v1: k8s.CoreV1Api = k8s.CoreV1Api()
        self.apps_v1: k8s.AppsV1Api = k8s.AppsV1Api()
        self.coordination_v1: k8s.CoordinationV1Api = k8s.CoordinationV1Api()
        logger.info("Kubernetes client initialized")

    @staticmethod
    def _load_kube_config(config_file: str | None, context: str | None) -> None:
        k8s_config.load_kube_config(config_file=config_file, context=context)
        _, current_context = k8s_config.list_kube_config_contexts(config_file=config_file)
        name = context or current_context["name"]
        logger.info(f"Loaded local Kubernetes config using context '{name}'")

    # Leases

    @handle_k8s_api_exception
    def read_lease(self, name: str, namespace: str) -> k8s.V1Lease:
        """Read a Lease.

        :param name: Lease name
        :param namespace: Lease namespace
        :return: The current Lease, including its resource version
        """
        return self.coordination_v1.read_namespaced_lease(name=name, namespace=namespace)

    @handle_k8s_api_exception
    def create_lease(self, lease: k8s.V1Lease) -> k8s.V1Lease:
        """Create a Lease.

        :param lease: Lease to create, metadata must carry name and namespace
        :return: The created Lease as stored by the API server
        """
        created = self.coordination_v1.create_namespaced_lease(
            namespace=lease.metadata.namespace, body=lease
        )
        logger.info(f"Created Lease {lease.metadata.namespace}/{lease.metadata.name}")
        return created

    @handle_k8s_api_exception
    def replace_lease(self, lease: k8s.V1Lease) -> k8s.V1Lease:
        """Replace a Lease, conditional on ``metadata.resource_version``.

        :param lease: Lease as previously read, possibly modified
        :return: The stored Lease with its new resource version
        :raises ConflictException: if the Lease changed since it was read
        """
        return self.coordination_v1.replace_namespaced_lease(
            name=lease.metadata.name, namespace=lease.metadata.namespace, body=lease
        )

    # Nodes

    @handle_k8s_api_exception
    def list_nodes(self) -> list[k8s.V1Node]:
        """List all nodes in the cluster.

        :return: List of V1Node objects
        """
        nodes: k8s.V1NodeList = self.v1.list_node()
        logger.debug(f"Found {len(nodes.items)} nodes")
        return nodes.items

    @handle_k8s_api_exception
    def read_node(self, name: str) -> k8s.V1Node:
        """Read a single node.

        :param name: Node name
        :return: V1Node object
        """
        return self.v1.read_node(name=name)

    @handle_k8s_api_exception
    def patch_node(self, name: str, body: dict) -> k8s.V1Node:
        """Apply a partial patch to a node.

        :param name: Node name
        :param body: Patch document touching only the fields to change
        :return: The patched node
        """
        return self.v1.patch_node(name=name, body=body)

    # Pods

    @handle_k8s_api_exception
    def list_running_pods_on_node(
        self, node_name: str, label_selector: str = ""
    ) -> list[k8s.V1Pod]:
        """List the running pods scheduled on a node.

        :param node_name: Name of the node
        :param label_selector: Optional label selector to narrow the result
        :return: List of running pods on the node
        """
        pods: k8s.V1PodList = self.v1.list_pod_for_all_namespaces(
            field_selector=f"spec.nodeName={node_name},status.phase={RUNNING_PHASE}",
            label_selector=label_selector or None,
        )
        return pods.items

    @handle_k8s_api_exception
    def patch_pod(self, name: str, namespace: str, body: dict) -> k8s.V1Pod:
        """Apply a partial patch to a pod.

        :param name: Pod name
        :param namespace: Pod namespace
        :param body: Patch document
        :return: The patched pod
        """
        return self.v1.patch_namespaced_pod(name=name, namespace=namespace, body=body)

    @handle_k8s_api_exception
    def evict_pod(self, name: str, namespace: str) -> bool:
        """Request eviction of a pod.

        :param name: Pod name
        :param namespace: Pod namespace
        :return: True if the eviction was accepted, False if the pod was already gone
        """
        eviction = k8s.V1Eviction(metadata=k8s.V1ObjectMeta(name=name, namespace=namespace))
        try:
            self.v1.create_namespaced_pod_eviction(name=name, namespace=namespace, body=eviction)
            logger.info(f"Evicted pod {namespace}/{name}")
            return True
        except ApiException as e:
            if e.status == 404:
                logger.info(f"Evict failed with NotFound, pod {namespace}/{name} already gone")
                return False
            raise e

    # Workloads

    @handle_k8s_api_exception
    def read_replica_set(self, name: str, namespace: str) -> k8s.V1ReplicaSet:
        """Read a ReplicaSet.

        :param name: ReplicaSet name
        :param namespace: ReplicaSet namespace
        :return: V1ReplicaSet object
        """
        return self.apps_v1.read_namespaced_replica_set(name=name, namespace=namespace)
