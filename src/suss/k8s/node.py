"""
Node registry with label and cordon management through partial patches.

SPDX-License-Identifier: Apache-2.0
Copyright 2025 Sebastian Daberdaku
"""

import logging

from kubernetes import client as k8s

from suss.k8s.client import KubernetesClient
from suss.k8s.exception import NodeNotAvailableException, NotFoundException

logger = logging.getLogger(__name__)


class Node:
    """Snapshot of a cluster node, refreshed by every write made through the registry."""

    def __init__(self, node: k8s.V1Node) -> None:
        self.node = node

    def __repr__(self) -> str:
        return f"Node({self.name!r})"

    @property
    def name(self) -> str:
        return self.node.metadata.name

    @property
    def labels(self) -> dict[str, str]:
        return self.node.metadata.labels or {}

    @property
    def resource_version(self) -> str | None:
        return self.node.metadata.resource_version

    @property
    def cordoned(self) -> bool:
        return bool(self.node.spec and self.node.spec.unschedulable)

    def get_label(self, key: str) -> str:
        """Get a label value, an empty string if the label is not set.

        :param key: Label key
        :return: Label value
        """
        return self.labels.get(key, "")


class NodeRegistry:
    """Read and patch access to the cluster's nodes."""

    def __init__(self, k8s_client: KubernetesClient) -> None:
        self.k8s_client = k8s_client

    def list(self) -> list[Node]:
        """List all nodes.

        :return: One snapshot per node
        """
        return [Node(node) for node in self.k8s_client.list_nodes()]

    def get(self, name: str) -> Node:
        """Get a single node by name.

        :param name: Node name
        :return: Node snapshot
        :raises NodeNotAvailableException: if the node does not exist (anymore)
        """
        try:
            return Node(self.k8s_client.read_node(name))
        except NotFoundException as e:
            raise NodeNotAvailableException(
                f"node {name} no longer available, can't continue"
            ) from e

    def set_label(self, node: Node, key: str, value: str) -> Node:
        """Set a label on a node, an empty value removes the label.

        Only the given key is patched so concurrent changes to other labels are kept.

        :param node: Node to patch, its snapshot is replaced by the result
        :param key: Label key
        :param value: Label value, "" to delete the label
        :return: The updated node
        """
        patch_body = {"metadata": {"labels": {key: value or None}}}
        node.node = self.k8s_client.patch_node(node.name, patch_body)
        if value:
            logger.debug(f"Set label {key}={value} on node {node.name}")
        else:
            logger.debug(f"Removed label {key} from node {node.name}")
        return node

    def set_cordoned(self, node: Node, cordoned: bool) -> Node:
        """Mark a node unschedulable (cordon) or schedulable (uncordon).

        :param node: Node to patch, its snapshot is replaced by the result
        :param cordoned: True to cordon, False to uncordon
        :return: The updated node
        """
        patch_body = {"spec": {"unschedulable": cordoned}}
        node.node = self.k8s_client.patch_node(node.name, patch_body)
        logger.info(f"Node {node.name} {'cordoned' if cordoned else 'uncordoned'}")
        return node
