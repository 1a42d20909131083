"""
Kubernetes module exports for client, node registry, pod classifier, and exception classes.

SPDX-License-Identifier: Apache-2.0
Copyright 2025 Sebastian Daberdaku
"""

from suss.k8s.client import KubernetesClient
from suss.k8s.exception import (
    ConflictException,
    KubernetesException,
    NodeNotAvailableException,
    NotFoundException,
)
from suss.k8s.node import Node, NodeRegistry
from suss.k8s.pod import PodClassifier

__all__ = [
    "ConflictException",
    "KubernetesClient",
    "KubernetesException",
    "Node",
    "NodeNotAvailableException",
    "NodeRegistry",
    "NotFoundException",
    "PodClassifier",
]
