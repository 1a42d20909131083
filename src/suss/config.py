"""
Configuration management for the maintenance coordinator.

SPDX-License-Identifier: Apache-2.0
Copyright 2025 Sebastian Daberdaku
"""

from dataclasses import dataclass
from datetime import timedelta

from suss import settings


class ConfigurationException(Exception):
    """Raised when required configuration is missing."""


@dataclass(frozen=True)
class CoordinatorConfig:
    """Immutable coordinator configuration."""

    node_name: str
    lease_namespace: str
    lease_name: str = "sync"
    dont_create_lease: bool = False
    consider_statefulset_critical: bool = False
    consider_sole_replicas_critical: bool = False
    lease_retry_interval: timedelta = timedelta(seconds=1)
    synchronize_interval: timedelta = timedelta(seconds=10)
    drain_poll_interval: timedelta = timedelta(seconds=10)

    @classmethod
    def from_settings(cls) -> "CoordinatorConfig":
        """Build the configuration from environment settings.

        :return: Configuration object
        :raises ConfigurationException: if NODENAME or NAMESPACE is not set
        """
        if not settings.NODE_NAME:
            raise ConfigurationException("NODENAME env var required")
        if not settings.LEASE_NAMESPACE:
            raise ConfigurationException("NAMESPACE env var required")

        return cls(
            node_name=settings.NODE_NAME,
            lease_namespace=settings.LEASE_NAMESPACE,
            lease_name=settings.LEASE_NAME,
            dont_create_lease=settings.DONT_CREATE_LEASE,
            consider_statefulset_critical=settings.CONSIDER_STATEFULSET_CRITICAL,
            consider_sole_replicas_critical=settings.CONSIDER_SOLE_REPLICAS_CRITICAL,
            lease_retry_interval=settings.LEASE_RETRY_INTERVAL,
            synchronize_interval=settings.SYNCHRONIZE_INTERVAL,
            drain_poll_interval=settings.DRAIN_POLL_INTERVAL,
        )
