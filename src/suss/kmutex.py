"""
Cluster-wide mutex backed by a coordination.k8s.io Lease.

The Lease's ``spec.holderIdentity`` names the current owner, unset means unlocked.
Every change is a read-modify-write keyed on ``metadata.resourceVersion``: if another
writer got in between, the API server rejects the write with a conflict and the whole
cycle is repeated against a fresh copy of the Lease.

SPDX-License-Identifier: Apache-2.0
Copyright 2025 Sebastian Daberdaku
"""

import logging
import threading
from datetime import timedelta
from typing import Callable, TypeVar

from kubernetes import client as k8s

from suss.k8s.client import KubernetesClient
from suss.k8s.exception import ConflictException, NotFoundException
from suss.looper import loop

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LockNotHeldException(Exception):
    """Raised when releasing a lock that is held by another identity."""


class KubernetesMutex:
    """Named exclusive lock shared by every holder that uses the same Lease."""

    def __init__(
        self,
        k8s_client: KubernetesClient,
        lease_name: str,
        lease_namespace: str,
        holder_identity: str,
        retry_interval: timedelta = timedelta(seconds=1),
        dont_create_lease_if_not_exists: bool = False,
    ) -> None:
        """Initialize the mutex.

        :param k8s_client: Client used to read and write the Lease
        :param lease_name: Name of the Lease
        :param lease_namespace: Namespace of the Lease
        :param holder_identity: Identity written to the Lease while this instance holds it
        :param retry_interval: Pause before re-reading the Lease after a write conflict
        :param dont_create_lease_if_not_exists: Fail instead of creating a missing Lease
        """
        self.k8s_client = k8s_client
        self.lease_name = lease_name
        self.lease_namespace = lease_namespace
        self.holder_identity = holder_identity
        self.retry_interval = retry_interval
        self.dont_create_lease_if_not_exists = dont_create_lease_if_not_exists

    def __repr__(self) -> str:
        return (
            f"KubernetesMutex({self.lease_namespace}/{self.lease_name}, "
            f"holder_identity={self.holder_identity!r})"
        )

    def with_lock(
        self,
        transition: Callable[[k8s.V1Lease], T],
        cancel: threading.Event | None = None,
    ) -> T:
        """Run ``transition`` against the current Lease and persist its changes.

        ``transition`` may change ``lease.spec.holder_identity`` in place. If it did, the
        Lease is written back conditionally; on conflict the Lease is re-read and
        ``transition`` runs again. Unchanged Leases are not written.

        :param transition: Callable receiving the Lease and returning the call's result
        :param cancel: Event that aborts the conflict-retry wait
        :return: The value returned by the successful ``transition`` call
        """
        results: list[T] = []

        def attempt() -> bool:
            try:
                lease = self._fetch_lease()
            except ConflictException:
                logger.info(
                    f"Lease {self.lease_namespace}/{self.lease_name} created concurrently, "
                    f"retrying"
                )
                return False

            holder_before = lease.spec.holder_identity
            result = transition(lease)
            if (lease.spec.holder_identity or None) == holder_before:
                results.append(result)
                return True

            try:
                self.k8s_client.replace_lease(lease)
            except ConflictException:
                logger.info(
                    f"Conflict updating Lease {self.lease_namespace}/{self.lease_name}, "
                    f"retrying in {self.retry_interval.total_seconds()}s"
                )
                return False

            results.append(result)
            return True

        loop(attempt, self.retry_interval, cancel)
        return results[0]

    def _fetch_lease(self) -> k8s.V1Lease:
        try:
            lease = self.k8s_client.read_lease(self.lease_name, self.lease_namespace)
        except NotFoundException:
            if self.dont_create_lease_if_not_exists:
                raise
            logger.info(f"Lease {self.lease_namespace}/{self.lease_name} not found, creating")
            lease = self.k8s_client.create_lease(
                k8s.V1Lease(
                    metadata=k8s.V1ObjectMeta(
                        name=self.lease_name, namespace=self.lease_namespace
                    ),
                    spec=k8s.V1LeaseSpec(),
                )
            )

        if lease.spec is None:
            lease.spec = k8s.V1LeaseSpec()
        # an empty string is as good as no holder
        lease.spec.holder_identity = lease.spec.holder_identity or None
        return lease

    def try_acquire(self, cancel: threading.Event | None = None) -> bool:
        """Take the lock if it is free or already ours.

        :param cancel: Event that aborts the conflict-retry wait
        :return: True if this identity holds the lock afterwards, False if another does
        """

        def acquire(lease: k8s.V1Lease) -> bool:
            holder = lease.spec.holder_identity
            if holder is None:
                lease.spec.holder_identity = self.holder_identity
                return True
            return holder == self.holder_identity

        return self.with_lock(acquire, cancel)

    def current_owner(self) -> str:
        """Return the identity holding the lock, or an empty string if it is free."""
        return self.with_lock(lambda lease: lease.spec.holder_identity or "")

    def release(self, cancel: threading.Event | None = None) -> None:
        """Release the lock.

        Releasing a free lock is a no-op.

        :param cancel: Event that aborts the conflict-retry wait
        :raises LockNotHeldException: if another identity holds the lock
        """

        def clear(lease: k8s.V1Lease) -> None:
            holder = lease.spec.holder_identity
            if holder is not None and holder != self.holder_identity:
                raise LockNotHeldException(f"release of a lock not held, owned by {holder}")
            lease.spec.holder_identity = None

        self.with_lock(clear, cancel)
