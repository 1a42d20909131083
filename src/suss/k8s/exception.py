"""
Custom exceptions and error handling decorators for Kubernetes API operations.

SPDX-License-Identifier: Apache-2.0
Copyright 2025 Sebastian Daberdaku
"""

from functools import wraps
from typing import Any, Callable

from kubernetes.client import ApiException


class KubernetesException(Exception):
    """Custom exception for Kubernetes client errors."""


class NotFoundException(KubernetesException):
    """The requested object does not exist (HTTP 404)."""


class ConflictException(KubernetesException):
    """The write was rejected because the object changed since it was read (HTTP 409)."""


class NodeNotAvailableException(NotFoundException):
    """The node this coordinator runs for is no longer registered in the cluster."""


def handle_k8s_api_exception(func) -> Callable[..., Any]:
    """Decorator to translate Kubernetes API exceptions into the package hierarchy."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except KubernetesException:
            raise
        except ApiException as e:
            match e.status:
                case 403:
                    raise KubernetesException(
                        f"'Unauthorized' error when running {func.__name__}. Check RBAC permissions"
                    ) from e
                case 404:
                    raise NotFoundException(
                        f"'Not found' error when running {func.__name__}"
                    ) from e
                case 409:
                    raise ConflictException(
                        f"'Conflict' error when running {func.__name__}"
                    ) from e
                case _:
                    raise KubernetesException(
                        f"Unexpected error when running {func.__name__}: "
                        f"HTTP {e.status} - {e.reason}"
                    ) from e
        except Exception as e:
            error_msg = f"Unexpected error when running {func.__name__}: {e}"
            raise KubernetesException(error_msg) from e

    return wrapper
