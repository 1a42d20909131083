"""
Environment variable parsing and configuration management for suss.

SPDX-License-Identifier: Apache-2.0
Copyright 2025 Sebastian Daberdaku
"""

import os
import re
from datetime import timedelta


def _get_bool_env(key: str, default: bool) -> bool:
    """Get boolean environment variable.

    :param key: Environment variable name
    :param default: Default value if not set
    :return: Boolean value
    """
    value = os.getenv(key, str(default)).lower()
    return value in ("true", "1", "yes", "on")


def _parse_duration(duration_str: str, default: timedelta = timedelta(seconds=10)) -> timedelta:
    """Parse duration string like '500ms', '10s', '1m' into timedelta.

    :param duration_str: Duration string (e.g., "500ms", "10s", "2m")
    :param default: Value returned when the string cannot be parsed
    :return: Parsed timedelta object
    """
    match = re.match(r"^(\d+)(ms|[smh])$", duration_str.strip().lower())
    if not match:
        return default

    value, unit = int(match.group(1)), match.group(2)

    match unit:
        case "ms":
            return timedelta(milliseconds=value)
        case "s":
            return timedelta(seconds=value)
        case "m":
            return timedelta(minutes=value)
        case "h":
            return timedelta(hours=value)
        case _:
            return default


"""suss Settings"""
NODE_NAME = os.getenv("NODENAME", "").strip()
LEASE_NAMESPACE = os.getenv("NAMESPACE", "").strip()
LEASE_NAME = os.getenv("LEASE_NAME", "sync").strip()
DONT_CREATE_LEASE = _get_bool_env("DONT_CREATE_LEASE", False)
CONSIDER_STATEFULSET_CRITICAL = _get_bool_env("CONSIDER_STATEFULSET_CRITICAL", False)
CONSIDER_SOLE_REPLICAS_CRITICAL = _get_bool_env("CONSIDER_SOLE_REPLICAS_CRITICAL", False)
LEASE_RETRY_INTERVAL = _parse_duration(
    os.getenv("LEASE_RETRY_INTERVAL", "1s"), default=timedelta(seconds=1)
)
SYNCHRONIZE_INTERVAL = _parse_duration(os.getenv("SYNCHRONIZE_INTERVAL", "10s"))
DRAIN_POLL_INTERVAL = _parse_duration(os.getenv("DRAIN_POLL_INTERVAL", "10s"))
KUBECONFIG = os.getenv("KUBECONFIG") or None
KUBE_CONTEXT = os.getenv("KUBE_CONTEXT") or None
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
ENABLE_JSON_LOGS = _get_bool_env("ENABLE_JSON_LOGS", True)
