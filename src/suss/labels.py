"""
Well-known label keys persisting coordinator state on nodes and pods.

SPDX-License-Identifier: Apache-2.0
Copyright 2025 Sebastian Daberdaku
"""

LABEL_PREFIX = "suss.world-direct.at/"
LABEL_DELAYED_RELEASE = LABEL_PREFIX + "delayedrelease"
LABEL_LAST_RELEASE = LABEL_PREFIX + "lastrelease"
LABEL_CRITICAL_POD = LABEL_PREFIX + "critical"
LABEL_POD_EVICTED = LABEL_PREFIX + "evicted"
