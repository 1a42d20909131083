"""
Cancelable fixed-interval polling loop.

SPDX-License-Identifier: Apache-2.0
Copyright 2025 Sebastian Daberdaku
"""

import logging
import threading
from datetime import timedelta
from typing import Callable

logger = logging.getLogger(__name__)


class OperationCancelled(Exception):
    """Raised when a poll loop is stopped through its cancellation event."""


def loop(
    step: Callable[[], bool],
    interval: timedelta,
    cancel: threading.Event | None = None,
) -> None:
    """Run ``step`` until it returns True, sleeping ``interval`` between attempts.

    Cancellation is only observed while sleeping; a running step is never interrupted.

    :param step: Callable returning True once the loop may exit
    :param interval: Time to wait between two attempts
    :param cancel: Event that stops the loop when set
    :raises OperationCancelled: if ``cancel`` is set while waiting
    """
    _cancel = threading.Event() if cancel is None else cancel

    while True:
        if step():
            return

        if _cancel.wait(interval.total_seconds()):
            logger.info("Operation has been cancelled")
            raise OperationCancelled("operation cancelled while waiting for the next attempt")
