"""
Main entry point for the maintenance coordinator when run as a module.

Usage: python -m suss [synchronize|teardown|release|releasedelayed|criticalpods]

SPDX-License-Identifier: Apache-2.0
Copyright 2025 Sebastian Daberdaku
"""

import logging
import signal
import sys
import threading

from suss.config import ConfigurationException, CoordinatorConfig
from suss.coordinator import MaintenanceCoordinator
from suss.k8s import KubernetesException
from suss.kmutex import LockNotHeldException
from suss.logging import setup_logging
from suss.looper import OperationCancelled

logger = logging.getLogger("suss")


def _commands(coordinator: MaintenanceCoordinator, cancel: threading.Event) -> dict:
    return {
        "synchronize": lambda: coordinator.synchronize(cancel),
        "teardown": lambda: coordinator.teardown(cancel),
        "release": coordinator.release,
        "releasedelayed": coordinator.release_delayed,
        "criticalpods": coordinator.get_critical_pods,
    }


def main(argv: list[str] = None) -> int:
    """Start the coordinator and run at most one workflow command.

    :param argv: Command line arguments without the program name
    :return: Process exit code
    """
    args = sys.argv[1:] if argv is None else argv
    setup_logging()

    cancel = threading.Event()
    for signum in (signal.SIGINT, signal.SIGTERM):
        signal.signal(signum, lambda *_: cancel.set())

    try:
        coordinator = MaintenanceCoordinator(CoordinatorConfig.from_settings())
        commands = _commands(coordinator, cancel)
        if args and args[0] not in commands:
            logger.error(f"Unknown command '{args[0]}', expected one of {', '.join(commands)}")
            return 2

        coordinator.start()
        if args:
            logger.info(f"/{args[0]}")
            commands[args[0]]()
    except OperationCancelled:
        logger.warning("Cancelled")
        return 1
    except (ConfigurationException, KubernetesException, LockNotHeldException) as e:
        logger.exception(f"Failed: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
