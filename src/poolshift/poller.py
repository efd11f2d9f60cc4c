"""Waiting out a running control-plane upgrade."""

from collections.abc import Iterable

from .backends.base import ClusterBackend
from .config import MigrationConfig
from .core import OPERATION_NAME_PREFIX, RUNNING
from .logger import logger
from .schemas.cluster import ClusterOperation


def select_running_upgrade(operations: Iterable[ClusterOperation]) -> ClusterOperation | None:
    """
    Returns the first UPGRADE_MASTER operation that is RUNNING, or None.
    When several match, listing order decides; which one wins is arbitrary.
    """
    for op in operations:
        if op.is_master_upgrade and op.status == RUNNING:
            return op
    return None


def wait_for_upgrade(backend: ClusterBackend, config: MigrationConfig) -> ClusterOperation | None:
    """
    Blocks until the running control-plane upgrade (if any) finishes.

    Returns immediately when no upgrade is running. The upgrade may not have
    started yet when this is called; that race is accepted, not handled.
    """
    logger.info("Checking for master upgrade")
    op = select_running_upgrade(backend.list_operations())
    if op is None or not op.name.startswith(OPERATION_NAME_PREFIX):
        logger.debug("No master upgrade running")
        return None

    logger.info("Master upgrade in process.  Waiting until complete...")
    return backend.wait_for_operation(op.name, timeout=config.operation_timeout)
