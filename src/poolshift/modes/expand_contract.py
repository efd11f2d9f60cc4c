from ..core import CONTRACTED_POOL_SIZE, DEFAULT_POOL, EXPAND_CONTRACT, EXPANDED_POOL_SIZE
from ..logger import logger
from ..orchestrator import Step
from .base import Migration


class ExpandContractMigration(Migration):
    """
    Expand/contract: grow the default pool to give the rolling node upgrade
    headroom, upgrade control plane and nodes in place, then shrink it back.
    """

    strategy = EXPAND_CONTRACT
    ACTIONS = {
        "create": "create",
        "install-app": "install_app",
        "resize": "resize",
        "upgrade-control": "upgrade_control",
        "upgrade-nodes": "upgrade_nodes",
        "wait-for-upgrade": "wait_for_upgrade",
        "delete": "delete",
    }
    SIZED_ACTIONS = frozenset({"resize"})
    DESCRIPTIONS = {
        "create": "Building a GKE cluster and setting up the application",
        "install-app": "Setting up the application",
        "resize": "Resizing the node pool",
        "upgrade-control": "Upgrading the K8s control plane",
        "upgrade-nodes": "Upgrading the K8s nodes",
        "wait-for-upgrade": "Waiting for any master upgrade",
        "delete": "Tearing down the infrastructure",
    }

    def create(self) -> None:
        self.create_cluster()
        self.deployer.deploy()

    def resize(self, size: int) -> None:
        logger.info(f"Resizing the node pool to {size} nodes per zone .....")
        self.backend.resize_node_pool(DEFAULT_POOL, size)

    def upgrade_nodes(self) -> None:
        logger.info(f"Upgrading the K8s nodes to {self.config.target_version} .....")
        self.backend.upgrade_node_pool(DEFAULT_POOL, self.config.target_version)

    def settle_and_wait(self) -> None:
        # Growing the pool can make GKE resize the control plane on its own
        # shortly afterwards; give it a moment to show up in the operations list
        if self.config.settle_seconds:
            logger.info(f"Waiting {self.config.settle_seconds:g}s for control plane changes to start")
            self.sleep(self.config.settle_seconds)
        self.wait_for_upgrade()

    def delete(self) -> None:
        self._connect()
        self.deployer.remove()
        self.delete_cluster()

    def auto_steps(self) -> list[Step]:
        return [
            Step("create", self.create, self.DESCRIPTIONS["create"]),
            Step(
                "expand",
                lambda: self.resize(EXPANDED_POOL_SIZE),
                f"Expanding the default pool to {EXPANDED_POOL_SIZE} nodes per zone",
            ),
            Step("wait-for-upgrade", self.settle_and_wait, self.DESCRIPTIONS["wait-for-upgrade"]),
            Step("upgrade-control", self.upgrade_control, self.DESCRIPTIONS["upgrade-control"]),
            Step("upgrade-nodes", self.upgrade_nodes, self.DESCRIPTIONS["upgrade-nodes"]),
            Step(
                "contract",
                lambda: self.resize(CONTRACTED_POOL_SIZE),
                f"Contracting the default pool to {CONTRACTED_POOL_SIZE} node per zone",
            ),
            Step("validate", self.validate, "Validating the upgrade"),
        ]
