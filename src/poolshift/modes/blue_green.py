from ..core import BLUE_GREEN, DEFAULT_POOL, NEW_POOL, NODEPOOL_LABEL
from ..drain import cordon_by_label, drain_by_label
from ..logger import logger
from ..orchestrator import Step
from .base import Migration


class BlueGreenMigration(Migration):
    """
    Blue/green pool swap: upgrade the control plane, stand up a new pool at
    the new version beside the old one, move workloads over by cordoning and
    draining the old nodes, then delete the old pool.
    """

    strategy = BLUE_GREEN
    ACTIONS = {
        "create": "create",
        "install-app": "install_app",
        "upgrade-control": "upgrade_control",
        "new-node-pool": "new_node_pool",
        "cordon-default-pool": "cordon_default_pool",
        "drain-default-pool": "drain_default_pool",
        "delete-default-pool": "delete_default_pool",
        "wait-for-upgrade": "wait_for_upgrade",
        "delete": "delete",
    }
    DESCRIPTIONS = {
        "create": "Creating the cluster and deploying the sample app",
        "install-app": "Installing the sample app",
        "upgrade-control": "Upgrading the control plane",
        "new-node-pool": "Creating the new node pool and cordoning the old one",
        "cordon-default-pool": "Cordoning nodes in the default pool",
        "drain-default-pool": "Draining nodes in the default pool",
        "delete-default-pool": "Deleting the default pool",
        "wait-for-upgrade": "Waiting for any master upgrade",
        "delete": "Deleting the cluster",
    }

    def create(self) -> None:
        self.create_cluster()
        # Bind the cluster-admin ClusterRole to your user account
        self.backend.bind_cluster_admin()
        self.deployer.deploy()

    def create_new_pool(self) -> None:
        # Same machine type as the pool being replaced, whatever it is now
        machine_type = self.backend.describe_node_pool(DEFAULT_POOL).machine_type
        logger.info(
            f"Creating node pool {NEW_POOL} ({machine_type}) "
            f"with kubernetes version {self.config.target_version}"
        )
        self.backend.create_node_pool(
            NEW_POOL,
            machine_type=machine_type,
            node_count=self.config.num_nodes,
            labels={NODEPOOL_LABEL: self.config.target_version},
        )

    def cordon_default_pool(self) -> None:
        self._connect()
        logger.info("Cordoning nodes in old node pool")
        cordon_by_label(self.backend, self.old_pool_selector)

    def new_node_pool(self) -> None:
        self.create_new_pool()
        self.cordon_default_pool()

    def drain_default_pool(self) -> None:
        self._connect()
        drain_by_label(
            self.backend,
            self.old_pool_selector,
            disable_prompts=self.config.disable_prompts,
        )

    def delete_default_pool(self) -> None:
        logger.info("Deleting the default node pool")
        self.backend.delete_node_pool(DEFAULT_POOL)

    def delete(self) -> None:
        self.delete_cluster()

    def auto_steps(self) -> list[Step]:
        return [
            Step("create", self.create, self.DESCRIPTIONS["create"]),
            Step("upgrade-control", self.upgrade_control, self.DESCRIPTIONS["upgrade-control"]),
            Step("new-node-pool", self.create_new_pool, "Creating the new node pool"),
            Step(
                "cordon-default-pool",
                self.cordon_default_pool,
                self.DESCRIPTIONS["cordon-default-pool"],
            ),
            Step(
                "drain-default-pool",
                self.drain_default_pool,
                self.DESCRIPTIONS["drain-default-pool"],
            ),
            Step("wait-for-upgrade", self.wait_for_upgrade, self.DESCRIPTIONS["wait-for-upgrade"]),
            Step(
                "delete-default-pool",
                self.delete_default_pool,
                self.DESCRIPTIONS["delete-default-pool"],
            ),
            Step("validate", self.validate, "Validating the migration"),
        ]
