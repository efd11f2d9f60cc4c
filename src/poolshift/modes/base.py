import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from functools import partial

from ..backends.base import ClusterBackend, WorkloadDeployer
from ..config import MigrationConfig
from ..core import NODEPOOL_LABEL
from ..errors import UsageError
from ..logger import logger
from ..orchestrator import Step
from ..poller import wait_for_upgrade


class Migration(ABC):
    """
    Steps shared by both upgrade runbooks.

    Subclasses map CLI action names to methods in ACTIONS and define the
    fixed order of the `auto` workflow in auto_steps().
    """

    strategy = ""
    ACTIONS: dict[str, str] = {}
    # Actions that take the <N> positional
    SIZED_ACTIONS: frozenset[str] = frozenset()
    DESCRIPTIONS: dict[str, str] = {}

    def __init__(
        self,
        config: MigrationConfig,
        backend: ClusterBackend,
        deployer: WorkloadDeployer,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.backend = backend
        self.deployer = deployer
        self.sleep = sleep
        self._connected = False

    @classmethod
    def check_action(cls, action: str, size: str | None = None) -> int | None:
        """Validates an action and its <N>; returns N parsed, if the action takes one."""
        if action != "auto" and action not in cls.ACTIONS:
            raise UsageError(
                f"Action '{action}' is not available for the {cls.strategy} strategy"
            )

        if action not in cls.SIZED_ACTIONS:
            if size is not None:
                raise UsageError(f"Action '{action}' takes no parameters")
            return None

        if size is None:
            raise UsageError(f"Action '{action}' requires <N>, the number of nodes per zone")
        try:
            n = int(size)
        except ValueError:
            raise UsageError(f"<N> must be a whole number, got '{size}'") from None
        if n < 0:
            raise UsageError(f"<N> must not be negative, got {n}")
        return n

    def steps_for(self, action: str, size: int | None = None) -> list[Step]:
        if action == "auto":
            # The automatic workflow never stops to ask
            if not self.config.disable_prompts:
                self.config = self.config.model_copy(update={"disable_prompts": True})
            return self.auto_steps()

        method = getattr(self, self.ACTIONS[action])
        if action in self.SIZED_ACTIONS:
            method = partial(method, size)
        return [Step(action, method, self.DESCRIPTIONS.get(action, action))]

    @abstractmethod
    def auto_steps(self) -> list[Step]:
        """The fixed step order of the `auto` workflow."""

    @property
    def old_pool_selector(self) -> str:
        return f"{NODEPOOL_LABEL}={self.config.current_version}"

    def _connect(self) -> None:
        if not self._connected:
            self.backend.get_credentials()
            self._connected = True

    # Shared steps

    def create_cluster(self) -> None:
        logger.info("Building a GKE cluster using the following values: ")
        logger.info(f"GCLOUD_REGION = {self.config.region}")
        logger.info(f"GCLOUD_PROJECT = {self.config.project}")
        logger.info(f"GKE Version = {self.config.current_version}")

        self.backend.create_cluster(
            version=self.config.current_version,
            machine_type=self.config.machine_type,
            node_count=self.config.num_nodes,
            node_labels={NODEPOOL_LABEL: self.config.current_version},
        )
        # Acquire the kubectl credentials
        self.backend.get_credentials()
        self._connected = True

    def install_app(self) -> None:
        self._connect()
        self.deployer.deploy()

    def upgrade_control(self) -> None:
        logger.info(f"Upgrading control plane to version {self.config.target_version}")
        self.backend.upgrade_control_plane(self.config.target_version)

    def wait_for_upgrade(self) -> None:
        wait_for_upgrade(self.backend, self.config)

    def validate(self) -> None:
        self._connect()
        self.deployer.validate()

    def delete_cluster(self) -> None:
        logger.info(f"Deleting the GKE cluster {self.config.cluster_name}")
        self.backend.delete_cluster()
