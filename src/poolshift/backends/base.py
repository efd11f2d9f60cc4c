"""
Capability interfaces the migration workflows are written against.

Production code uses the GKE/Kubernetes implementations in this package;
tests substitute recording fakes.
"""

from abc import ABC, abstractmethod

from ..schemas.cluster import ClusterOperation, NodeInfo, NodePoolInfo


class ClusterBackend(ABC):
    """Lifecycle operations for the single cluster named in the config.

    Mutating calls return only once the provider-side operation is done.
    Failures raise BackendError; nothing is retried.
    """

    @abstractmethod
    def create_cluster(
        self, version: str, machine_type: str, node_count: int, node_labels: dict[str, str]
    ) -> None:
        """Create the cluster with its default node pool."""

    @abstractmethod
    def get_credentials(self) -> None:
        """Point the Kubernetes client at the cluster."""

    @abstractmethod
    def bind_cluster_admin(self) -> None:
        """Grant cluster-admin to the operator's account."""

    @abstractmethod
    def describe_node_pool(self, name: str) -> NodePoolInfo: ...

    @abstractmethod
    def create_node_pool(
        self, name: str, machine_type: str, node_count: int, labels: dict[str, str]
    ) -> None: ...

    @abstractmethod
    def delete_node_pool(self, name: str) -> None: ...

    @abstractmethod
    def resize_node_pool(self, name: str, size: int) -> None:
        """Set the pool size to `size` nodes per zone."""

    @abstractmethod
    def upgrade_control_plane(self, version: str) -> None: ...

    @abstractmethod
    def upgrade_node_pool(self, name: str, version: str) -> None: ...

    @abstractmethod
    def list_operations(self) -> list[ClusterOperation]:
        """Operations targeting this cluster, in provider listing order."""

    @abstractmethod
    def wait_for_operation(self, name: str, timeout: float | None = None) -> ClusterOperation:
        """Block until the operation finishes; None means no timeout."""

    @abstractmethod
    def list_nodes(self, selector: str) -> list[NodeInfo]:
        """Nodes matching a `key=value` label selector."""

    @abstractmethod
    def cordon_node(self, name: str) -> None: ...

    @abstractmethod
    def drain_node(self, name: str) -> None:
        """Cordon and evict everything except DaemonSet and mirror pods."""

    @abstractmethod
    def delete_cluster(self) -> None: ...


class WorkloadDeployer(ABC):
    """Applies, removes and checks the sample workload manifests."""

    @abstractmethod
    def deploy(self) -> None: ...

    @abstractmethod
    def remove(self) -> None:
        """Delete the manifests' objects, ignoring ones that are already gone."""

    @abstractmethod
    def validate(self) -> None:
        """Raise BackendError unless the workload is serving on healthy nodes."""
