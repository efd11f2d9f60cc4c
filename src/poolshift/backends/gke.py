from collections.abc import Callable
from typing import Any

from google.api_core.exceptions import GoogleAPICallError
from google.cloud import container_v1
from kubernetes.client.exceptions import ApiException
from tenacity import RetryError, Retrying, retry_if_result, stop_after_delay, stop_never, wait_fixed
from urllib3.exceptions import HTTPError

from .. import gcloud
from ..clients import get_gke_client, get_rbac_v1_client, reset_kube_client
from ..config import MigrationConfig
from ..core import ADMIN_BINDING_NAME, DEFAULT_POOL
from ..errors import BackendError, OperationTimeoutError
from ..logger import logger
from ..schemas.cluster import ClusterOperation, NodeInfo, NodePoolInfo
from .base import ClusterBackend
from .nodes import NodeOperations


def _to_operation(op: Any) -> ClusterOperation:
    error = op.error.message if op.error and op.error.message else op.status_message
    return ClusterOperation(
        name=op.name,
        operation_type=str(op.operation_type.name),
        status=str(op.status.name),
        target_link=op.target_link,
        error=error or None,
    )


class GKEBackend(ClusterBackend):
    """ClusterBackend for a regional GKE cluster via the ClusterManager API."""

    def __init__(self, config: MigrationConfig, nodes: NodeOperations | None = None):
        self.config = config
        self.nodes = nodes or NodeOperations(
            drain_timeout=config.drain_timeout, poll_interval=config.poll_interval
        )

    @property
    def location_path(self) -> str:
        return f"projects/{self.config.project}/locations/{self.config.region}"

    @property
    def cluster_path(self) -> str:
        return f"{self.location_path}/clusters/{self.config.cluster_name}"

    def pool_path(self, name: str) -> str:
        return f"{self.cluster_path}/nodePools/{name}"

    def operation_path(self, name: str) -> str:
        return f"{self.location_path}/operations/{name}"

    def _call(self, description: str, method: Callable[..., Any], request: Any) -> Any:
        try:
            return method(request=request)
        except GoogleAPICallError as e:
            raise BackendError(f"{description} failed: {e.message}") from e

    def _mutate(self, description: str, method: Callable[..., Any], request: Any) -> None:
        operation = self._call(description, method, request)
        logger.debug(f"{description}: started {operation.name}")
        self.wait_for_operation(operation.name, timeout=self.config.operation_timeout)

    # Cluster lifecycle

    def create_cluster(
        self, version: str, machine_type: str, node_count: int, node_labels: dict[str, str]
    ) -> None:
        cluster = container_v1.Cluster(
            name=self.config.cluster_name,
            initial_cluster_version=version,
            node_pools=[
                container_v1.NodePool(
                    name=DEFAULT_POOL,
                    initial_node_count=node_count,
                    config=container_v1.NodeConfig(
                        machine_type=machine_type, labels=node_labels
                    ),
                )
            ],
        )
        request = container_v1.CreateClusterRequest(
            parent=self.location_path, cluster=cluster
        )
        self._mutate(
            f"Creating cluster {self.config.cluster_name}",
            get_gke_client().create_cluster,
            request,
        )

    def get_credentials(self) -> None:
        gcloud.get_credentials(
            self.config.cluster_name, self.config.region, self.config.project
        )
        reset_kube_client()

    def bind_cluster_admin(self) -> None:
        account = gcloud.get_active_account()
        if not account:
            raise BackendError("No active gcloud account to bind cluster-admin to")

        body = {
            "apiVersion": "rbac.authorization.k8s.io/v1",
            "kind": "ClusterRoleBinding",
            "metadata": {"name": ADMIN_BINDING_NAME},
            "roleRef": {
                "apiGroup": "rbac.authorization.k8s.io",
                "kind": "ClusterRole",
                "name": "cluster-admin",
            },
            "subjects": [
                {"apiGroup": "rbac.authorization.k8s.io", "kind": "User", "name": account}
            ],
        }
        try:
            get_rbac_v1_client().create_cluster_role_binding(body)
        except ApiException as e:
            raise BackendError(f"Binding cluster-admin to {account} failed: {e.reason}") from e
        except HTTPError as e:
            raise BackendError(f"Binding cluster-admin to {account} failed: {e}") from e
        logger.info(f"clusterrolebinding/{ADMIN_BINDING_NAME} created for {account}")

    def upgrade_control_plane(self, version: str) -> None:
        request = container_v1.UpdateMasterRequest(
            name=self.cluster_path, master_version=version
        )
        self._mutate(
            f"Upgrading control plane to {version}",
            get_gke_client().update_master,
            request,
        )

    def delete_cluster(self) -> None:
        request = container_v1.DeleteClusterRequest(name=self.cluster_path)
        self._mutate(
            f"Deleting cluster {self.config.cluster_name}",
            get_gke_client().delete_cluster,
            request,
        )

    # Node pools

    def describe_node_pool(self, name: str) -> NodePoolInfo:
        request = container_v1.GetNodePoolRequest(name=self.pool_path(name))
        np = self._call(f"Describing node pool {name}", get_gke_client().get_node_pool, request)
        return NodePoolInfo(
            name=np.name,
            machine_type=np.config.machine_type,
            image_type=np.config.image_type,
            node_count=np.initial_node_count,
            version=np.version,
            status=str(np.status.name),
            labels=dict(np.config.labels),
        )

    def create_node_pool(
        self, name: str, machine_type: str, node_count: int, labels: dict[str, str]
    ) -> None:
        node_pool = container_v1.NodePool(
            name=name,
            initial_node_count=node_count,
            config=container_v1.NodeConfig(machine_type=machine_type, labels=labels),
        )
        request = container_v1.CreateNodePoolRequest(
            parent=self.cluster_path, node_pool=node_pool
        )
        self._mutate(f"Creating node pool {name}", get_gke_client().create_node_pool, request)

    def delete_node_pool(self, name: str) -> None:
        request = container_v1.DeleteNodePoolRequest(name=self.pool_path(name))
        self._mutate(f"Deleting node pool {name}", get_gke_client().delete_node_pool, request)

    def resize_node_pool(self, name: str, size: int) -> None:
        request = container_v1.SetNodePoolSizeRequest(
            name=self.pool_path(name), node_count=size
        )
        self._mutate(
            f"Resizing node pool {name} to {size}",
            get_gke_client().set_node_pool_size,
            request,
        )

    def upgrade_node_pool(self, name: str, version: str) -> None:
        # The API requires the image type; keep whatever the pool runs today
        current = self.describe_node_pool(name)
        request = container_v1.UpdateNodePoolRequest(
            name=self.pool_path(name),
            node_version=version,
            image_type=current.image_type,
        )
        self._mutate(
            f"Upgrading node pool {name} to {version}",
            get_gke_client().update_node_pool,
            request,
        )

    # Operations

    def list_operations(self) -> list[ClusterOperation]:
        request = container_v1.ListOperationsRequest(parent=self.location_path)
        response = self._call("Listing operations", get_gke_client().list_operations, request)

        suffix = f"/clusters/{self.config.cluster_name}"
        return [
            _to_operation(op)
            for op in response.operations
            if op.target_link.endswith(suffix) or f"{suffix}/" in op.target_link
        ]

    def get_operation(self, name: str) -> ClusterOperation:
        request = container_v1.GetOperationRequest(name=self.operation_path(name))
        op = self._call(f"Describing operation {name}", get_gke_client().get_operation, request)
        return _to_operation(op)

    def wait_for_operation(self, name: str, timeout: float | None = None) -> ClusterOperation:
        """
        Polls the operation until it is DONE (or ABORTING).
        With no timeout this blocks for as long as the provider takes.
        """
        retrying = Retrying(
            retry=retry_if_result(lambda op: not op.is_finished),
            wait=wait_fixed(self.config.poll_interval),
            stop=stop_after_delay(timeout) if timeout else stop_never,
        )
        try:
            operation = retrying(self.get_operation, name)
        except RetryError as e:
            raise OperationTimeoutError(
                f"Operation {name} did not finish within {timeout}s"
            ) from e

        if operation.status == "ABORTING" or operation.error:
            raise BackendError(
                f"Operation {name} ({operation.operation_type}) failed: "
                f"{operation.error or operation.status}"
            )
        return operation

    # Nodes

    def list_nodes(self, selector: str) -> list[NodeInfo]:
        return self.nodes.list_nodes(selector)

    def cordon_node(self, name: str) -> None:
        self.nodes.cordon(name)

    def drain_node(self, name: str) -> None:
        self.nodes.drain(name)
