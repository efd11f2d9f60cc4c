import pytest

from poolshift.backends.base import ClusterBackend, WorkloadDeployer
from poolshift.config import MigrationConfig
from poolshift.errors import BackendError
from poolshift.schemas.cluster import ClusterOperation, NodeInfo, NodePoolInfo

PROPERTY_KEYS = [
    "GCLOUD_PROJECT",
    "GCLOUD_REGION",
    "CLUSTER_NAME",
    "K8S_VER",
    "NEW_K8S_VER",
    "MACHINE_TYPE",
    "NUM_NODES",
    "UPGRADE_STRATEGY",
    "OPERATION_TIMEOUT_SECONDS",
    "DRAIN_TIMEOUT_SECONDS",
    "POLL_INTERVAL_SECONDS",
    "UPGRADE_SETTLE_SECONDS",
]


class FakeBackend(ClusterBackend):
    """Records every call into a shared log; can be told to fail on one method."""

    def __init__(self, calls, nodes=None, operations=None, fail_on=None, fail_nodes=()):
        self.calls = calls
        self.nodes = nodes if nodes is not None else {}
        self.operations = operations or []
        self.fail_on = fail_on
        self.fail_nodes = set(fail_nodes)
        self.machine_type = "e2-custom-4-8192"

    def _record(self, name, *args):
        self.calls.append((name, *args))
        if name == self.fail_on:
            raise BackendError(f"{name} exploded")

    def create_cluster(self, version, machine_type, node_count, node_labels):
        self._record("create_cluster", version, machine_type, node_count, node_labels)

    def get_credentials(self):
        self._record("get_credentials")

    def bind_cluster_admin(self):
        self._record("bind_cluster_admin")

    def describe_node_pool(self, name):
        self._record("describe_node_pool", name)
        return NodePoolInfo(
            name=name,
            machine_type=self.machine_type,
            node_count=1,
            version="1.29",
            status="RUNNING",
        )

    def create_node_pool(self, name, machine_type, node_count, labels):
        self._record("create_node_pool", name, machine_type, node_count, labels)

    def delete_node_pool(self, name):
        self._record("delete_node_pool", name)

    def resize_node_pool(self, name, size):
        self._record("resize_node_pool", name, size)

    def upgrade_control_plane(self, version):
        self._record("upgrade_control_plane", version)

    def upgrade_node_pool(self, name, version):
        self._record("upgrade_node_pool", name, version)

    def list_operations(self):
        self._record("list_operations")
        return list(self.operations)

    def wait_for_operation(self, name, timeout=None):
        self._record("wait_for_operation", name, timeout)
        return ClusterOperation(name=name, operation_type="UPGRADE_MASTER", status="DONE")

    def list_nodes(self, selector):
        self._record("list_nodes", selector)
        return [NodeInfo(name=n) for n in self.nodes.get(selector, [])]

    def cordon_node(self, name):
        self._record("cordon_node", name)
        if name in self.fail_nodes:
            raise BackendError(f"cordon {name} refused")

    def drain_node(self, name):
        self._record("drain_node", name)
        if name in self.fail_nodes:
            raise BackendError(f"drain {name} refused")

    def delete_cluster(self):
        self._record("delete_cluster")


class FakeDeployer(WorkloadDeployer):
    def __init__(self, calls, fail_on=None):
        self.calls = calls
        self.fail_on = fail_on

    def _record(self, name):
        self.calls.append((name,))
        if name == self.fail_on:
            raise BackendError(f"{name} exploded")

    def deploy(self):
        self._record("deploy")

    def remove(self):
        self._record("remove")

    def validate(self):
        self._record("validate")


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path):
    """Keep the developer's shell and ./.env out of configuration tests."""
    for key in PROPERTY_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def config():
    return MigrationConfig(
        project="test-project",
        region="us-west1",
        cluster_name="test-cluster",
        machine_type="e2-standard-2",
        num_nodes=1,
        current_version="1.29.8-gke.1031000",
        target_version="1.30.4-gke.1348000",
        poll_interval=0,
        settle_seconds=0,
    )


@pytest.fixture
def calls():
    return []


@pytest.fixture
def backend(calls):
    return FakeBackend(calls)


@pytest.fixture
def deployer(calls):
    return FakeDeployer(calls)


@pytest.fixture
def env_file(tmp_path):
    def write(**values):
        path = tmp_path / "props.env"
        path.write_text("".join(f"{k}={v}\n" for k, v in values.items()))
        return path

    return write
