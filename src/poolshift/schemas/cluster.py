from pydantic import BaseModel, Field

from ..core import UPGRADE_MASTER


class NodePoolInfo(BaseModel):
    name: str
    machine_type: str
    image_type: str = ""
    node_count: int
    version: str
    status: str
    labels: dict[str, str] = Field(default_factory=dict)


class NodeInfo(BaseModel):
    name: str
    labels: dict[str, str] = Field(default_factory=dict)
    unschedulable: bool = False
    ready: bool = True
    kubelet_version: str = ""


class ClusterOperation(BaseModel):
    name: str = Field(description="e.g., operation-1526401200000-a1b2c3d4")
    operation_type: str = Field(description="e.g., UPGRADE_MASTER, CREATE_NODE_POOL")
    status: str = Field(description="PENDING, RUNNING, DONE or ABORTING")
    target_link: str = ""
    error: str | None = None

    @property
    def is_finished(self) -> bool:
        return self.status in ("DONE", "ABORTING")

    @property
    def is_master_upgrade(self) -> bool:
        return self.operation_type == UPGRADE_MASTER
