"""The hello-server sample workload: apply, delete and post-migration checks."""

from importlib.resources import files
from typing import Any

import yaml
from kubernetes import utils as k8s_utils
from kubernetes.client.exceptions import ApiException
from rich.table import Table
from tenacity import RetryError, Retrying, retry_if_result, stop_after_delay, wait_fixed
from urllib3.exceptions import HTTPError

from ..clients import get_apps_v1_client, get_core_v1_client, get_kube_api_client
from ..config import MigrationConfig
from ..core import (
    VALIDATION_TIMEOUT_SECONDS,
    WORKLOAD_DEPLOYMENT,
    WORKLOAD_NAMESPACE,
    WORKLOAD_SERVICE,
)
from ..errors import BackendError
from ..logger import console, logger
from .base import WorkloadDeployer
from .nodes import NodeOperations


def load_manifests() -> list[dict[str, Any]]:
    """Parses every YAML document shipped in poolshift/manifests, in file-name order."""
    manifest_dir = files("poolshift").joinpath("manifests")
    docs = []
    for entry in sorted(manifest_dir.iterdir(), key=lambda e: e.name):
        if not entry.name.endswith((".yaml", ".yml")):
            continue
        docs.extend(doc for doc in yaml.safe_load_all(entry.read_text()) if doc)
    return docs


class ManifestDeployer(WorkloadDeployer):
    def __init__(
        self,
        config: MigrationConfig,
        nodes: NodeOperations | None = None,
        timeout: float = VALIDATION_TIMEOUT_SECONDS,
    ):
        self.config = config
        self.nodes = nodes or NodeOperations(poll_interval=config.poll_interval)
        self.timeout = timeout

    def deploy(self) -> None:
        logger.info("Installing Hello App")
        api_client = get_kube_api_client()
        for doc in load_manifests():
            kind, name = doc["kind"], doc["metadata"]["name"]
            try:
                k8s_utils.create_from_dict(
                    api_client, doc, namespace=doc["metadata"].get("namespace", WORKLOAD_NAMESPACE)
                )
            except k8s_utils.FailToCreateError as e:
                reasons = ", ".join(str(exc.reason) for exc in e.api_exceptions)
                raise BackendError(f"Creating {kind} {name} failed: {reasons}") from e
            except HTTPError as e:
                raise BackendError(f"Creating {kind} {name} failed: {e}") from e
            logger.info(f"{kind.lower()}/{name} created")

    def remove(self) -> None:
        deleters = {
            "Deployment": get_apps_v1_client().delete_namespaced_deployment,
            "Service": get_core_v1_client().delete_namespaced_service,
        }
        for doc in reversed(load_manifests()):
            kind, name = doc["kind"], doc["metadata"]["name"]
            namespace = doc["metadata"].get("namespace", WORKLOAD_NAMESPACE)
            delete = deleters.get(kind)
            if delete is None:
                raise BackendError(f"Don't know how to delete {kind} {name}")
            try:
                delete(name, namespace)
            except ApiException as e:
                if e.status == 404:
                    continue
                raise BackendError(f"Deleting {kind} {name} failed: {e.reason}") from e
            except HTTPError as e:
                raise BackendError(f"Deleting {kind} {name} failed: {e}") from e
            logger.info(f"{kind.lower()}/{name} deleted")

    def _unavailable_replicas(self) -> int:
        try:
            deployment = get_apps_v1_client().read_namespaced_deployment(
                WORKLOAD_DEPLOYMENT, WORKLOAD_NAMESPACE
            )
        except ApiException as e:
            raise BackendError(
                f"Reading deployment {WORKLOAD_DEPLOYMENT} failed: {e.reason}"
            ) from e
        except HTTPError as e:
            raise BackendError(f"Reading deployment {WORKLOAD_DEPLOYMENT} failed: {e}") from e
        desired = deployment.spec.replicas or 0
        available = deployment.status.available_replicas or 0
        return max(desired - available, 0)

    def _external_ip(self) -> str | None:
        try:
            svc = get_core_v1_client().read_namespaced_service(
                WORKLOAD_SERVICE, WORKLOAD_NAMESPACE
            )
        except ApiException as e:
            raise BackendError(f"Reading service {WORKLOAD_SERVICE} failed: {e.reason}") from e
        except HTTPError as e:
            raise BackendError(f"Reading service {WORKLOAD_SERVICE} failed: {e}") from e
        lb = svc.status.load_balancer if svc.status else None
        ingress = (lb.ingress if lb else None) or []
        return ingress[0].ip if ingress else None

    def validate(self) -> None:
        """
        Checks that every node is Ready and the hello-server deployment is
        fully available, waiting up to `timeout` seconds for the rollout.
        """
        logger.info("Validating the cluster and the hello-server workload .....")

        nodes = self.nodes.list_nodes("")
        table = Table(title=f"Nodes in {self.config.cluster_name} ({len(nodes)})")
        table.add_column("Node", style="cyan")
        table.add_column("Pool")
        table.add_column("Kubelet")
        table.add_column("Ready")
        for node in nodes:
            table.add_row(
                node.name,
                node.labels.get("cloud.google.com/gke-nodepool", "-"),
                node.kubelet_version,
                "[green]yes[/green]" if node.ready else "[red]no[/red]",
            )
        console.print(table)

        not_ready = [n.name for n in nodes if not n.ready]
        if not nodes or not_ready:
            raise BackendError(f"Nodes not ready: {', '.join(not_ready) or 'no nodes found'}")

        retrying = Retrying(
            retry=retry_if_result(bool),
            wait=wait_fixed(self.config.poll_interval),
            stop=stop_after_delay(self.timeout),
        )
        try:
            retrying(self._unavailable_replicas)
        except RetryError as e:
            raise BackendError(
                f"Deployment {WORKLOAD_DEPLOYMENT} not available after {self.timeout}s"
            ) from e

        ip = self._external_ip()
        logger.info(
            f"[green]✓[/green] {WORKLOAD_DEPLOYMENT} is available"
            + (f" at http://{ip}/" if ip else " (load balancer IP pending)")
        )
