"""Node listing, cordon and drain through the Kubernetes API."""

from typing import Any

from kubernetes.client.exceptions import ApiException
from tenacity import (
    RetryError,
    Retrying,
    retry_if_exception,
    retry_if_result,
    stop_after_delay,
    stop_never,
    wait_fixed,
)
from urllib3.exceptions import HTTPError

from ..clients import get_core_v1_client
from ..core import DEFAULT_POLL_INTERVAL, EVICTION_RETRY_SECONDS
from ..errors import BackendError, OperationTimeoutError
from ..logger import logger
from ..schemas.cluster import NodeInfo

MIRROR_POD_ANNOTATION = "kubernetes.io/config.mirror"


def _stop(timeout: float | None) -> Any:
    return stop_after_delay(timeout) if timeout else stop_never


def _is_pdb_refusal(exc: BaseException) -> bool:
    # The Eviction API answers 429 while a PodDisruptionBudget blocks it
    return isinstance(exc, ApiException) and exc.status == 429


def _is_daemonset_pod(pod: Any) -> bool:
    owners = pod.metadata.owner_references or []
    return any(owner.kind == "DaemonSet" for owner in owners)


def _is_mirror_pod(pod: Any) -> bool:
    annotations = pod.metadata.annotations or {}
    return MIRROR_POD_ANNOTATION in annotations


def _is_ready(node: Any) -> bool:
    conditions = (node.status.conditions if node.status else None) or []
    return any(c.type == "Ready" and c.status == "True" for c in conditions)


class NodeOperations:
    """
    Mirrors `kubectl cordon` and
    `kubectl drain --ignore-daemonsets --delete-emptydir-data --force`.
    """

    def __init__(
        self,
        drain_timeout: float | None = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        eviction_retry_seconds: float = EVICTION_RETRY_SECONDS,
    ):
        self.drain_timeout = drain_timeout
        self.poll_interval = poll_interval
        self.eviction_retry_seconds = eviction_retry_seconds

    def list_nodes(self, selector: str) -> list[NodeInfo]:
        core = get_core_v1_client()
        try:
            response = core.list_node(label_selector=selector)
        except ApiException as e:
            raise BackendError(f"Listing nodes for '{selector}' failed: {e.reason}") from e
        except HTTPError as e:
            raise BackendError(f"Listing nodes for '{selector}' failed: {e}") from e

        nodes = []
        for node in response.items:
            info = node.status.node_info if node.status else None
            nodes.append(
                NodeInfo(
                    name=node.metadata.name,
                    labels=dict(node.metadata.labels or {}),
                    unschedulable=bool(node.spec.unschedulable) if node.spec else False,
                    ready=_is_ready(node),
                    kubelet_version=info.kubelet_version if info else "",
                )
            )
        return nodes

    def cordon(self, name: str) -> None:
        core = get_core_v1_client()
        try:
            core.patch_node(name, {"spec": {"unschedulable": True}})
        except ApiException as e:
            raise BackendError(f"Cordoning node {name} failed: {e.reason}") from e
        except HTTPError as e:
            raise BackendError(f"Cordoning node {name} failed: {e}") from e
        logger.info(f"node/{name} cordoned")

    def drain(self, name: str) -> None:
        self.cordon(name)

        pods = [
            pod
            for pod in self._pods_on(name)
            if not _is_daemonset_pod(pod) and not _is_mirror_pod(pod)
        ]
        if not pods:
            logger.info(f"node/{name} drained (nothing to evict)")
            return

        for pod in pods:
            self._evict(pod.metadata.namespace, pod.metadata.name)

        evicted = {(p.metadata.namespace, p.metadata.name, p.metadata.uid) for p in pods}
        self._wait_for_pods_gone(name, evicted)
        logger.info(f"node/{name} drained")

    def _pods_on(self, node: str) -> list[Any]:
        core = get_core_v1_client()
        try:
            return list(
                core.list_pod_for_all_namespaces(field_selector=f"spec.nodeName={node}").items
            )
        except ApiException as e:
            raise BackendError(f"Listing pods on node {node} failed: {e.reason}") from e
        except HTTPError as e:
            raise BackendError(f"Listing pods on node {node} failed: {e}") from e

    def _evict(self, namespace: str, pod: str) -> None:
        core = get_core_v1_client()
        body = {
            "apiVersion": "policy/v1",
            "kind": "Eviction",
            "metadata": {"name": pod, "namespace": namespace},
        }
        retrying = Retrying(
            retry=retry_if_exception(_is_pdb_refusal),
            wait=wait_fixed(self.eviction_retry_seconds),
            stop=_stop(self.drain_timeout),
            reraise=True,
        )
        try:
            retrying(core.create_namespaced_pod_eviction, pod, namespace, body)
        except ApiException as e:
            if e.status == 404:
                return
            raise BackendError(f"Evicting pod {namespace}/{pod} failed: {e.reason}") from e
        except HTTPError as e:
            raise BackendError(f"Evicting pod {namespace}/{pod} failed: {e}") from e
        logger.debug(f"evicting pod {namespace}/{pod}")

    def _wait_for_pods_gone(self, node: str, evicted: set[tuple[str, str, str]]) -> None:
        def remaining() -> set[tuple[str, str, str]]:
            current = {
                (p.metadata.namespace, p.metadata.name, p.metadata.uid)
                for p in self._pods_on(node)
            }
            return evicted & current

        retrying = Retrying(
            retry=retry_if_result(bool),
            wait=wait_fixed(self.poll_interval),
            stop=_stop(self.drain_timeout),
        )
        try:
            retrying(remaining)
        except RetryError as e:
            raise OperationTimeoutError(
                f"Pods on node {node} were not evicted within {self.drain_timeout}s"
            ) from e
