from __future__ import annotations

from functools import lru_cache
from typing import Any

from google.auth.exceptions import DefaultCredentialsError
from google.cloud import container_v1, resourcemanager_v3, service_usage_v1
from kubernetes import client as k8s_client
from kubernetes import config as k8s_config
from kubernetes.config.config_exception import ConfigException

from .errors import BackendError

# Shared Client Registry (Lazy-loaded and cached)


def _google_client(factory: Any, service: str) -> Any:
    try:
        return factory()
    except DefaultCredentialsError as e:
        raise BackendError(
            f"No Google Cloud credentials for the {service} client; "
            f"run 'gcloud auth application-default login' ({e})"
        ) from e


@lru_cache(maxsize=1)
def get_gke_client() -> Any:
    return _google_client(container_v1.ClusterManagerClient, "Kubernetes Engine")


@lru_cache(maxsize=1)
def get_projects_client() -> Any:
    return _google_client(resourcemanager_v3.ProjectsClient, "Resource Manager")


@lru_cache(maxsize=1)
def get_service_usage_client() -> Any:
    return _google_client(service_usage_v1.ServiceUsageClient, "Service Usage")


@lru_cache(maxsize=1)
def get_kube_api_client() -> Any:
    # Uses the current context, i.e. the one get-credentials just wrote
    try:
        k8s_config.load_kube_config()
    except ConfigException as e:
        raise BackendError(f"Loading the kubeconfig failed: {e}") from e
    return k8s_client.ApiClient()


def get_core_v1_client() -> Any:
    return k8s_client.CoreV1Api(get_kube_api_client())


def get_apps_v1_client() -> Any:
    return k8s_client.AppsV1Api(get_kube_api_client())


def get_rbac_v1_client() -> Any:
    return k8s_client.RbacAuthorizationV1Api(get_kube_api_client())


def reset_kube_client() -> None:
    """Forgets the cached Kubernetes client so the kubeconfig is re-read."""
    get_kube_api_client.cache_clear()
