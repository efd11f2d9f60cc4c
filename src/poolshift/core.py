from google.api_core import exceptions as google_exceptions
from tenacity import retry_if_exception_type, stop_after_attempt, wait_exponential

# Shared retry configuration for read-only preflight lookups.
# Mutating backend calls are never retried.
# usage: @retry(**RETRY_CONFIG)
RETRY_CONFIG = {
    "stop": stop_after_attempt(3),
    "wait": wait_exponential(multiplier=1, min=4, max=10),
    "retry": retry_if_exception_type(
        (
            google_exceptions.ServiceUnavailable,
            google_exceptions.DeadlineExceeded,
            google_exceptions.InternalServerError,
        )
    ),
    "reraise": True,
}

BLUE_GREEN = "blue-green"
EXPAND_CONTRACT = "expand-contract"
STRATEGIES = [BLUE_GREEN, EXPAND_CONTRACT]

DEFAULT_CLUSTER_NAMES = {
    BLUE_GREEN: "blue-green-test",
    EXPAND_CONTRACT: "expand-contract-upgrade",
}

# Node pools and the label that ties nodes to the version they were built with
DEFAULT_POOL = "default-pool"
NEW_POOL = "new-pool"
NODEPOOL_LABEL = "nodepool"

# Expand/contract pool sizes (nodes per zone)
EXPANDED_POOL_SIZE = 2
CONTRACTED_POOL_SIZE = 1

# Binaries needed on the operator's workstation.
# gke-gcloud-auth-plugin is the exec credential plugin in the kubeconfig
# written by `gcloud container clusters get-credentials`.
REQUIRED_EXECUTABLES = ["gcloud", "gke-gcloud-auth-plugin"]

REQUIRED_APIS = {
    "compute.googleapis.com": "Compute Engine",
    "container.googleapis.com": "Kubernetes Engine",
}

UPGRADE_MASTER = "UPGRADE_MASTER"
RUNNING = "RUNNING"
OPERATION_NAME_PREFIX = "operation-"

ADMIN_BINDING_NAME = "cluster-admin-binding"

# Polling cadence defaults (seconds)
DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_SETTLE_SECONDS = 10.0
EVICTION_RETRY_SECONDS = 5.0
VALIDATION_TIMEOUT_SECONDS = 300.0

# Sample workload shipped in poolshift/manifests
WORKLOAD_NAMESPACE = "default"
WORKLOAD_DEPLOYMENT = "hello-server"
WORKLOAD_SERVICE = "hello-server"
