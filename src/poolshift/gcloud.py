"""
Thin wrappers around the gcloud CLI for the few things the client libraries
do not cover: kubeconfig credentials and the active gcloud configuration.
"""

import subprocess

from .errors import BackendError, MissingExecutableError
from .logger import logger

UNSET = "(unset)"


def run_gcloud(args: list[str]) -> str:
    """Runs `gcloud <args>` and returns its stripped stdout."""
    cmd = ["gcloud", *args]
    logger.debug(f"Executing: {' '.join(cmd)}")

    try:
        res = subprocess.run(cmd, capture_output=True, text=True)
    except FileNotFoundError as e:
        raise MissingExecutableError("gcloud is not installed!") from e

    if res.returncode != 0:
        err = res.stderr.strip().splitlines()[-1] if res.stderr.strip() else "Unknown error"
        raise BackendError(f"gcloud {' '.join(args)} failed: {err}")
    return res.stdout.strip()


def get_config_value(prop: str) -> str:
    """
    Reads a property of the active gcloud configuration.
    Returns an empty string when the property is unset.
    """
    value = run_gcloud(["config", "get-value", prop])
    return "" if value == UNSET else value


def get_active_account() -> str:
    return get_config_value("account")


def get_credentials(cluster: str, region: str, project: str) -> None:
    """Writes kubeconfig credentials for the cluster and makes it the current context."""
    run_gcloud(
        [
            "container",
            "clusters",
            "get-credentials",
            cluster,
            "--region",
            region,
            "--project",
            project,
        ]
    )
