"""
Checks run before any mutating step: local binaries, the target project,
and the GCP APIs the runbooks depend on.
"""

import shutil
from collections.abc import Callable
from concurrent import futures
from typing import Any

from google.api_core.exceptions import GoogleAPICallError, NotFound, PermissionDenied
from google.cloud import resourcemanager_v3, service_usage_v1
from tenacity import retry

from .clients import get_projects_client, get_service_usage_client
from .config import MigrationConfig
from .core import REQUIRED_APIS, REQUIRED_EXECUTABLES, RETRY_CONFIG
from .errors import BackendError, MissingExecutableError, OperationTimeoutError, PreflightError
from .logger import logger


def check_dependencies(
    executables: list[str] = REQUIRED_EXECUTABLES,
    which: Callable[[str], str | None] = shutil.which,
) -> None:
    logger.info("Checking dependencies are installed .....")
    for name in executables:
        if which(name) is None:
            raise MissingExecutableError(f"{name} is not installed!")


@retry(**RETRY_CONFIG)  # type: ignore[call-overload, untyped-decorator]
def _get_project(project_id: str) -> Any:
    return get_projects_client().get_project(name=f"projects/{project_id}")


def check_project(project_id: str) -> None:
    logger.info("Checking the project specified for the demo exists .....")
    try:
        project = _get_project(project_id)
    except (NotFound, PermissionDenied) as e:
        # Resource Manager answers 403 for projects that do not exist, too
        raise PreflightError(
            f"the {project_id} project does not exist; "
            "please update the properties file with a valid project"
        ) from e
    except GoogleAPICallError as e:
        raise BackendError(f"Looking up project {project_id} failed: {e.message}") from e

    if project.state != resourcemanager_v3.Project.State.ACTIVE:
        raise PreflightError(
            f"the {project_id} project is {project.state.name}, not ACTIVE"
        )


@retry(**RETRY_CONFIG)  # type: ignore[call-overload, untyped-decorator]
def _get_service(name: str) -> Any:
    return get_service_usage_client().get_service(request={"name": name})


def check_apis(project_id: str, timeout: float | None = None) -> list[str]:
    """Enables any required API that is not enabled yet. Returns what it enabled."""
    logger.info("Checking the appropriate API's are enabled .....")
    enabled = []
    for api, label in REQUIRED_APIS.items():
        name = f"projects/{project_id}/services/{api}"
        try:
            service = _get_service(name)
            if service.state == service_usage_v1.State.ENABLED:
                continue

            logger.info(f"Enabling the {label} API")
            operation = get_service_usage_client().enable_service(request={"name": name})
            operation.result(timeout=timeout)
        except GoogleAPICallError as e:
            raise BackendError(f"Enabling {api} failed: {e.message}") from e
        except futures.TimeoutError as e:
            raise OperationTimeoutError(f"Enabling {api} did not finish within {timeout}s") from e
        enabled.append(api)
    return enabled


def run_preflight(config: MigrationConfig) -> None:
    check_dependencies()
    check_project(config.project)
    check_apis(config.project, timeout=config.operation_timeout)
