from concurrent import futures

import pytest
from google.api_core.exceptions import NotFound, PermissionDenied
from google.cloud import resourcemanager_v3, service_usage_v1

from poolshift.errors import MissingExecutableError, OperationTimeoutError, PreflightError
from poolshift.preflight import check_apis, check_dependencies, check_project, run_preflight


def test_check_dependencies_all_present():
    check_dependencies(["gcloud", "kubectl"], which=lambda name: f"/usr/bin/{name}")


def test_check_dependencies_missing_binary_exits_2():
    with pytest.raises(MissingExecutableError) as exc:
        check_dependencies(["gcloud", "gke-gcloud-auth-plugin"], which={"gcloud": "/bin/gcloud"}.get)

    assert "gke-gcloud-auth-plugin is not installed" in str(exc.value)
    assert exc.value.exit_code == 2


@pytest.fixture
def projects(mocker):
    return mocker.patch("poolshift.preflight.get_projects_client").return_value


@pytest.fixture
def services(mocker):
    return mocker.patch("poolshift.preflight.get_service_usage_client").return_value


def test_check_project_active(projects):
    projects.get_project.return_value = resourcemanager_v3.Project(
        project_id="test-project", state=resourcemanager_v3.Project.State.ACTIVE
    )

    check_project("test-project")

    projects.get_project.assert_called_once_with(name="projects/test-project")


@pytest.mark.parametrize("error", [NotFound("nope"), PermissionDenied("denied")])
def test_check_project_missing(projects, error):
    projects.get_project.side_effect = error

    with pytest.raises(PreflightError, match="does not exist") as exc:
        check_project("ghost-project")

    assert exc.value.exit_code == 1
    # Not a transient error, so no retries
    assert projects.get_project.call_count == 1


def test_check_project_being_deleted(projects):
    projects.get_project.return_value = resourcemanager_v3.Project(
        project_id="test-project", state=resourcemanager_v3.Project.State.DELETE_REQUESTED
    )

    with pytest.raises(PreflightError, match="DELETE_REQUESTED"):
        check_project("test-project")


def _service(state):
    return service_usage_v1.Service(state=state)


def test_check_apis_enables_disabled_apis(services):
    services.get_service.side_effect = [
        _service(service_usage_v1.State.ENABLED),
        _service(service_usage_v1.State.DISABLED),
    ]

    enabled = check_apis("test-project")

    assert enabled == ["container.googleapis.com"]
    services.enable_service.assert_called_once_with(
        request={"name": "projects/test-project/services/container.googleapis.com"}
    )
    services.enable_service.return_value.result.assert_called_once()


def test_check_apis_nothing_to_do(services):
    services.get_service.return_value = _service(service_usage_v1.State.ENABLED)

    assert check_apis("test-project") == []
    services.enable_service.assert_not_called()


def test_run_preflight_order(mocker, config):
    deps = mocker.patch("poolshift.preflight.check_dependencies")
    project = mocker.patch("poolshift.preflight.check_project", side_effect=PreflightError("x"))
    apis = mocker.patch("poolshift.preflight.check_apis")

    with pytest.raises(PreflightError):
        run_preflight(config)

    deps.assert_called_once()
    project.assert_called_once_with("test-project")
    apis.assert_not_called()


def test_check_apis_enablement_times_out(services):
    services.get_service.return_value = _service(service_usage_v1.State.DISABLED)
    services.enable_service.return_value.result.side_effect = futures.TimeoutError()

    with pytest.raises(OperationTimeoutError, match="compute.googleapis.com") as exc:
        check_apis("test-project", timeout=1)

    assert exc.value.exit_code == 1
