import pytest
from pydantic import ValidationError

from poolshift.config import MigrationConfig, load_config
from poolshift.errors import ConfigError

FULL = {
    "GCLOUD_PROJECT": "test-project",
    "GCLOUD_REGION": "us-west1",
    "K8S_VER": "1.29.8-gke.1031000",
    "NEW_K8S_VER": "1.30.4-gke.1348000",
    "MACHINE_TYPE": "e2-standard-2",
    "NUM_NODES": "1",
}


def _no_gcloud(prop):
    raise AssertionError(f"gcloud should not be consulted for {prop}")


def test_load_config_from_properties_file(env_file):
    path = env_file(**FULL)

    config = load_config(env_file=path, resolver=_no_gcloud)

    assert config.project == "test-project"
    assert config.region == "us-west1"
    assert config.current_version == "1.29.8-gke.1031000"
    assert config.target_version == "1.30.4-gke.1348000"
    assert config.machine_type == "e2-standard-2"
    assert config.num_nodes == 1
    assert config.strategy == "blue-green"
    assert config.cluster_name == "blue-green-test"
    assert config.disable_prompts is False
    # No timeout unless one is configured
    assert config.operation_timeout is None
    assert config.drain_timeout is None


def test_environment_overrides_file(env_file, monkeypatch):
    path = env_file(**FULL)
    monkeypatch.setenv("NUM_NODES", "3")
    monkeypatch.setenv("CLUSTER_NAME", "my-cluster")

    config = load_config(env_file=path, resolver=_no_gcloud)

    assert config.num_nodes == 3
    assert config.cluster_name == "my-cluster"


def test_default_cluster_name_follows_strategy(env_file):
    path = env_file(**FULL, UPGRADE_STRATEGY="expand-contract")

    assert load_config(env_file=path, resolver=_no_gcloud).cluster_name == (
        "expand-contract-upgrade"
    )
    assert (
        load_config(env_file=path, strategy="blue-green", resolver=_no_gcloud).strategy
        == "blue-green"
    )


def test_missing_new_version_is_reported_before_gcloud(env_file):
    values = {k: v for k, v in FULL.items() if k != "NEW_K8S_VER"}
    values.pop("GCLOUD_PROJECT")
    path = env_file(**values)

    with pytest.raises(ConfigError) as exc:
        load_config(env_file=path, resolver=_no_gcloud)

    assert "NEW_K8S_VER" in str(exc.value)
    assert exc.value.exit_code == 1


def test_missing_keys_are_all_named(env_file):
    path = env_file(GCLOUD_PROJECT="p", GCLOUD_REGION="r")

    with pytest.raises(ConfigError) as exc:
        load_config(env_file=path, resolver=_no_gcloud)

    for key in ("K8S_VER", "NEW_K8S_VER", "MACHINE_TYPE", "NUM_NODES"):
        assert key in str(exc.value)


def test_empty_value_counts_as_missing(env_file):
    path = env_file(**{**FULL, "K8S_VER": ""})

    with pytest.raises(ConfigError, match="K8S_VER"):
        load_config(env_file=path, resolver=_no_gcloud)


def test_invalid_node_count(env_file):
    path = env_file(**{**FULL, "NUM_NODES": "zero"})

    with pytest.raises(ConfigError, match="NUM_NODES"):
        load_config(env_file=path, resolver=_no_gcloud)


def test_zero_poll_interval_is_rejected(env_file):
    path = env_file(**FULL, POLL_INTERVAL_SECONDS="0")

    with pytest.raises(ConfigError, match="POLL_INTERVAL_SECONDS"):
        load_config(env_file=path, resolver=_no_gcloud)


def test_explicit_env_file_must_exist(tmp_path):
    with pytest.raises(ConfigError, match="Define a properties file"):
        load_config(env_file=tmp_path / "missing.env", resolver=_no_gcloud)


def test_project_and_region_fall_back_to_gcloud(env_file, mocker):
    values = {k: v for k, v in FULL.items() if k not in ("GCLOUD_PROJECT", "GCLOUD_REGION")}
    path = env_file(**values)
    resolver = mocker.Mock(side_effect={"core/project": "gp", "compute/region": "gr"}.get)

    config = load_config(env_file=path, resolver=resolver)

    assert config.project == "gp"
    assert config.region == "gr"


def test_unset_gcloud_region_is_an_error(env_file):
    values = {k: v for k, v in FULL.items() if k != "GCLOUD_REGION"}
    path = env_file(**values)

    with pytest.raises(ConfigError, match="GCLOUD_REGION is not set"):
        load_config(env_file=path, resolver=lambda prop: "")


def test_timeouts_are_configurable(env_file):
    path = env_file(**FULL, OPERATION_TIMEOUT_SECONDS="3600", DRAIN_TIMEOUT_SECONDS="600")

    config = load_config(env_file=path, resolver=_no_gcloud)

    assert config.operation_timeout == 3600
    assert config.drain_timeout == 600


def test_config_is_immutable(config):
    with pytest.raises(ValidationError):
        config.target_version = "1.31"

    updated = config.model_copy(update={"disable_prompts": True})
    assert updated.disable_prompts is True
    assert config.disable_prompts is False


def test_config_rejects_zero_nodes():
    with pytest.raises(ValidationError):
        MigrationConfig(
            project="p",
            region="r",
            cluster_name="c",
            machine_type="m",
            num_nodes=0,
            current_version="a",
            target_version="b",
        )
