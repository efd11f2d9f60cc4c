"""
Configuration for poolshift.

Raw values come from a key/value properties file (`.env` by default) and the
process environment through pydantic-settings. They are resolved once into an
immutable `MigrationConfig` that every operation receives.
"""

from collections.abc import Callable
from pathlib import Path
from typing import Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    NonNegativeFloat,
    PositiveFloat,
    PositiveInt,
    ValidationError,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from . import gcloud
from .core import (
    BLUE_GREEN,
    DEFAULT_CLUSTER_NAMES,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_SETTLE_SECONDS,
)
from .errors import ConfigError

Strategy = Literal["blue-green", "expand-contract"]

DEFAULT_ENV_FILE = ".env"


class PropertiesSettings(BaseSettings):
    """Values read from the properties file; names match the file's keys."""

    model_config = SettingsConfigDict(
        env_file=DEFAULT_ENV_FILE,
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_ignore_empty=True,
        extra="ignore",
    )

    # Resolved from the active gcloud configuration when absent
    gcloud_project: str | None = None
    gcloud_region: str | None = None

    cluster_name: str | None = None
    k8s_ver: str
    new_k8s_ver: str
    machine_type: str
    num_nodes: PositiveInt

    upgrade_strategy: Strategy | None = None

    # Unset means wait forever
    operation_timeout_seconds: PositiveFloat | None = None
    drain_timeout_seconds: PositiveFloat | None = None

    poll_interval_seconds: PositiveFloat = DEFAULT_POLL_INTERVAL
    upgrade_settle_seconds: NonNegativeFloat = DEFAULT_SETTLE_SECONDS


class MigrationConfig(BaseModel):
    """Resolved, immutable configuration for one invocation."""

    model_config = ConfigDict(frozen=True)

    project: str
    region: str
    cluster_name: str
    machine_type: str
    num_nodes: PositiveInt
    current_version: str
    target_version: str
    disable_prompts: bool = False
    strategy: Strategy = BLUE_GREEN
    operation_timeout: PositiveFloat | None = None
    drain_timeout: PositiveFloat | None = None
    poll_interval: NonNegativeFloat = DEFAULT_POLL_INTERVAL
    settle_seconds: NonNegativeFloat = DEFAULT_SETTLE_SECONDS


def _describe_errors(exc: ValidationError) -> str:
    missing = []
    invalid = []
    for err in exc.errors():
        key = str(err["loc"][0]).upper() if err["loc"] else "?"
        if err["type"] == "missing":
            missing.append(key)
        else:
            invalid.append(f"{key} ({err['msg']})")

    parts = []
    if missing:
        parts.append(f"Set the {', '.join(missing)} variable(s) in the properties file")
    if invalid:
        parts.append(f"Invalid value for {', '.join(invalid)}")
    return "; ".join(parts)


def load_properties(env_file: str | Path | None = None) -> PropertiesSettings:
    """Reads the properties file and environment, failing with a ConfigError."""
    if env_file is not None and not Path(env_file).is_file():
        raise ConfigError(f"Define a properties file '{env_file}'")

    try:
        return PropertiesSettings(_env_file=env_file or DEFAULT_ENV_FILE)  # type: ignore[call-arg]
    except ValidationError as e:
        raise ConfigError(_describe_errors(e)) from e


def _from_gcloud(
    value: str | None, key: str, prop: str, resolver: Callable[[str], str]
) -> str:
    if value:
        return value
    resolved = resolver(prop)
    if not resolved:
        raise ConfigError(f"{key} is not set")
    return resolved


def load_config(
    env_file: str | Path | None = None,
    strategy: Strategy | None = None,
    disable_prompts: bool = False,
    resolver: Callable[[str], str] = gcloud.get_config_value,
) -> MigrationConfig:
    """
    Builds the MigrationConfig for this invocation.

    Required keys are validated before anything external is consulted;
    only then are GCLOUD_PROJECT/GCLOUD_REGION defaulted from gcloud.
    """
    props = load_properties(env_file)

    chosen = strategy or props.upgrade_strategy or BLUE_GREEN
    project = _from_gcloud(props.gcloud_project, "GCLOUD_PROJECT", "core/project", resolver)
    region = _from_gcloud(props.gcloud_region, "GCLOUD_REGION", "compute/region", resolver)

    return MigrationConfig(
        project=project,
        region=region,
        cluster_name=props.cluster_name or DEFAULT_CLUSTER_NAMES[chosen],
        machine_type=props.machine_type,
        num_nodes=props.num_nodes,
        current_version=props.k8s_ver,
        target_version=props.new_k8s_ver,
        disable_prompts=disable_prompts,
        strategy=chosen,
        operation_timeout=props.operation_timeout_seconds,
        drain_timeout=props.drain_timeout_seconds,
        poll_interval=props.poll_interval_seconds,
        settle_seconds=props.upgrade_settle_seconds,
    )
