"""
Error taxonomy for poolshift.

Every error carries the process exit code the CLI should return for it.
"""


class PoolshiftError(Exception):
    """Base class for all errors surfaced to the operator."""

    exit_code = 1


class ConfigError(PoolshiftError):
    """Missing or invalid configuration in the properties file/environment."""


class UsageError(PoolshiftError):
    """Unknown action, wrong strategy for an action or a bad positional."""


class PreflightError(PoolshiftError):
    """The target project or its APIs are not usable."""


class MissingExecutableError(PreflightError):
    """A required binary is not on PATH."""

    exit_code = 2


class ConfirmationDeclined(PoolshiftError):
    """The operator did not confirm a destructive operation."""


class BackendError(PoolshiftError):
    """A call to GKE, the Kubernetes API or gcloud returned non-success."""


class OperationTimeoutError(BackendError):
    """A provider-side operation did not finish within the configured timeout."""


class NodeOperationError(BackendError):
    """Cordon or drain failed on one or more nodes."""

    def __init__(self, verb: str, failures: dict[str, str]):
        self.verb = verb
        self.failures = failures
        detail = "; ".join(f"{node}: {reason}" for node, reason in failures.items())
        super().__init__(f"Failed to {verb} {len(failures)} node(s): {detail}")


class StepFailed(PoolshiftError):
    """A workflow step failed; wraps the underlying error."""

    def __init__(self, step: str, cause: PoolshiftError):
        self.step = step
        self.cause = cause
        self.exit_code = cause.exit_code
        super().__init__(f"Step '{step}' failed: {cause}")
