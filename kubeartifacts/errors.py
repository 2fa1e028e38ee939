"""Exception hierarchy for kubeartifacts."""

from typing import Optional


class KubeArtifactsError(Exception):
    """Base class for every error raised by kubeartifacts."""


class ConfigError(KubeArtifactsError):
    """Invalid user supplied configuration."""


class ClusterError(KubeArtifactsError):
    """The Kubernetes API returned an error."""

    def __init__(self, message: str, status: Optional[int] = None, reason: str = ""):
        super().__init__(message)
        self.status = status
        self.reason = reason


class NotFoundError(ClusterError):
    """The requested object does not exist."""


class ForbiddenError(ClusterError):
    """The caller is not allowed to access the requested object."""


class AlreadyExistsError(ClusterError):
    """The object to create already exists."""


class UnknownResourceError(KubeArtifactsError):
    """A kind or resource name is not served by the cluster."""


class CredentialError(KubeArtifactsError):
    """An image pull secret could not be decoded."""


class ArtifactError(KubeArtifactsError):
    """A cluster object does not have the shape its kind requires."""


class JobError(KubeArtifactsError):
    """Base class for collector job failures."""

    def __init__(self, message: str, logs: str = ""):
        super().__init__(message)
        self.logs = logs


class JobFailedError(JobError):
    """The job reported a Failed condition or a Warning event."""

    def __init__(self, reason: str, message: str, logs: str = ""):
        super().__init__(f"job failed: {reason}: {message}", logs=logs)
        self.reason = reason
        self.message = message


class JobTimeoutError(JobError):
    """The job did not finish before its deadline or was cancelled."""

    def __init__(self, message: str = "runner received timeout", logs: str = ""):
        super().__init__(message, logs=logs)


class PodNotFoundError(KubeArtifactsError):
    """No pod was found for a job."""


class CollectorError(KubeArtifactsError):
    """Node collection could not be prepared or completed."""

    def __init__(self, message: str, node: str = "", logs: str = ""):
        super().__init__(message)
        self.node = node
        self.logs = logs
