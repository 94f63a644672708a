"""
Error taxonomy for the deployment pipeline
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Kinds of failure a deployment session can end in"""
    INVALID_INPUT = "InvalidInput"
    UNKNOWN_DESTINATION = "UnknownDestination"
    NO_DESTINATIONS_SELECTED = "NoDestinationsSelected"
    FEE_OVERFLOW = "FeeOverflowError"
    ARTIFACT_NOT_FOUND = "ArtifactNotFound"
    PUBLISH_ERROR = "PublishError"
    SUBMISSION_REJECTED = "SubmissionRejected"
    STALE_SESSION_DISCARDED = "StaleSessionDiscarded"
    NETWORK_ERROR = "NetworkError"
    COMPILE_ERROR = "CompileError"
    CONFIG_ERROR = "ConfigError"
    DEPLOYMENT_IN_PROGRESS = "DeploymentInProgress"
    INVALID_STATE_TRANSITION = "InvalidStateTransition"


class CrossXError(Exception):
    """Base class for every error raised by crossx"""
    kind = ErrorKind.INVALID_INPUT

    def __init__(self, message: str = ""):
        super().__init__(message or self.kind.value)
        self.message = message or self.kind.value

    def __str__(self):
        return f"{self.kind.value}: {self.message}"


class InvalidInput(CrossXError):
    kind = ErrorKind.INVALID_INPUT


class UnknownDestination(CrossXError):
    kind = ErrorKind.UNKNOWN_DESTINATION


class NoDestinationsSelected(CrossXError):
    kind = ErrorKind.NO_DESTINATIONS_SELECTED


class FeeOverflowError(CrossXError):
    kind = ErrorKind.FEE_OVERFLOW


class ArtifactNotFound(CrossXError):
    kind = ErrorKind.ARTIFACT_NOT_FOUND


class PublishError(CrossXError):
    kind = ErrorKind.PUBLISH_ERROR


class SubmissionRejected(CrossXError):
    kind = ErrorKind.SUBMISSION_REJECTED


class StaleSessionDiscarded(CrossXError):
    """A network result arrived for a salt/intent the session no longer holds"""
    kind = ErrorKind.STALE_SESSION_DISCARDED


class NetworkError(CrossXError):
    """A read-only chain or gateway call failed"""
    kind = ErrorKind.NETWORK_ERROR


class CompileError(CrossXError):
    kind = ErrorKind.COMPILE_ERROR


class ConfigError(CrossXError, ValueError):
    kind = ErrorKind.CONFIG_ERROR


class DeploymentInProgress(CrossXError):
    """Raised when a second deploy is requested while one is in flight"""
    kind = ErrorKind.DEPLOYMENT_IN_PROGRESS


class InvalidStateTransition(CrossXError):
    kind = ErrorKind.INVALID_STATE_TRANSITION
