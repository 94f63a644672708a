from crossx.models.artifact import CompiledArtifact
from crossx.models.deployment import (
    DeploymentIntent,
    DeploymentState,
    DeploymentTransaction,
    FeeAggregate,
    FeeQuote,
    SessionSnapshot,
)

__all__ = [
    "CompiledArtifact",
    "DeploymentIntent",
    "DeploymentState",
    "DeploymentTransaction",
    "FeeAggregate",
    "FeeQuote",
    "SessionSnapshot",
]
