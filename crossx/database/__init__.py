from crossx.database.deployment_db import DeploymentDatabase

__all__ = ["DeploymentDatabase"]
