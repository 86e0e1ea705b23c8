"""Stack deployers for the gateway infrastructure."""

from __future__ import annotations

from typing import Any

from proxydeck.deploy.deployers.base import BaseDeployer
from proxydeck.deploy.deployers.cloudformation import CloudFormationDeployer
from proxydeck.models.deployment import DeploymentConfig


def create_deployer(config: DeploymentConfig, cloudformation: Any) -> BaseDeployer:
    """Create the stack deployer for a configuration.

    Args:
        config: Resolved deployment configuration (supplies the wait timeout)
        cloudformation: boto3 CloudFormation client for the config's region
    """
    return CloudFormationDeployer(cloudformation, timeout=config.stack_timeout)


__all__ = ["BaseDeployer", "CloudFormationDeployer", "create_deployer"]
