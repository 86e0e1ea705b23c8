"""ProxyDeck deployment engine.

This package provides the deployment functionality for the gateway: ECR
repository management, image building, prefix list lookup, CloudFormation
convergence, teardown and the local Compose runner.
"""

from proxydeck.deploy.builder import BuildResult, ContainerBuilder, get_oci_labels
from proxydeck.deploy.local import LocalRunner
from proxydeck.deploy.pipeline import CloudDeployPipeline
from proxydeck.deploy.registry import RegistryManager, generate_tag
from proxydeck.deploy.teardown import TeardownSequencer

__all__ = [
    "BuildResult",
    "CloudDeployPipeline",
    "ContainerBuilder",
    "LocalRunner",
    "RegistryManager",
    "TeardownSequencer",
    "generate_tag",
    "get_oci_labels",
]
