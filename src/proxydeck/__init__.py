"""ProxyDeck - Deploy a LiteLLM gateway locally or behind CloudFront on AWS.

ProxyDeck drives the provisioning of an LLM proxy gateway: it builds and pushes
the proxy image to ECR, converges a CloudFormation stack that runs it on ECS
behind CloudFront, prints client configuration, and tears everything down
again. A local path runs the same image under Docker Compose.
"""

from proxydeck.config.loader import load_deployment_config
from proxydeck.lib.errors import ConfigError, DeploymentError, ProxyDeckError

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "ConfigError",
    "DeploymentError",
    "ProxyDeckError",
    "load_deployment_config",
]
