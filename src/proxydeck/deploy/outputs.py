"""Read back the gateway endpoint and render client configuration."""

from __future__ import annotations

from proxydeck.config.defaults import STACK_OUTPUT_URL_KEY
from proxydeck.deploy.deployers.base import BaseDeployer
from proxydeck.lib.errors import StackOutputError
from proxydeck.models.deployment import ClientExports, DeploymentConfig, StackOutputs


def get_stack_outputs(
    deployer: BaseDeployer,
    stack_name: str,
    required: tuple[str, ...] = (STACK_OUTPUT_URL_KEY,),
) -> StackOutputs:
    """Read stack outputs and check the expected keys are present.

    Args:
        deployer: Deployer that converged the stack
        stack_name: Stack to read
        required: Output keys the template must declare

    Raises:
        StackOutputError: If an expected output is missing
    """
    outputs = deployer.get_outputs(stack_name)
    for key in required:
        if not outputs.get(key):
            raise StackOutputError(stack_name=stack_name, output_key=key)
    return outputs


def render_client_exports(
    base_url: str, config: DeploymentConfig
) -> ClientExports:
    """Build the client exports for an endpoint.

    Args:
        base_url: Gateway URL (edge URL or local endpoint)
        config: Supplies the master key and model alias
    """
    return ClientExports(
        base_url=base_url,
        auth_token=config.master_key,
        model=config.model_alias,
    )


def exports_from_outputs(outputs: StackOutputs, config: DeploymentConfig) -> ClientExports:
    """Build client exports from the stack's edge URL output."""
    url = outputs.get(STACK_OUTPUT_URL_KEY)
    if not url:
        raise StackOutputError(
            stack_name=outputs.stack_name, output_key=STACK_OUTPUT_URL_KEY
        )
    return render_client_exports(url, config)
