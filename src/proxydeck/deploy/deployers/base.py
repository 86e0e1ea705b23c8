"""Base interface for stack deployers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence

from proxydeck.models.deployment import StackDeployment, StackOutputs, StackParameters


class BaseDeployer(ABC):
    """Abstract base class for infrastructure stack deployers."""

    @abstractmethod
    def deploy(
        self,
        *,
        stack_name: str,
        template_body: str,
        parameters: StackParameters,
        capabilities: Sequence[str],
        tags: Mapping[str, str],
    ) -> StackDeployment:
        """Converge a stack to the given parameters, creating it if needed.

        Args:
            stack_name: Name of the stack.
            template_body: Infrastructure template contents.
            parameters: Values handed to the template.
            capabilities: Capabilities the operator acknowledges (e.g.
                CAPABILITY_IAM). Never implied.
            tags: Tags applied to the stack.

        Returns:
            StackDeployment describing the converged stack.

        Raises:
            DeploymentError: If convergence fails.
            StackTimeoutError: If the stack does not settle in time.
        """

    @abstractmethod
    def get_outputs(self, stack_name: str) -> StackOutputs:
        """Read the outputs of a converged stack.

        Args:
            stack_name: Name of the stack.

        Returns:
            StackOutputs keyed by output key.

        Raises:
            DeploymentError: If the stack cannot be described.
        """

    @abstractmethod
    def destroy(self, stack_name: str) -> None:
        """Request deletion of a stack without waiting.

        Args:
            stack_name: Name of the stack.

        Raises:
            DeploymentError: If the delete request fails.
        """

    @abstractmethod
    def wait_for_deletion(self, stack_name: str) -> None:
        """Block until a stack is fully deleted.

        Args:
            stack_name: Name of the stack.

        Raises:
            DeploymentError: If deletion fails.
            StackTimeoutError: If deletion does not finish in time.
        """
