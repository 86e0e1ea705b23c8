"""CloudFormation stack deployer implementation."""

from __future__ import annotations

import logging
import math
import uuid
from collections.abc import Mapping, Sequence
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError, WaiterError

from proxydeck.config.defaults import STACK_POLL_DELAY, STACK_TIMEOUT
from proxydeck.deploy.aws import error_code, error_message
from proxydeck.deploy.deployers.base import BaseDeployer
from proxydeck.lib.errors import DeploymentError, StackTimeoutError
from proxydeck.models.deployment import (
    StackDeployment,
    StackOutputs,
    StackParameters,
    StackStatus,
)

logger = logging.getLogger(__name__)

# StatusReason fragments CloudFormation uses for a change set with no changes
EMPTY_CHANGE_SET_REASONS = (
    "didn't contain changes",
    "No updates are to be performed",
)
WAITER_TIMEOUT_REASON = "Max attempts exceeded"
OPERATION_START_STATUSES = ("CREATE_IN_PROGRESS", "UPDATE_IN_PROGRESS")


def _is_empty_change_set(reason: str) -> bool:
    return any(fragment in reason for fragment in EMPTY_CHANGE_SET_REASONS)


class CloudFormationDeployer(BaseDeployer):
    """Converge a CloudFormation stack through change sets.

    Creating a change set and executing it works the same way for new and
    existing stacks, so deploy is a single upsert. A change set with no
    changes is discarded and reported as a no-op.
    """

    def __init__(
        self,
        cloudformation: Any,
        timeout: int = STACK_TIMEOUT,
        poll_delay: int = STACK_POLL_DELAY,
    ) -> None:
        """Initialize the deployer.

        Args:
            cloudformation: boto3 CloudFormation client
            timeout: Seconds to wait for any stack operation to settle
            poll_delay: Seconds between status polls
        """
        self._cfn = cloudformation
        self._timeout = timeout
        self._poll_delay = poll_delay

    def deploy(
        self,
        *,
        stack_name: str,
        template_body: str,
        parameters: StackParameters,
        capabilities: Sequence[str],
        tags: Mapping[str, str],
    ) -> StackDeployment:
        """Create or update a stack and wait for it to converge."""
        stack = self._describe_stack(stack_name)
        status = stack["StackStatus"] if stack else None

        if status == StackStatus.ROLLBACK_COMPLETE.value:
            raise DeploymentError(
                operation="deploy",
                message=(
                    f"Stack '{stack_name}' is in ROLLBACK_COMPLETE and cannot be "
                    "updated. Delete it and deploy again."
                ),
            )

        creating = stack is None or status == StackStatus.REVIEW_IN_PROGRESS.value
        change_set_type = "CREATE" if creating else "UPDATE"
        change_set_name = f"proxydeck-{uuid.uuid4().hex[:12]}"

        logger.info(
            "Creating %s change set %s for stack %s",
            change_set_type,
            change_set_name,
            stack_name,
        )
        try:
            self._cfn.create_change_set(
                StackName=stack_name,
                ChangeSetName=change_set_name,
                ChangeSetType=change_set_type,
                TemplateBody=template_body,
                Parameters=parameters.to_cloudformation(),
                Capabilities=list(capabilities),
                Tags=[{"Key": key, "Value": value} for key, value in tags.items()],
                Description="Created by proxydeck",
            )
        except ClientError as exc:
            raise DeploymentError(operation="deploy", message=error_message(exc)) from exc
        except BotoCoreError as exc:
            raise DeploymentError(operation="deploy", message=str(exc)) from exc

        try:
            self._cfn.get_waiter("change_set_create_complete").wait(
                StackName=stack_name,
                ChangeSetName=change_set_name,
                WaiterConfig=self._waiter_config(),
            )
        except WaiterError as exc:
            reason = self._change_set_reason(stack_name, change_set_name)
            if _is_empty_change_set(reason):
                logger.info("No changes to deploy. Stack %s is up to date", stack_name)
                self._delete_change_set(stack_name, change_set_name)
                return StackDeployment(
                    stack_name=stack_name,
                    stack_id=stack.get("StackId") if stack else None,
                    status=status or "",
                    changed=False,
                )
            if WAITER_TIMEOUT_REASON in str(exc.kwargs.get("reason", "")):
                raise StackTimeoutError(stack_name, "deploy", self._timeout) from exc
            raise DeploymentError(
                operation="deploy",
                message=f"Change set {change_set_name} failed: {reason or exc}",
            ) from exc

        try:
            self._cfn.execute_change_set(
                StackName=stack_name, ChangeSetName=change_set_name
            )
        except ClientError as exc:
            raise DeploymentError(operation="deploy", message=error_message(exc)) from exc

        waiter_name = "stack_create_complete" if creating else "stack_update_complete"
        self._wait(waiter_name, stack_name, operation="deploy")

        final = self._describe_stack(stack_name) or {}
        return StackDeployment(
            stack_name=stack_name,
            stack_id=final.get("StackId"),
            status=final.get("StackStatus", "UNKNOWN"),
            changed=True,
        )

    def get_outputs(self, stack_name: str) -> StackOutputs:
        """Read outputs for a stack."""
        stack = self._describe_stack(stack_name)
        if stack is None:
            raise DeploymentError(
                operation="outputs", message=f"Stack '{stack_name}' does not exist"
            )

        values = {
            output["OutputKey"]: output["OutputValue"]
            for output in stack.get("Outputs") or []
            if "OutputKey" in output and "OutputValue" in output
        }
        return StackOutputs(stack_name=stack_name, values=values)

    def destroy(self, stack_name: str) -> None:
        """Request stack deletion."""
        try:
            self._cfn.delete_stack(StackName=stack_name)
        except ClientError as exc:
            raise DeploymentError(
                operation="delete_stack", message=error_message(exc)
            ) from exc
        except BotoCoreError as exc:
            raise DeploymentError(operation="delete_stack", message=str(exc)) from exc

    def wait_for_deletion(self, stack_name: str) -> None:
        """Wait until a stack is deleted (a missing stack counts as deleted)."""
        self._wait("stack_delete_complete", stack_name, operation="delete_stack")

    def _waiter_config(self) -> dict[str, int]:
        max_attempts = max(1, math.ceil(self._timeout / self._poll_delay))
        return {"Delay": self._poll_delay, "MaxAttempts": max_attempts}

    def _wait(self, waiter_name: str, stack_name: str, operation: str) -> None:
        """Block on a stack waiter, translating failures.

        Raises:
            StackTimeoutError: If the waiter ran out of attempts
            DeploymentError: If the stack reached a failure state
        """
        logger.info("Waiting for stack %s (%s)", stack_name, waiter_name)
        try:
            self._cfn.get_waiter(waiter_name).wait(
                StackName=stack_name, WaiterConfig=self._waiter_config()
            )
        except WaiterError as exc:
            if WAITER_TIMEOUT_REASON in str(exc.kwargs.get("reason", "")):
                raise StackTimeoutError(stack_name, operation, self._timeout) from exc
            reason = self._failure_reason(stack_name)
            raise DeploymentError(operation=operation, message=reason or str(exc)) from exc

    def _describe_stack(self, stack_name: str) -> dict[str, Any] | None:
        """Return the stack description, or None if the stack does not exist."""
        try:
            response = self._cfn.describe_stacks(StackName=stack_name)
        except ClientError as exc:
            if error_code(exc) == "ValidationError" and "does not exist" in (
                error_message(exc)
            ):
                return None
            raise DeploymentError(
                operation="describe_stack", message=error_message(exc)
            ) from exc
        except BotoCoreError as exc:
            raise DeploymentError(operation="describe_stack", message=str(exc)) from exc

        stacks = response.get("Stacks") or []
        return stacks[0] if stacks else None

    def _change_set_reason(self, stack_name: str, change_set_name: str) -> str:
        try:
            response = self._cfn.describe_change_set(
                StackName=stack_name, ChangeSetName=change_set_name
            )
        except ClientError as exc:
            return error_message(exc)
        return str(response.get("StatusReason", ""))

    def _delete_change_set(self, stack_name: str, change_set_name: str) -> None:
        try:
            self._cfn.delete_change_set(
                StackName=stack_name, ChangeSetName=change_set_name
            )
        except ClientError as exc:
            # An orphaned empty change set is harmless
            logger.warning(
                "Could not delete change set %s: %s", change_set_name, error_message(exc)
            )

    def _failure_reason(self, stack_name: str) -> str | None:
        """Return the root-cause failure of the stack's latest operation.

        Events are returned newest first; the oldest failed event since the
        operation started is the one that triggered the rollback.
        """
        try:
            events = self._cfn.describe_stack_events(StackName=stack_name).get(
                "StackEvents", []
            )
        except ClientError as exc:
            logger.debug("Could not read stack events: %s", error_message(exc))
            return None

        root_cause: dict[str, Any] | None = None
        for event in events:
            if (
                event.get("LogicalResourceId") == stack_name
                and event.get("ResourceStatus") in OPERATION_START_STATUSES
            ):
                break
            if str(event.get("ResourceStatus", "")).endswith("_FAILED") and event.get(
                "ResourceStatusReason"
            ):
                root_cause = event

        if root_cause is None:
            return None
        return (
            f"{root_cause.get('LogicalResourceId')} "
            f"{root_cause.get('ResourceStatus')}: "
            f"{root_cause.get('ResourceStatusReason')}"
        )
