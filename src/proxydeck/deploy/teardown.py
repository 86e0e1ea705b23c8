"""Teardown sequencer.

Deletes the stack, waits for the deletion to finish, then deletes the image
repository. The whole sequence is gated by an explicit confirmation decision
that can come from a prompt, a flag or automation.
"""

from __future__ import annotations

import logging

from proxydeck.deploy.deployers.base import BaseDeployer
from proxydeck.deploy.registry import RegistryManager
from proxydeck.models.teardown import TeardownResult, TeardownState

logger = logging.getLogger(__name__)

AFFIRMATIVE_TOKENS = frozenset({"y", "yes"})

# Allowed transitions; anything else is a programming error
TRANSITIONS: dict[TeardownState, frozenset[TeardownState]] = {
    TeardownState.IDLE: frozenset({TeardownState.AWAITING_CONFIRMATION}),
    TeardownState.AWAITING_CONFIRMATION: frozenset(
        {TeardownState.DELETING_STACK, TeardownState.ABORTED}
    ),
    TeardownState.DELETING_STACK: frozenset(
        {TeardownState.WAITING_FOR_STACK_DELETION}
    ),
    TeardownState.WAITING_FOR_STACK_DELETION: frozenset(
        {TeardownState.DELETING_REPOSITORY}
    ),
    TeardownState.DELETING_REPOSITORY: frozenset({TeardownState.DONE}),
    TeardownState.DONE: frozenset(),
    TeardownState.ABORTED: frozenset(),
}


def is_affirmative(decision: bool | str | None) -> bool:
    """Interpret a confirmation decision.

    Only ``True`` or the tokens ``y``/``yes`` (any case) confirm.
    """
    if isinstance(decision, bool):
        return decision
    if decision is None:
        return False
    return decision.strip().lower() in AFFIRMATIVE_TOKENS


class TeardownSequencer:
    """State machine that removes the stack and then the repository.

    Example:
        >>> sequencer = TeardownSequencer(deployer, registry, "litellm-stack", "litellm-repo")
        >>> sequencer.request()
        >>> result = sequencer.confirm(input("Are you sure? (y/N): "))
    """

    def __init__(
        self,
        deployer: BaseDeployer,
        registry: RegistryManager,
        stack_name: str,
        repository_name: str,
    ) -> None:
        self._deployer = deployer
        self._registry = registry
        self.stack_name = stack_name
        self.repository_name = repository_name
        self.state = TeardownState.IDLE
        self.history: list[TeardownState] = [TeardownState.IDLE]
        self._repository_already_absent = False

    def _transition(self, target: TeardownState) -> None:
        if target not in TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Invalid teardown transition {self.state.value} -> {target.value}"
            )
        logger.debug("Teardown %s -> %s", self.state.value, target.value)
        self.state = target
        self.history.append(target)

    def request(self) -> None:
        """Enter AWAITING_CONFIRMATION."""
        self._transition(TeardownState.AWAITING_CONFIRMATION)

    def confirm(self, decision: bool | str | None) -> TeardownResult:
        """Apply the confirmation decision and run the teardown to completion.

        A negative decision aborts without touching any resource. A positive
        one deletes the stack, waits for the deletion, and only then deletes
        the repository.

        Args:
            decision: True/False or a token typed by the operator

        Returns:
            TeardownResult in state DONE or ABORTED; a finished sequencer
            returns its existing result without repeating any deletion

        Raises:
            DeploymentError: If a deletion step fails (the sequencer stays in
                the state where the failure happened)
            StackTimeoutError: If stack deletion does not finish in time
        """
        if self.state.is_terminal:
            return self._result()
        if self.state == TeardownState.IDLE:
            self.request()

        if not is_affirmative(decision):
            self._transition(TeardownState.ABORTED)
            logger.info("Teardown of %s cancelled", self.stack_name)
            return self._result()

        self._transition(TeardownState.DELETING_STACK)
        logger.info("Deleting stack %s", self.stack_name)
        self._deployer.destroy(self.stack_name)

        self._transition(TeardownState.WAITING_FOR_STACK_DELETION)
        self._deployer.wait_for_deletion(self.stack_name)

        self._transition(TeardownState.DELETING_REPOSITORY)
        logger.info("Deleting repository %s", self.repository_name)
        deleted = self._registry.delete_repository(self.repository_name)
        self._repository_already_absent = not deleted

        self._transition(TeardownState.DONE)
        return self._result()

    def _result(self) -> TeardownResult:
        return TeardownResult(
            stack_name=self.stack_name,
            repository_name=self.repository_name,
            state=self.state,
            history=list(self.history),
            repository_already_absent=self._repository_already_absent,
        )
