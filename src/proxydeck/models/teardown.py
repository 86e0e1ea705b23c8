"""Teardown state models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class TeardownState(str, Enum):
    """States of the teardown sequencer."""

    IDLE = "idle"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    DELETING_STACK = "deleting_stack"
    WAITING_FOR_STACK_DELETION = "waiting_for_stack_deletion"
    DELETING_REPOSITORY = "deleting_repository"
    DONE = "done"
    ABORTED = "aborted"

    @property
    def is_terminal(self) -> bool:
        """Whether no further transition is possible."""
        return self in (TeardownState.DONE, TeardownState.ABORTED)


class TeardownResult(BaseModel):
    """Final report of a teardown run."""

    model_config = ConfigDict(extra="forbid")

    stack_name: str = Field(..., description="Stack that was targeted")
    repository_name: str = Field(..., description="Repository that was targeted")
    state: TeardownState = Field(..., description="Terminal state reached")
    history: list[TeardownState] = Field(
        default_factory=list, description="States visited, in order"
    )
    repository_already_absent: bool = Field(
        default=False, description="Repository did not exist at deletion time"
    )

    @property
    def aborted(self) -> bool:
        """Whether the operator declined the teardown."""
        return self.state == TeardownState.ABORTED
