"""Sessions: one owner driving one resource instance from start to finish."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from protoguard.core.checker import check_exhaustive
from protoguard.core.kind import ResourceKind
from protoguard.core.operation import NO_ARGUMENT, OperationRegistry
from protoguard.core.resource import ResourceInstance
from protoguard.core.state import state_label
from protoguard.core.step import Step
from protoguard.errors import ActionFailed, ProtoguardError

if TYPE_CHECKING:
    from protoguard.core.checker import Action, ProtocolChecker

logger = logging.getLogger(__name__)


def new_session_id() -> str:
    return f"sess_{uuid.uuid4().hex[:10]}"


class AbortReason(Enum):
    """Why a session ended without completing its protocol."""

    PROTOCOL_NOT_COMPLETED = "protocol_not_completed"  # Ended outside the terminal set
    STEP_LIMIT_EXCEEDED = "step_limit_exceeded"  # Script kept going past max_session_steps


class SessionResult:
    """Outcome of a whole session: Completed or Aborted."""

    completed: bool = False
    final_state: Any
    session: Session

    @property
    def steps(self) -> list[Step]:
        return self.session.steps

    def to_dict(self) -> dict[str, Any]:
        data = {
            "result": type(self).__name__,
            "completed": self.completed,
            "final_state": state_label(self.final_state),
        }
        data.update(self.session.to_dict())
        return data


@dataclass(frozen=True)
class Completed(SessionResult):
    """The session ended in one of its kind's terminal states."""

    final_state: Any
    session: Session = field(repr=False, compare=False)

    completed = True


@dataclass(frozen=True)
class Aborted(SessionResult):
    """The session ended without completing its protocol."""

    reason: AbortReason
    final_state: Any
    session: Session = field(repr=False, compare=False)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["reason"] = self.reason.value
        return data


@dataclass(frozen=True)
class Call:
    """The next invocation a session script asks for."""

    operation: str
    action: Action
    argument: Any = NO_ARGUMENT


def verify_steps(
    operations: OperationRegistry,
    kind: ResourceKind,
    initial_state: Any,
    steps: Sequence[Step],
) -> list[str]:
    """Check a recorded step sequence is a well-formed session.

    Returns:
        A list of problems; empty when every step starts where the previous
        one ended, satisfies its precondition and lands on
        ``next(entry_state, outcome)``.
    """
    problems: list[str] = []
    expected_entry = initial_state

    for position, step in enumerate(steps, start=1):
        label = f"step {position} ({step.operation})"
        if step.entry_state != expected_entry:
            problems.append(
                f"{label}: starts in {state_label(step.entry_state)}, "
                f"expected {state_label(expected_entry)}"
            )
        expected_entry = step.resulting_state

        try:
            operation = operations.get_operation(kind, step.operation)
        except ProtoguardError as e:
            problems.append(f"{label}: {e.message}")
            continue

        if not operation.allows(step.entry_state):
            problems.append(f"{label}: precondition does not hold in {state_label(step.entry_state)}")
            continue

        argument = step.argument if operation.parameterized else NO_ARGUMENT
        try:
            expected = operation.successor(step.entry_state, step.outcome, argument)
        except ProtoguardError as e:
            problems.append(f"{label}: {e.message}")
            continue
        if expected != step.resulting_state:
            problems.append(
                f"{label}: recorded {state_label(step.resulting_state)}, "
                f"postcondition gives {state_label(expected)}"
            )

    return problems


class Session:
    """One owner's run of a resource instance.

    The session is the instance's owner: every invocation goes through the
    checker with the session id as owner token. Closing the session
    releases the instance (unless it was handed off) and yields the
    SessionResult.
    """

    def __init__(
        self,
        checker: ProtocolChecker,
        instance: ResourceInstance,
        session_id: str | None = None,
    ) -> None:
        self.id = session_id or new_session_id()
        self.checker = checker
        self.instance = instance
        self.initial_state = instance.state
        self.steps: list[Step] = []
        self.failures: list[ActionFailed] = []
        self.last_outcome: Any = None
        self.last_failure: ActionFailed | None = None
        self.started_at = datetime.now()
        self.finished_at: datetime | None = None
        self._result: SessionResult | None = None

    @property
    def kind(self) -> ResourceKind:
        return self.instance.kind

    @property
    def state(self) -> Any:
        return self.instance.state

    @property
    def closed(self) -> bool:
        return self._result is not None

    @property
    def result(self) -> SessionResult | None:
        return self._result

    @property
    def owns_instance(self) -> bool:
        return self.instance.owner == self.id

    def invoke(self, operation: str, action: Action, argument: Any = NO_ARGUMENT) -> Any:
        """Invoke an operation on the session's instance and return its outcome.

        Failed actions are recorded in ``failures``/``last_failure`` and re-raised.
        """
        try:
            step = self.checker.invoke_step(
                self.instance, operation, action, argument=argument, owner=self.id
            )
        except ActionFailed as e:
            self.failures.append(e)
            self.last_failure = e
            raise
        self.steps.append(step)
        self.last_outcome = step.outcome
        self.last_failure = None
        return step.outcome

    def invoke_and_branch(
        self,
        operation: str,
        action: Action,
        cases: Mapping[Any, Callable[[], Any]],
        argument: Any = NO_ARGUMENT,
    ) -> Any:
        """Invoke, then run the handler for the outcome; handlers must be exhaustive."""
        check_exhaustive(self.checker.operations.get_operation(self.kind, operation), cases)
        outcome = self.invoke(operation, action, argument=argument)
        return cases[outcome]()

    def can_invoke(self, operation: str) -> bool:
        return self.checker.can_invoke(self.instance, operation)

    def handoff(self, new_owner: str) -> None:
        """Give the instance to another owner; this session can no longer act on it."""
        self.instance.handoff(self.id, new_owner)
        logger.info("Session %s handed %s to %s", self.id, self.instance.id, new_owner)

    def verify(self, operations: OperationRegistry | None = None) -> list[str]:
        """Problems with this session's recorded steps; empty when well-formed."""
        return verify_steps(
            operations or self.checker.operations,
            self.kind,
            self.initial_state,
            self.steps,
        )

    def close(self, reason: AbortReason | None = None) -> SessionResult:
        """End the session and release the instance if this session still owns it.

        Without ``reason`` the result is Completed when the instance is in a
        terminal state and Aborted(PROTOCOL_NOT_COMPLETED) otherwise.
        Closing twice returns the first result.
        """
        if self._result is not None:
            return self._result

        final_state = self.instance.state
        result: SessionResult
        if reason is None and self.kind.is_terminal(final_state):
            result = Completed(final_state=final_state, session=self)
        else:
            result = Aborted(
                reason=reason or AbortReason.PROTOCOL_NOT_COMPLETED,
                final_state=final_state,
                session=self,
            )

        if self.owns_instance and not self.instance.released:
            self.instance.release()
        self.finished_at = datetime.now()
        self._result = result

        if isinstance(result, Aborted):
            logger.warning(
                "Session %s aborted (%s) in %s after %d step(s)",
                self.id,
                result.reason.value,
                state_label(final_state),
                len(self.steps),
            )
        else:
            logger.info(
                "Session %s completed in %s after %d step(s)",
                self.id,
                state_label(final_state),
                len(self.steps),
            )
        return result

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.id,
            "kind": self.kind.name,
            "resource_id": self.instance.id,
            "initial_state": state_label(self.initial_state),
            "state": state_label(self.state),
            "steps": [step.to_dict() for step in self.steps],
            "failures": [failure.to_dict() for failure in self.failures],
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }
