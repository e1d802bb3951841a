"""Protocol checker: the only way a resource instance changes state.

Every invocation goes through the same sequence:

1. resolve the operation for the instance's kind,
2. check the argument, the instance's liveness and its owner,
3. evaluate the precondition in the current state (the action is never run
   when it fails),
4. run the caller's action to obtain an outcome,
5. compute the next state from the postcondition applied to that outcome,
6. commit the new state and return the outcome.

Steps 2-6 run under the instance's lock. Nothing is committed unless all
of them succeed, so a failed action or an undefined transition leaves the
instance exactly where it was.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Mapping
from typing import Any

from protoguard.config import ProtoguardSettings
from protoguard.core.kind import KindRegistry, ResourceKind
from protoguard.core.operation import NO_ARGUMENT, Operation, OperationRegistry
from protoguard.core.resource import ResourceInstance
from protoguard.core.state import state_label
from protoguard.core.step import Step
from protoguard.errors import (
    ActionFailed,
    ErrorContext,
    NonExhaustiveBranchError,
    PreconditionViolation,
    ReentrantInvocationError,
    TransitionUndefinedError,
)
from protoguard.observability.logging import log_context

logger = logging.getLogger(__name__)

Action = Callable[[], Any]


def exhaustive(operation: Operation, outcome: Any, cases: Mapping[Any, Callable[[], Any]]) -> Any:
    """Dispatch on an outcome, requiring a handler for every declared outcome.

    The dynamic counterpart of an exhaustive ``match``: ``cases`` must cover
    exactly the operation's outcome space.

    Raises:
        NonExhaustiveBranchError: If a declared outcome has no handler, or a
            handler is keyed by an undeclared outcome.
    """
    check_exhaustive(operation, cases)
    return cases[outcome]()


def check_exhaustive(operation: Operation, cases: Mapping[Any, Any]) -> None:
    handled = frozenset(cases)
    missing = operation.outcomes - handled
    unexpected = handled - operation.outcomes
    if missing or unexpected:
        raise NonExhaustiveBranchError(
            operation.name,
            missing=missing,
            unexpected=unexpected,
        )


class ProtocolChecker:
    """Validates and sequences operations against resource instances.

    Example:
        checker = ProtocolChecker(kinds, operations)
        handle = checker.create("File")

        opened = checker.invoke(handle, "open", lambda: fs.try_open(path), Mode.READ)
        match opened:
            case True:
                checker.invoke(handle, "close", fs.close)
            case False:
                pass  # still CLOSED
    """

    def __init__(
        self,
        kinds: KindRegistry,
        operations: OperationRegistry,
        settings: ProtoguardSettings | None = None,
    ) -> None:
        self.kinds = kinds
        self.operations = operations
        self.settings = settings or operations.settings

    def create(
        self,
        kind: str | ResourceKind,
        state: Any = None,
        owner: str | None = None,
        resource_id: str | None = None,
    ) -> ResourceInstance:
        """Create a resource instance in ``state`` (default: the kind's initial state)."""
        instance = ResourceInstance(
            self.kinds.get_kind(kind),
            state=state,
            owner=owner,
            resource_id=resource_id,
            record_history=self.settings.record_history,
        )
        logger.debug("Created %s in state %s", instance.id, state_label(instance.state))
        return instance

    def invoke(
        self,
        instance: ResourceInstance,
        operation_name: str,
        action: Action,
        argument: Any = NO_ARGUMENT,
        owner: str | None = None,
    ) -> Any:
        """Run one checked operation and return the action's outcome.

        Args:
            instance: The resource instance to act on.
            operation_name: Registered operation name for the instance's kind.
            action: Zero-argument callable producing the outcome.
            argument: Argument of a parameterised operation.
            owner: Caller's owner token; must match the instance's owner if it has one.

        Returns:
            The outcome produced by ``action``. The instance is now in
            ``next_state(entry_state, outcome)``.

        Raises:
            UnknownOperationError: The kind has no such operation.
            InvalidArgumentError: The argument does not fit the operation.
            ResourceReleasedError: The instance was released or reached a terminal state.
            OwnershipError: ``owner`` does not own the instance.
            ReentrantInvocationError: The action re-entered its own instance.
            PreconditionViolation: The precondition does not hold; the action did not run.
            ActionFailed: The action raised or was cancelled; state unchanged.
            TransitionUndefinedError: No valid next state for the outcome; state unchanged.
        """
        return self.invoke_step(instance, operation_name, action, argument=argument, owner=owner).outcome

    def invoke_step(
        self,
        instance: ResourceInstance,
        operation_name: str,
        action: Action,
        argument: Any = NO_ARGUMENT,
        owner: str | None = None,
    ) -> Step:
        """Like invoke(), but return the committed Step instead of the bare outcome."""
        operation = self.operations.get_operation(instance.kind, operation_name)
        operation.check_argument(argument)

        with instance.exclusive(), log_context(resource=instance.id, operation=operation_name):
            instance.ensure_usable(owner)
            entry_state = instance.state
            context = ErrorContext(
                kind=instance.kind.name,
                resource_id=instance.id,
                operation=operation_name,
                state=entry_state,
            )

            if not operation.allows(entry_state):
                logger.warning(
                    "Precondition of %s does not hold in %s",
                    operation_name,
                    state_label(entry_state),
                )
                raise PreconditionViolation(operation_name, entry_state, context=context)

            started = time.perf_counter()
            try:
                outcome = action()
            except ReentrantInvocationError:
                raise
            except (Exception, asyncio.CancelledError) as e:
                raise self._action_failed(operation_name, e, context) from e
            duration_ms = (time.perf_counter() - started) * 1000

            try:
                resulting_state = operation.successor(entry_state, outcome, argument)
            except TransitionUndefinedError as e:
                e.context.resource_id = instance.id
                logger.error("Undefined transition on %s: %s", instance.id, e.message)
                raise

            step = Step.create(
                operation=operation_name,
                outcome=outcome,
                entry_state=entry_state,
                resulting_state=resulting_state,
                argument=None if argument is NO_ARGUMENT else argument,
                duration_ms=duration_ms,
            )
            instance.commit(step)
            logger.debug("%s: %s", instance.id, step)
            return step

    def invoke_and_branch(
        self,
        instance: ResourceInstance,
        operation_name: str,
        action: Action,
        cases: Mapping[Any, Callable[[], Any]],
        argument: Any = NO_ARGUMENT,
        owner: str | None = None,
    ) -> Any:
        """Invoke, then dispatch on the outcome through ``cases``.

        Exhaustiveness is checked before the action runs.
        """
        operation = self.operations.get_operation(instance.kind, operation_name)
        check_exhaustive(operation, cases)
        outcome = self.invoke(instance, operation_name, action, argument=argument, owner=owner)
        return cases[outcome]()

    def can_invoke(self, instance: ResourceInstance, operation_name: str) -> bool:
        """Whether the operation's precondition holds in the instance's current state."""
        operation = self.operations.get_operation(instance.kind, operation_name)
        return instance.usable and operation.allows(instance.state)

    def _action_failed(self, operation_name: str, cause: BaseException, context: ErrorContext) -> ActionFailed:
        logger.warning(
            "Action for %s failed in %s: %s: %s",
            operation_name,
            state_label(context.state),
            type(cause).__name__,
            cause,
        )
        return ActionFailed(
            message=f"Action for '{operation_name}' failed: {type(cause).__name__}: {cause}",
            context=context,
            cause=cause,
        )
