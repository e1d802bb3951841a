"""Operations and the operation registry.

An operation is one protocol action on a resource kind. It carries:

- a precondition over the current state,
- a finite outcome space (the values its action may produce),
- a postcondition ``next_state(state, outcome)`` giving the state that
  follows each outcome.

The next state depends on the outcome the action actually produced, so a
caller only learns where the resource went by looking at that outcome.

Operations may take one argument (``open(mode)``). Their postcondition is
then called as ``next_state(state, outcome, argument)``; declaring the
argument space lets registration check every argument too.

Registration checks totality. The registry walks the kind's reachable
states breadth-first from its initial state over every registered
operation, and for each state an operation accepts, every declared outcome
must map to a state inside the kind's space. The walk is bounded by
``max_reachable_states``; anything beyond the bound is checked when the
operation is invoked.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable, Hashable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from protoguard.config import ProtoguardSettings
from protoguard.core.kind import KindRegistry, ResourceKind
from protoguard.core.state import state_label
from protoguard.errors import (
    DuplicateOperationError,
    ErrorContext,
    IncompleteTransitionError,
    InvalidArgumentError,
    TransitionUndefinedError,
    UnknownOperationError,
)

logger = logging.getLogger(__name__)


class _NoArgument:
    """Marker for an invocation that passes no argument."""

    def __repr__(self) -> str:
        return "NO_ARGUMENT"

    def __bool__(self) -> bool:
        return False


NO_ARGUMENT: Any = _NoArgument()

Precondition = Callable[[Any], bool]
NextState = Callable[..., Any]


def always(state: Any) -> bool:  # noqa: ARG001
    """Precondition that accepts every state."""
    return True


def in_states(*states: Hashable) -> Precondition:
    """Precondition that holds in any of the given states."""
    allowed = frozenset(states)

    def check(state: Any) -> bool:
        try:
            return state in allowed
        except TypeError:
            return False

    check.__name__ = f"in_states({', '.join(state_label(s) for s in states)})"
    return check


def not_in_states(*states: Hashable) -> Precondition:
    """Precondition that holds outside the given states."""
    inner = in_states(*states)

    def check(state: Any) -> bool:
        return not inner(state)

    check.__name__ = f"not_in_states({', '.join(state_label(s) for s in states)})"
    return check


def transition_table(mapping: Mapping[tuple[Any, ...], Any]) -> NextState:
    """Build a postcondition from an explicit transition table.

    Keys are ``(state, outcome)`` for plain operations and
    ``(state, outcome, argument)`` for parameterised ones. A missing key
    raises KeyError, which the registry reports as an incomplete transition.

    Example:
        next_state = transition_table({
            (Door.CLOSED, True): Door.OPEN,
            (Door.CLOSED, False): Door.CLOSED,
        })
    """
    table = dict(mapping)

    def next_state(state: Any, outcome: Any, *argument: Any) -> Any:
        return table[(state, outcome, *argument)]

    next_state.__name__ = "transition_table"
    return next_state


@dataclass(frozen=True)
class Operation:
    """A protocol action registered against a resource kind.

    Attributes:
        kind: The resource kind this operation acts on.
        name: Unique name within the kind.
        precondition: Predicate the current state must satisfy.
        outcomes: The declared outcome space.
        next_state: Postcondition mapping (state, outcome[, argument]) to the next state.
        arguments: Declared argument space of a parameterised operation, if known.
        parameterized: Whether the operation takes an argument.
        description: Human-readable description.
    """

    kind: ResourceKind
    name: str
    precondition: Precondition
    outcomes: frozenset[Any]
    next_state: NextState
    arguments: frozenset[Any] | None = None
    parameterized: bool = False
    description: str = ""

    @property
    def enumerable(self) -> bool:
        """Whether every (argument, outcome) pair can be listed for a static check."""
        return not self.parameterized or self.arguments is not None

    def allows(self, state: Any) -> bool:
        """Evaluate the precondition in ``state``."""
        return bool(self.precondition(state))

    def argument_choices(self) -> Iterable[Any]:
        if not self.parameterized:
            return (NO_ARGUMENT,)
        return self.arguments or ()

    def check_argument(self, argument: Any) -> None:
        """Validate an invocation argument against the operation's signature.

        Raises:
            InvalidArgumentError: If the argument is missing, unexpected or undeclared.
        """
        context = ErrorContext(kind=self.kind.name, operation=self.name)
        if not self.parameterized:
            if argument is not NO_ARGUMENT:
                raise InvalidArgumentError(
                    message=f"Operation '{self.name}' takes no argument, got {argument!r}",
                    context=context,
                )
            return
        if argument is NO_ARGUMENT:
            raise InvalidArgumentError(
                message=f"Operation '{self.name}' requires an argument",
                context=context,
            )
        if self.arguments is not None and argument not in self.arguments:
            raise InvalidArgumentError(
                message=(
                    f"Argument {argument!r} is not one of the declared arguments "
                    f"{sorted(map(state_label, self.arguments))} of '{self.name}'"
                ),
                context=context,
            )

    def successor(self, state: Any, outcome: Any, argument: Any = NO_ARGUMENT) -> Any:
        """Apply the postcondition.

        Raises:
            TransitionUndefinedError: If the outcome is undeclared, the postcondition
                raises or has no mapping for it, or the result lies outside the kind's space.
        """
        context = ErrorContext(
            kind=self.kind.name,
            operation=self.name,
            state=state,
            outcome=outcome,
        )
        if argument is not NO_ARGUMENT:
            context.extra["argument"] = argument

        try:
            declared = outcome in self.outcomes
        except TypeError:
            declared = False
        if not declared:
            raise TransitionUndefinedError(
                message=f"Outcome {outcome!r} is not in the outcome space of '{self.name}'",
                context=context,
            )

        try:
            if self.parameterized:
                result = self.next_state(state, outcome, argument)
            else:
                result = self.next_state(state, outcome)
        except Exception as e:
            raise TransitionUndefinedError(
                message=(
                    f"'{self.name}' defines no next state for outcome {outcome!r} "
                    f"in state {state_label(state)}: {e}"
                ),
                context=context,
                cause=e,
            ) from e

        if result is None:
            raise TransitionUndefinedError(
                message=(
                    f"'{self.name}' returned no next state for outcome {outcome!r} "
                    f"in state {state_label(state)}"
                ),
                context=context,
            )
        if not self.kind.is_member(result):
            raise TransitionUndefinedError(
                message=(
                    f"'{self.name}' moved {state_label(state)} to {state_label(result)}, "
                    f"which is outside the state space {self.kind.space.describe()}"
                ),
                context=context,
            )
        return result

    def __str__(self) -> str:
        if self.parameterized:
            return f"{self.kind.name}.{self.name}(arg)"
        return f"{self.kind.name}.{self.name}"


@dataclass
class TransitionGap:
    """A (state, outcome) pair for which an operation has no valid next state."""

    operation: str
    state: Any
    outcome: Any
    argument: Any
    reason: str

    def describe(self) -> str:
        arg = "" if self.argument is NO_ARGUMENT else f"({self.argument!r})"
        return f"{self.operation}{arg} in {state_label(self.state)} with outcome {self.outcome!r}: {self.reason}"


@dataclass
class Closure:
    """Result of walking a kind's reachable states."""

    states: set[Any] = field(default_factory=set)
    gaps: list[TransitionGap] = field(default_factory=list)
    truncated: bool = False


class OperationRegistry:
    """Catalogue of operations usable against each resource kind.

    Example:
        ops = OperationRegistry(kinds)
        ops.register_operation(
            "File", "close",
            precondition=not_in_states(FileState.CLOSED),
            outcomes={None},
            next_state=lambda state, _: FileState.CLOSED,
        )
    """

    def __init__(self, kinds: KindRegistry, settings: ProtoguardSettings | None = None) -> None:
        self.kinds = kinds
        self.settings = settings or ProtoguardSettings()
        self._operations: dict[str, dict[str, Operation]] = {}

    def register_operation(
        self,
        kind: str | ResourceKind,
        name: str,
        precondition: Precondition,
        outcomes: Iterable[Any],
        next_state: NextState,
        arguments: Iterable[Any] | None = None,
        parameterized: bool | None = None,
        description: str = "",
    ) -> Operation:
        """Register an operation after checking its postcondition is total.

        Args:
            kind: Kind name or ResourceKind.
            name: Operation name, unique within the kind.
            precondition: Predicate over the current state.
            outcomes: The finite outcome space.
            next_state: Postcondition ``(state, outcome[, argument]) -> state``.
            arguments: Argument space of a parameterised operation.
            parameterized: Whether the operation takes an argument. Defaults to
                ``arguments is not None``; pass True with no arguments for an
                open argument space, checked at invocation only.
            description: Human-readable description.

        Raises:
            DuplicateOperationError: If the kind already has an operation of this name.
            IncompleteTransitionError: If some reachable (state, outcome) pair has no
                valid next state. The operation is not registered.
        """
        resolved = self.kinds.get_kind(kind)
        existing = self._operations.setdefault(resolved.name, {})
        if name in existing:
            raise DuplicateOperationError(
                message=f"Operation '{name}' is already registered for kind '{resolved.name}'",
                context=ErrorContext(kind=resolved.name, operation=name),
            )

        outcome_space = frozenset(outcomes)
        if not outcome_space:
            raise IncompleteTransitionError(
                message=f"Operation '{name}' declares an empty outcome space",
                context=ErrorContext(kind=resolved.name, operation=name),
            )

        argument_space = frozenset(arguments) if arguments is not None else None
        if parameterized is None:
            parameterized = argument_space is not None

        operation = Operation(
            kind=resolved,
            name=name,
            precondition=precondition,
            outcomes=outcome_space,
            next_state=next_state,
            arguments=argument_space,
            parameterized=parameterized,
            description=description,
        )

        closure = self._closure(resolved, [*existing.values(), operation])
        if closure.gaps:
            shown = "; ".join(gap.describe() for gap in closure.gaps[:5])
            more = f" (and {len(closure.gaps) - 5} more)" if len(closure.gaps) > 5 else ""
            first = closure.gaps[0]
            raise IncompleteTransitionError(
                message=f"Registering '{name}' on '{resolved.name}' leaves transitions undefined: {shown}{more}",
                context=ErrorContext(
                    kind=resolved.name,
                    operation=first.operation,
                    state=first.state,
                    outcome=first.outcome,
                    extra={"gaps": len(closure.gaps)},
                ),
            )

        existing[name] = operation
        if closure.truncated:
            logger.info(
                "Reachable states of %s exceed %d; transitions beyond the bound are checked at invocation",
                resolved.name,
                self.settings.max_reachable_states,
            )
        logger.debug(
            "Registered %s with %d outcome(s); %d reachable state(s)",
            operation,
            len(outcome_space),
            len(closure.states),
        )
        return operation

    def operation(
        self,
        kind: str | ResourceKind,
        name: str | None = None,
        *,
        outcomes: Iterable[Any],
        precondition: Precondition = always,
        arguments: Iterable[Any] | None = None,
        parameterized: bool | None = None,
        description: str = "",
    ) -> Callable[[NextState], NextState]:
        """Decorator form of register_operation; the function is the postcondition.

        Example:
            @ops.operation("Game", outcomes={True, False}, precondition=can_guess)
            def guess(state, correct):
                ...
        """

        def decorator(fn: NextState) -> NextState:
            doc = (fn.__doc__ or "").strip().splitlines()
            self.register_operation(
                kind,
                name or fn.__name__,
                precondition=precondition,
                outcomes=outcomes,
                next_state=fn,
                arguments=arguments,
                parameterized=parameterized,
                description=description or (doc[0] if doc else ""),
            )
            return fn

        return decorator

    def get_operation(self, kind: str | ResourceKind, name: str) -> Operation:
        """Look up an operation.

        Raises:
            UnknownOperationError: If the kind has no operation of this name.
        """
        resolved = self.kinds.get_kind(kind)
        try:
            return self._operations.get(resolved.name, {})[name]
        except KeyError:
            known = sorted(self._operations.get(resolved.name, {}))
            raise UnknownOperationError(
                message=f"Kind '{resolved.name}' has no operation '{name}' (known: {', '.join(known) or 'none'})",
                context=ErrorContext(kind=resolved.name, operation=name),
            ) from None

    def operations_for(self, kind: str | ResourceKind) -> list[Operation]:
        resolved = self.kinds.get_kind(kind)
        return list(self._operations.get(resolved.name, {}).values())

    def reachable_states(self, kind: str | ResourceKind) -> frozenset[Any]:
        """States reachable from the kind's initial state, up to the closure bound."""
        resolved = self.kinds.get_kind(kind)
        return frozenset(self._closure(resolved, self.operations_for(resolved)).states)

    def check_totality(self, kind: str | ResourceKind) -> list[TransitionGap]:
        """Re-run the totality check for a kind and return every gap found."""
        resolved = self.kinds.get_kind(kind)
        return self._closure(resolved, self.operations_for(resolved)).gaps

    def transitions(self, kind: str | ResourceKind) -> Iterator[tuple[Any, Operation, Any, Any, Any]]:
        """Yield (state, operation, argument, outcome, next_state) over the reachable states."""
        resolved = self.kinds.get_kind(kind)
        operations = self.operations_for(resolved)
        for state in self._closure(resolved, operations).states:
            for op in operations:
                if not op.enumerable or not op.allows(state):
                    continue
                for argument in op.argument_choices():
                    for outcome in op.outcomes:
                        yield state, op, argument, outcome, op.successor(state, outcome, argument)

    def _closure(self, kind: ResourceKind, operations: list[Operation]) -> Closure:
        closure = Closure(states={kind.initial_state})
        queue: deque[Any] = deque([kind.initial_state])
        limit = self.settings.max_reachable_states

        while queue:
            state = queue.popleft()
            for op in operations:
                if not op.enumerable or not op.allows(state):
                    continue
                for argument in op.argument_choices():
                    for outcome in op.outcomes:
                        try:
                            successor = op.successor(state, outcome, argument)
                        except TransitionUndefinedError as e:
                            closure.gaps.append(
                                TransitionGap(op.name, state, outcome, argument, e.message)
                            )
                            continue
                        if successor in closure.states:
                            continue
                        if len(closure.states) >= limit:
                            closure.truncated = True
                            continue
                        closure.states.add(successor)
                        queue.append(successor)

        return closure
