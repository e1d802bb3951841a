"""Exception hierarchy for protoguard.

Every protoguard error carries:
- error_code: an ErrorCode for programmatic handling
- context: ErrorContext naming the kind, resource, operation and state involved
- suggestions: actionable steps to resolve the problem
- recoverable: whether the caller can sensibly retry or branch

Errors are grouped the way a protocol is built and used:

- E1xx: registration errors, raised while a protocol is being declared
- E2xx: invocation errors, raised when a caller breaks the protocol
- E3xx: action errors, raised when the real-world action itself fails
- E4xx: collection errors from validated-index lookups
- E5xx: configuration errors
- E9xx: internal invariant breaches

Example:
    try:
        checker.invoke(handle, "read", do_read)
    except PreconditionViolation as e:
        print(f"{e.operation} is not allowed in state {e.state!r}")
    except ActionFailed as e:
        print(f"read failed: {e.cause}")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class ErrorCode(Enum):
    """Standardized error codes for protoguard."""

    # Registration errors (E1xx)
    DUPLICATE_KIND = "E101"
    DUPLICATE_OPERATION = "E102"
    INCOMPLETE_TRANSITION = "E103"
    INVALID_STATE = "E104"
    UNKNOWN_KIND = "E105"

    # Invocation errors (E2xx)
    UNKNOWN_OPERATION = "E201"
    PRECONDITION_VIOLATION = "E202"
    OWNERSHIP = "E203"
    RESOURCE_RELEASED = "E204"
    REENTRANT_INVOCATION = "E205"
    NON_EXHAUSTIVE_BRANCH = "E206"
    INVALID_ARGUMENT = "E207"

    # Action errors (E3xx)
    ACTION_FAILED = "E301"

    # Collection errors (E4xx)
    STALE_WITNESS = "E401"

    # Configuration errors (E5xx)
    INVALID_CONFIG = "E501"

    # Internal errors (E9xx)
    TRANSITION_UNDEFINED = "E901"
    UNKNOWN = "E999"

    @property
    def category(self) -> str:
        """Get the error category name."""
        code_num = int(self.value[1:])
        if code_num < 200:
            return "registration"
        elif code_num < 300:
            return "invocation"
        elif code_num < 400:
            return "action"
        elif code_num < 500:
            return "collection"
        elif code_num < 600:
            return "configuration"
        else:
            return "internal"


@dataclass
class ErrorContext:
    """Where in a protocol an error happened.

    Attributes:
        kind: Name of the resource kind.
        resource_id: Identifier of the resource instance.
        operation: Name of the operation being registered or invoked.
        state: The resource state at the time of the error.
        outcome: The outcome value produced by the action, if any.
        extra: Additional context-specific information.
        timestamp: When the error occurred.
    """

    kind: str | None = None
    resource_id: str | None = None
    operation: str | None = None
    state: Any = None
    outcome: Any = None
    extra: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        """Convert context to dictionary for serialization."""
        result = {
            "kind": self.kind,
            "resource_id": self.resource_id,
            "operation": self.operation,
            "state": repr(self.state) if self.state is not None else None,
            "outcome": repr(self.outcome) if self.outcome is not None else None,
            "extra": self.extra or None,
            "timestamp": self.timestamp.isoformat(),
        }
        return {k: v for k, v in result.items() if v is not None}

    def format_location(self) -> str:
        """Format the error location as a readable string."""
        parts = []
        if self.kind:
            parts.append(f"kind={self.kind}")
        if self.resource_id:
            parts.append(f"resource={self.resource_id}")
        if self.operation:
            parts.append(f"operation={self.operation}")
        return " > ".join(parts) if parts else "unknown location"


class ProtoguardError(Exception):
    """Base exception for all protoguard errors.

    Attributes:
        error_code: Unique ErrorCode for this error type
        message: Human-readable error description
        context: ErrorContext with protocol details
        suggestions: List of actionable steps to resolve the issue
        recoverable: Whether the caller can retry or branch around the error
        cause: The underlying exception (if any)
    """

    error_code: ErrorCode = ErrorCode.UNKNOWN
    default_message: str = "An unexpected error occurred"
    default_suggestions: list[str] = []
    default_recoverable: bool = False

    def __init__(
        self,
        message: str | None = None,
        error_code: ErrorCode | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
        recoverable: bool | None = None,
        suggestions: list[str] | None = None,
        **extra_context: Any,
    ) -> None:
        self.message = message or self.default_message
        self.error_code = error_code or self.error_code
        self.context = context or ErrorContext()
        self.cause = cause
        self.recoverable = self.default_recoverable if recoverable is None else recoverable
        self._suggestions = suggestions

        if extra_context:
            self.context.extra.update(extra_context)

        super().__init__(self.message)

    @property
    def suggestions(self) -> list[str]:
        """Get actionable suggestions for resolving this error."""
        if self._suggestions is not None:
            return self._suggestions
        return self.default_suggestions.copy()

    def __str__(self) -> str:
        parts = [f"[{self.error_code.value}] {self.message}"]

        location = self.context.format_location()
        if location != "unknown location":
            parts.append(f"at {location}")

        return " | ".join(parts)

    def format_verbose(self) -> str:
        """Format error with full details including suggestions."""
        lines = [
            f"Error [{self.error_code.value}]: {self.message}",
            "",
        ]

        location = self.context.format_location()
        if location != "unknown location":
            lines.append(f"Location: {location}")
        if self.context.state is not None:
            lines.append(f"State: {self.context.state!r}")
        if self.cause is not None:
            lines.append(f"Cause: {type(self.cause).__name__}: {self.cause}")

        if self.suggestions:
            lines.append("")
            lines.append("Suggestions:")
            for suggestion in self.suggestions:
                lines.append(f"  - {suggestion}")

        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for serialization."""
        return {
            "error_code": self.error_code.value,
            "error_type": self.__class__.__name__,
            "message": self.message,
            "recoverable": self.recoverable,
            "suggestions": self.suggestions,
            "context": self.context.to_dict(),
            "cause": str(self.cause) if self.cause else None,
        }


# ---------------------------------------------------------------------------
# Registration errors
# ---------------------------------------------------------------------------


class RegistrationError(ProtoguardError):
    """A protocol definition is malformed. Fatal at setup time."""


class DuplicateKindError(RegistrationError):
    """A resource kind with this name is already declared."""

    error_code = ErrorCode.DUPLICATE_KIND
    default_message = "Resource kind already declared"
    default_suggestions = [
        "Declare each resource kind exactly once per protocol",
        "Use a separate ResourceProtocol if you need an independent kind of the same name",
    ]


class DuplicateOperationError(RegistrationError):
    """An operation with this name is already registered for the kind."""

    error_code = ErrorCode.DUPLICATE_OPERATION
    default_message = "Operation already registered for this kind"
    default_suggestions = [
        "Operation names must be unique within a resource kind",
    ]


class IncompleteTransitionError(RegistrationError):
    """A postcondition function leaves some declared outcome without a next state."""

    error_code = ErrorCode.INCOMPLETE_TRANSITION
    default_message = "Postcondition is not total over the declared outcomes"
    default_suggestions = [
        "Return a next state for every value in the outcome space",
        "Make sure every returned state belongs to the kind's state space",
        "Tighten the precondition if the operation should not run in that state",
    ]


class InvalidStateError(RegistrationError):
    """A state lies outside its kind's declared state space."""

    error_code = ErrorCode.INVALID_STATE
    default_message = "State is not part of the kind's state space"
    default_suggestions = [
        "Check the states, families and contains= arguments passed to declare_kind",
    ]


class UnknownKindError(ProtoguardError):
    """No resource kind is declared under this name."""

    error_code = ErrorCode.UNKNOWN_KIND
    default_message = "Unknown resource kind"
    default_recoverable = True


# ---------------------------------------------------------------------------
# Invocation errors
# ---------------------------------------------------------------------------


class UnknownOperationError(ProtoguardError):
    """The operation is not registered for the instance's kind."""

    error_code = ErrorCode.UNKNOWN_OPERATION
    default_message = "Unknown operation"
    default_recoverable = True
    default_suggestions = [
        "Check the spelling of the operation name",
        "List registered operations with OperationRegistry.operations_for(kind)",
    ]


class PreconditionViolation(ProtoguardError):
    """An operation was invoked in a state its precondition forbids.

    The action was not run and the resource state is unchanged.
    """

    error_code = ErrorCode.PRECONDITION_VIOLATION
    default_message = "Operation precondition does not hold"
    default_suggestions = [
        "Branch on the outcome of the previous operation before invoking this one",
        "Check the resource state with the session trace",
    ]

    def __init__(self, operation: str, state: Any, message: str | None = None, **kwargs: Any) -> None:
        self.operation = operation
        self.state = state
        context = kwargs.pop("context", None) or ErrorContext()
        context.operation = context.operation or operation
        context.state = state
        super().__init__(
            message=message or f"Cannot invoke '{operation}' in state {state!r}",
            context=context,
            **kwargs,
        )


class OwnershipError(ProtoguardError):
    """The caller does not own the resource instance."""

    error_code = ErrorCode.OWNERSHIP
    default_message = "Resource instance is owned by another session"
    default_suggestions = [
        "Transfer ownership explicitly with ResourceInstance.handoff()",
    ]


class ResourceReleasedError(ProtoguardError):
    """The resource instance was released when its session ended."""

    error_code = ErrorCode.RESOURCE_RELEASED
    default_message = "Resource instance has been released"


class ReentrantInvocationError(ProtoguardError):
    """An action tried to invoke an operation on its own resource instance."""

    error_code = ErrorCode.REENTRANT_INVOCATION
    default_message = "Re-entrant invocation on a resource instance"
    default_suggestions = [
        "Only one transition may be in flight per resource instance",
        "Return the outcome and invoke the next operation from the caller",
    ]


class NonExhaustiveBranchError(ProtoguardError):
    """Outcome handlers do not cover exactly the operation's outcome space."""

    error_code = ErrorCode.NON_EXHAUSTIVE_BRANCH
    default_message = "Outcome handlers are not exhaustive"

    def __init__(
        self,
        operation: str,
        missing: frozenset[Any] = frozenset(),
        unexpected: frozenset[Any] = frozenset(),
        **kwargs: Any,
    ) -> None:
        self.operation = operation
        self.missing = missing
        self.unexpected = unexpected
        details = []
        if missing:
            details.append(f"missing {sorted(map(repr, missing))}")
        if unexpected:
            details.append(f"unexpected {sorted(map(repr, unexpected))}")
        super().__init__(
            message=f"Handlers for '{operation}' are not exhaustive: {', '.join(details)}",
            context=ErrorContext(operation=operation),
            **kwargs,
        )


class InvalidArgumentError(ProtoguardError):
    """An operation was invoked with a missing, unexpected or undeclared argument."""

    error_code = ErrorCode.INVALID_ARGUMENT
    default_message = "Invalid operation argument"
    default_recoverable = True


# ---------------------------------------------------------------------------
# Action errors
# ---------------------------------------------------------------------------


class ActionFailed(ProtoguardError):
    """The supplied action failed before producing an outcome.

    The protocol was followed; the resource state is unchanged.
    """

    error_code = ErrorCode.ACTION_FAILED
    default_message = "Action failed before producing an outcome"
    default_recoverable = True
    default_suggestions = [
        "Retry the operation or branch to an error-handling step",
    ]


# ---------------------------------------------------------------------------
# Collection errors
# ---------------------------------------------------------------------------


class StaleWitnessError(ProtoguardError):
    """A witness no longer matches the container it was obtained from."""

    error_code = ErrorCode.STALE_WITNESS
    default_message = "Witness is stale"
    default_recoverable = True
    default_suggestions = [
        "Look the element up again with find() after mutating the container",
    ]


# ---------------------------------------------------------------------------
# Configuration errors
# ---------------------------------------------------------------------------


class ConfigValidationError(ProtoguardError):
    """Configuration file or environment contains invalid values."""

    error_code = ErrorCode.INVALID_CONFIG
    default_message = "Invalid configuration"
    default_suggestions = [
        "Check the YAML syntax of the configuration file",
        "Check PROTOGUARD_* environment variables",
    ]

    def __init__(
        self,
        message: str | None = None,
        field: str | None = None,
        value: Any = None,
        **kwargs: Any,
    ) -> None:
        self.field = field
        self.value = value
        super().__init__(message=message, **kwargs)

    def __str__(self) -> str:
        base = super().__str__()
        if self.field:
            base = f"{base} (field: {self.field})"
        return base

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["field"] = self.field
        result["value"] = repr(self.value)
        return result


# ---------------------------------------------------------------------------
# Internal errors
# ---------------------------------------------------------------------------


class TransitionUndefinedError(ProtoguardError):
    """A postcondition produced no valid next state at invocation time.

    Registration validation should make this impossible; it signals a bug
    in the protocol definition that escaped the static check.
    """

    error_code = ErrorCode.TRANSITION_UNDEFINED
    default_message = "No transition defined for this outcome"
    default_suggestions = [
        "Declare the outcome in the operation's outcome space",
        "Make the postcondition total over every reachable state",
    ]
