"""protoguard - protocol-checked resource tracking.

protoguard lets a program declare resource kinds whose handles follow a
state machine, and checks every operation against it at run time. Each
operation has a precondition on the current state and a postcondition
that depends on the outcome the operation actually produced: ``open``
may succeed or fail, and only success moves the file to an open state.

Key Features:
    - Result-dependent transitions: next state = f(current state, outcome)
    - Totality checking: every reachable (state, outcome) pair must have a
      next state before an operation is accepted
    - Indexed state families for counting protocols (``Running(guesses, letters)``)
    - Sessions that only complete in a terminal state, with cleanup on early exit
    - Exclusive ownership of handles, moved only by explicit handoff

Example:
    >>> from protoguard.protocols import build_file_protocol, FileState, Mode
    >>> from protoguard import Call
    >>>
    >>> protocol = build_file_protocol()
    >>>
    >>> def script(session):
    ...     if session.state is FileState.CLOSED and not session.steps:
    ...         return Call("open", lambda: True, Mode.READ)
    ...     if session.state is FileState.READ_OPEN:
    ...         return Call("close", lambda: None)
    ...     return None
    >>>
    >>> result = protocol.run_session("File", FileState.CLOSED, script)
    >>> result.completed
    True
"""

from protoguard.config import ProtoguardSettings, load_settings
from protoguard.core import (
    NO_ARGUMENT,
    AbortReason,
    Aborted,
    Call,
    Completed,
    IndexedState,
    KindRegistry,
    Operation,
    OperationRegistry,
    ProtocolChecker,
    ResourceInstance,
    ResourceKind,
    Session,
    SessionResult,
    StateFamily,
    StateSpace,
    Step,
    TransitionGap,
    Witness,
    always,
    check_exhaustive,
    exhaustive,
    find,
    find_where,
    in_states,
    not_in_states,
    remove,
    state_label,
    transition_table,
    verify_steps,
)
from protoguard.errors import (
    ActionFailed,
    ConfigValidationError,
    DuplicateKindError,
    DuplicateOperationError,
    ErrorCode,
    ErrorContext,
    IncompleteTransitionError,
    InvalidArgumentError,
    InvalidStateError,
    NonExhaustiveBranchError,
    OwnershipError,
    PreconditionViolation,
    ProtoguardError,
    ReentrantInvocationError,
    RegistrationError,
    ResourceReleasedError,
    StaleWitnessError,
    TransitionUndefinedError,
    UnknownKindError,
    UnknownOperationError,
)
from protoguard.observability import configure_logging, log_context
from protoguard.protocol import ResourceProtocol
from protoguard.runner import SessionRunner

__version__ = "0.1.0"

__all__ = [
    # Protocol definition
    "ResourceProtocol",
    "KindRegistry",
    "OperationRegistry",
    "ResourceKind",
    "Operation",
    "TransitionGap",
    "StateSpace",
    "StateFamily",
    "IndexedState",
    "state_label",
    "always",
    "in_states",
    "not_in_states",
    "transition_table",
    # Checking
    "ProtocolChecker",
    "ResourceInstance",
    "Step",
    "NO_ARGUMENT",
    "exhaustive",
    "check_exhaustive",
    # Sessions
    "SessionRunner",
    "Session",
    "SessionResult",
    "Completed",
    "Aborted",
    "AbortReason",
    "Call",
    "verify_steps",
    # Witnesses
    "Witness",
    "find",
    "find_where",
    "remove",
    # Errors
    "ProtoguardError",
    "ErrorCode",
    "ErrorContext",
    "RegistrationError",
    "DuplicateKindError",
    "DuplicateOperationError",
    "IncompleteTransitionError",
    "InvalidStateError",
    "UnknownKindError",
    "UnknownOperationError",
    "PreconditionViolation",
    "OwnershipError",
    "ResourceReleasedError",
    "ReentrantInvocationError",
    "NonExhaustiveBranchError",
    "InvalidArgumentError",
    "ActionFailed",
    "StaleWitnessError",
    "ConfigValidationError",
    "TransitionUndefinedError",
    # Configuration & logging
    "ProtoguardSettings",
    "load_settings",
    "configure_logging",
    "log_context",
    "__version__",
]
