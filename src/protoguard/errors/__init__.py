"""protoguard error handling.

Provides the exception hierarchy with error codes, structured context and
recovery suggestions for every way a protocol can be misdeclared or misused.
"""

from protoguard.errors.base import (
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

__all__ = [
    # Base
    "ProtoguardError",
    "ErrorCode",
    "ErrorContext",
    # Registration
    "RegistrationError",
    "DuplicateKindError",
    "DuplicateOperationError",
    "IncompleteTransitionError",
    "InvalidStateError",
    "UnknownKindError",
    # Invocation
    "UnknownOperationError",
    "PreconditionViolation",
    "OwnershipError",
    "ResourceReleasedError",
    "ReentrantInvocationError",
    "NonExhaustiveBranchError",
    "InvalidArgumentError",
    # Action
    "ActionFailed",
    # Collections
    "StaleWitnessError",
    # Configuration
    "ConfigValidationError",
    # Internal
    "TransitionUndefinedError",
]
