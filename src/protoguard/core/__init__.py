"""Core module exports."""

from protoguard.core.checker import ProtocolChecker, check_exhaustive, exhaustive
from protoguard.core.kind import KindRegistry, ResourceKind
from protoguard.core.operation import (
    NO_ARGUMENT,
    Operation,
    OperationRegistry,
    TransitionGap,
    always,
    in_states,
    not_in_states,
    transition_table,
)
from protoguard.core.resource import ResourceInstance
from protoguard.core.session import (
    AbortReason,
    Aborted,
    Call,
    Completed,
    Session,
    SessionResult,
    verify_steps,
)
from protoguard.core.state import IndexedState, StateFamily, StateSpace, state_label
from protoguard.core.step import Step
from protoguard.core.witness import Witness, find, find_where, remove

__all__ = [
    "AbortReason",
    "Aborted",
    "Call",
    "Completed",
    "IndexedState",
    "KindRegistry",
    "NO_ARGUMENT",
    "Operation",
    "OperationRegistry",
    "ProtocolChecker",
    "ResourceInstance",
    "ResourceKind",
    "Session",
    "SessionResult",
    "StateFamily",
    "StateSpace",
    "Step",
    "TransitionGap",
    "Witness",
    "always",
    "check_exhaustive",
    "exhaustive",
    "find",
    "find_where",
    "in_states",
    "not_in_states",
    "remove",
    "state_label",
    "transition_table",
    "verify_steps",
]
