"""ResourceProtocol: kinds, operations, checker and runner behind one object."""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable
from typing import Any

from protoguard.config import ProtoguardSettings
from protoguard.core.checker import Action, ProtocolChecker
from protoguard.core.kind import KindRegistry, ResourceKind
from protoguard.core.operation import (
    NO_ARGUMENT,
    NextState,
    Operation,
    OperationRegistry,
    Precondition,
    always,
)
from protoguard.core.resource import ResourceInstance
from protoguard.core.session import Session, SessionResult
from protoguard.core.state import StateFamily
from protoguard.runner import Body, Script, SessionRunner


class ResourceProtocol:
    """A self-contained protocol definition.

    Each ResourceProtocol owns its own registries; there is no process-wide
    registry, so two protocols never share kinds, operations or instances.

    Example:
        protocol = ResourceProtocol("files")
        protocol.declare_kind("File", FileState.CLOSED, {FileState.CLOSED}, states=FileState)
        protocol.register_operation("File", "open", ...)

        result = protocol.run_session("File", FileState.CLOSED, script)
    """

    def __init__(self, name: str, settings: ProtoguardSettings | None = None) -> None:
        self.name = name
        self.settings = settings or ProtoguardSettings()
        self.kinds = KindRegistry()
        self.operations = OperationRegistry(self.kinds, self.settings)
        self.checker = ProtocolChecker(self.kinds, self.operations, self.settings)
        self.runner = SessionRunner(self.checker, self.settings)

    # -- declaration -------------------------------------------------------

    def declare_kind(
        self,
        name: str,
        initial_state: Hashable,
        terminal_states: Iterable[Hashable],
        states: Iterable[Hashable] | None = None,
        families: Iterable[StateFamily] = (),
        contains: Callable[[Any], bool] | None = None,
        cleanup_operation: str | None = None,
        description: str = "",
    ) -> ResourceKind:
        return self.kinds.declare_kind(
            name,
            initial_state,
            terminal_states,
            states=states,
            families=families,
            contains=contains,
            cleanup_operation=cleanup_operation,
            description=description,
        )

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
        return self.operations.register_operation(
            kind,
            name,
            precondition=precondition,
            outcomes=outcomes,
            next_state=next_state,
            arguments=arguments,
            parameterized=parameterized,
            description=description,
        )

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
        return self.operations.operation(
            kind,
            name,
            outcomes=outcomes,
            precondition=precondition,
            arguments=arguments,
            parameterized=parameterized,
            description=description,
        )

    # -- queries -----------------------------------------------------------

    def get_kind(self, kind: str | ResourceKind) -> ResourceKind:
        return self.kinds.get_kind(kind)

    def is_terminal(self, kind: str | ResourceKind, state: Any) -> bool:
        return self.kinds.is_terminal(kind, state)

    def get_operation(self, kind: str | ResourceKind, name: str) -> Operation:
        return self.operations.get_operation(kind, name)

    # -- running -----------------------------------------------------------

    def create(self, kind: str | ResourceKind, state: Any = None, owner: str | None = None) -> ResourceInstance:
        return self.checker.create(kind, state=state, owner=owner)

    def invoke(
        self,
        instance: ResourceInstance,
        operation: str,
        action: Action,
        argument: Any = NO_ARGUMENT,
        owner: str | None = None,
    ) -> Any:
        return self.checker.invoke(instance, operation, action, argument=argument, owner=owner)

    def open_session(self, kind: str | ResourceKind, initial_state: Any = None) -> Session:
        return self.runner.open_session(kind, initial_state)

    def run_session(self, kind: str | ResourceKind, initial_state: Any, script: Script) -> SessionResult:
        return self.runner.run_session(kind, initial_state, script)

    def with_resource(
        self,
        kind: str | ResourceKind,
        initial_state: Any,
        body: Body,
        cleanup_action: Action | None = None,
    ) -> SessionResult:
        return self.runner.with_resource(kind, initial_state, body, cleanup_action=cleanup_action)

    def __repr__(self) -> str:
        return f"<ResourceProtocol {self.name!r} kinds={[k.name for k in self.kinds]}>"
