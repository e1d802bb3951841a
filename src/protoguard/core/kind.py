"""Resource kinds and the kind registry."""

from __future__ import annotations

import logging
from collections.abc import Callable, Hashable, Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any

from protoguard.core.state import StateFamily, StateSpace, state_label
from protoguard.errors import (
    DuplicateKindError,
    ErrorContext,
    InvalidStateError,
    UnknownKindError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResourceKind:
    """A named category of protocol-governed resource.

    Attributes:
        name: Unique name within a registry (e.g. "File").
        initial_state: State every new instance starts in unless told otherwise.
        terminal_states: States in which a session may legitimately end.
        space: The kind's state space.
        cleanup_operation: Operation the session runner attempts when a body
            exits early, to drive the resource back toward a terminal state.
        description: Human-readable description.
    """

    name: str
    initial_state: Hashable
    terminal_states: frozenset[Hashable]
    space: StateSpace = field(default_factory=StateSpace)
    cleanup_operation: str | None = None
    description: str = ""

    def is_terminal(self, state: Any) -> bool:
        try:
            return state in self.terminal_states
        except TypeError:
            return False

    def is_member(self, state: Any) -> bool:
        return state in self.space

    def __str__(self) -> str:
        return self.name


class KindRegistry:
    """Holds the resource kinds of one protocol.

    Example:
        kinds = KindRegistry()
        kinds.declare_kind(
            "File",
            initial_state=FileState.CLOSED,
            terminal_states={FileState.CLOSED},
            states=FileState,
        )
        kinds.is_terminal("File", FileState.CLOSED)  # True
    """

    def __init__(self) -> None:
        self._kinds: dict[str, ResourceKind] = {}

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
        """Register a resource kind.

        ``states`` lists a finite space (an Enum class works); ``families``
        and ``contains`` describe indexed or predicate-defined spaces. With
        none of them the space is open.

        Raises:
            DuplicateKindError: If a kind with this name already exists.
            InvalidStateError: If the initial or a terminal state is outside the space.
        """
        if name in self._kinds:
            raise DuplicateKindError(
                message=f"Resource kind '{name}' is already declared",
                context=ErrorContext(kind=name),
            )

        space = StateSpace(members=states or (), families=families, contains=contains)
        terminals = frozenset(terminal_states)

        for state in (initial_state, *terminals):
            if state not in space:
                raise InvalidStateError(
                    message=(
                        f"State {state_label(state)!r} is not in the state space "
                        f"{space.describe()} of kind '{name}'"
                    ),
                    context=ErrorContext(kind=name, state=state),
                )

        kind = ResourceKind(
            name=name,
            initial_state=initial_state,
            terminal_states=terminals,
            space=space,
            cleanup_operation=cleanup_operation,
            description=description,
        )
        self._kinds[name] = kind
        logger.debug(
            "Declared kind %s: initial=%s terminal=%s space=%s",
            name,
            state_label(initial_state),
            sorted(state_label(s) for s in terminals),
            space.describe(),
        )
        return kind

    def get_kind(self, kind: str | ResourceKind) -> ResourceKind:
        """Resolve a kind by name (or pass a ResourceKind through)."""
        name = kind.name if isinstance(kind, ResourceKind) else kind
        try:
            return self._kinds[name]
        except KeyError:
            raise UnknownKindError(
                message=f"Unknown resource kind '{name}'",
                context=ErrorContext(kind=name),
            ) from None

    def is_terminal(self, kind: str | ResourceKind, state: Any) -> bool:
        return self.get_kind(kind).is_terminal(state)

    def is_member(self, kind: str | ResourceKind, state: Any) -> bool:
        return self.get_kind(kind).is_member(state)

    def __contains__(self, name: object) -> bool:
        return name in self._kinds

    def __iter__(self) -> Iterator[ResourceKind]:
        return iter(self._kinds.values())

    def __len__(self) -> int:
        return len(self._kinds)
