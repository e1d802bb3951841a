"""Resource instances: a kind bound to a current state."""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from protoguard.core.kind import ResourceKind
from protoguard.core.state import state_label
from protoguard.core.step import Step
from protoguard.errors import (
    ErrorContext,
    InvalidStateError,
    OwnershipError,
    ReentrantInvocationError,
    ResourceReleasedError,
)

logger = logging.getLogger(__name__)


class ResourceInstance:
    """A mutable binding of a resource kind to its current state.

    The state only changes through ProtocolChecker.invoke(), which holds the
    instance's lock for the whole invocation, so at most one transition is
    in flight per instance. An instance may be owned by one owner token
    (normally a session id); ownership moves only through handoff().

    Example:
        handle = ResourceInstance(file_kind)
        checker.invoke(handle, "open", lambda: True, Mode.READ)
        handle.state  # FileState.READ_OPEN
    """

    def __init__(
        self,
        kind: ResourceKind,
        state: Any = None,
        owner: str | None = None,
        resource_id: str | None = None,
        record_history: bool = True,
    ) -> None:
        initial = kind.initial_state if state is None else state
        if not kind.is_member(initial):
            raise InvalidStateError(
                message=f"{state_label(initial)!r} is not a state of kind '{kind.name}'",
                context=ErrorContext(kind=kind.name, state=initial),
            )
        self.kind = kind
        self.id = resource_id or f"{kind.name}#{uuid.uuid4().hex[:8]}"
        self.initial_state = initial
        self.record_history = record_history
        self._state = initial
        self._owner = owner
        self._released = False
        self._frozen = False
        self._history: list[Step] = []
        self._handoffs: list[tuple[str | None, str]] = []
        self._lock = threading.Lock()
        self._holder: int | None = None

    @property
    def state(self) -> Any:
        return self._state

    @property
    def owner(self) -> str | None:
        return self._owner

    @property
    def released(self) -> bool:
        return self._released

    @property
    def frozen(self) -> bool:
        """Whether a transition has carried the instance into a terminal state."""
        return self._frozen

    @property
    def usable(self) -> bool:
        return not (self._released or self._frozen)

    @property
    def history(self) -> tuple[Step, ...]:
        return tuple(self._history)

    @property
    def handoffs(self) -> tuple[tuple[str | None, str], ...]:
        return tuple(self._handoffs)

    def is_terminal(self) -> bool:
        return self.kind.is_terminal(self._state)

    def handoff(self, current_owner: str | None, new_owner: str) -> None:
        """Transfer ownership.

        Raises:
            OwnershipError: If ``current_owner`` does not own the instance.
            ResourceReleasedError: If the instance has been released.
        """
        with self.exclusive():
            self.ensure_usable(current_owner)
            self._handoffs.append((self._owner, new_owner))
            self._owner = new_owner
        logger.debug("Handed off %s from %s to %s", self.id, current_owner, new_owner)

    def release(self) -> None:
        """Freeze the instance; no operation may be invoked afterwards."""
        with self.exclusive():
            self._released = True
        logger.debug("Released %s in state %s", self.id, state_label(self._state))

    def ensure_usable(self, owner: str | None) -> None:
        """Check the instance is live and owned by ``owner``."""
        context = ErrorContext(kind=self.kind.name, resource_id=self.id, state=self._state)
        if self._released:
            raise ResourceReleasedError(
                message=f"{self.id} was released in state {state_label(self._state)}",
                context=context,
            )
        if self._frozen:
            raise ResourceReleasedError(
                message=f"{self.id} reached terminal state {state_label(self._state)} and is frozen",
                context=context,
            )
        if self._owner is not None and owner != self._owner:
            raise OwnershipError(
                message=f"{self.id} is owned by {self._owner}, not {owner}",
                context=context,
            )

    @contextmanager
    def exclusive(self) -> Iterator[None]:
        """Hold the instance lock; re-entry from the holding thread is an error."""
        me = threading.get_ident()
        if self._holder == me:
            raise ReentrantInvocationError(
                message=f"{self.id} already has a transition in flight on this thread",
                context=ErrorContext(kind=self.kind.name, resource_id=self.id, state=self._state),
            )
        with self._lock:
            self._holder = me
            try:
                yield
            finally:
                self._holder = None

    def commit(self, step: Step) -> None:
        """Record a step and move to its resulting state. Caller holds the lock.

        A step that moves the instance into a terminal state from another state
        freezes it. Steps that stay in a terminal state (a failed open of a
        closed file) leave it usable.
        """
        self._state = step.resulting_state
        if self.record_history:
            self._history.append(step)
        if step.resulting_state != step.entry_state and self.kind.is_terminal(step.resulting_state):
            self._frozen = True
            logger.debug("Froze %s in terminal state %s", self.id, state_label(self._state))

    def __repr__(self) -> str:
        flags = " released" if self._released else " frozen" if self._frozen else ""
        return f"<ResourceInstance {self.id} state={state_label(self._state)}{flags}>"
