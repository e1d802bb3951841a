"""Tests for resource kinds and the kind registry."""

from __future__ import annotations

import pytest

from protoguard import (
    DuplicateKindError,
    ErrorCode,
    InvalidStateError,
    KindRegistry,
    ResourceKind,
    StateFamily,
    UnknownKindError,
)
from tests.conftest import Door


class TestDeclareKind:
    """Tests for KindRegistry.declare_kind."""

    def test_declare_finite_kind(self) -> None:
        registry = KindRegistry()

        kind = registry.declare_kind("Door", Door.CLOSED, {Door.CLOSED}, states=Door)

        assert isinstance(kind, ResourceKind)
        assert kind.initial_state is Door.CLOSED
        assert kind.terminal_states == frozenset({Door.CLOSED})
        assert "Door" in registry
        assert len(registry) == 1

    def test_duplicate_kind_rejected(self) -> None:
        registry = KindRegistry()
        registry.declare_kind("Door", Door.CLOSED, {Door.CLOSED}, states=Door)

        with pytest.raises(DuplicateKindError) as exc_info:
            registry.declare_kind("Door", Door.OPEN, {Door.OPEN}, states=Door)

        assert exc_info.value.error_code is ErrorCode.DUPLICATE_KIND
        assert registry.get_kind("Door").initial_state is Door.CLOSED

    def test_initial_state_outside_space_rejected(self) -> None:
        registry = KindRegistry()

        with pytest.raises(InvalidStateError, match="not in the state space"):
            registry.declare_kind("Door", "ajar", {Door.CLOSED}, states=Door)

        assert "Door" not in registry

    def test_terminal_state_outside_space_rejected(self) -> None:
        registry = KindRegistry()

        with pytest.raises(InvalidStateError):
            registry.declare_kind("Door", Door.CLOSED, {"gone"}, states=Door)

    def test_indexed_kind(self) -> None:
        length = StateFamily("Length", ("n",))
        registry = KindRegistry()

        kind = registry.declare_kind("Buffer", length(0), {length(0)}, families=[length])

        assert kind.is_member(length(5))
        assert not kind.is_member(Door.OPEN)

    def test_open_kind_accepts_any_state(self) -> None:
        registry = KindRegistry()

        kind = registry.declare_kind("Counter", 0, {0})

        assert kind.space.is_open
        assert kind.is_member(99)


class TestKindLookup:
    """Tests for resolving kinds and terminal states."""

    def test_get_kind_by_name_or_object(self, kinds: KindRegistry) -> None:
        kind = kinds.get_kind("Door")

        assert kinds.get_kind(kind) is kind

    def test_unknown_kind(self, kinds: KindRegistry) -> None:
        with pytest.raises(UnknownKindError) as exc_info:
            kinds.get_kind("Window")

        assert exc_info.value.recoverable is True
        assert exc_info.value.context.kind == "Window"

    def test_is_terminal(self, kinds: KindRegistry) -> None:
        assert kinds.is_terminal("Door", Door.CLOSED)
        assert kinds.is_terminal("Door", Door.LOCKED)
        assert not kinds.is_terminal("Door", Door.OPEN)

    def test_is_terminal_unhashable_state(self, kinds: KindRegistry) -> None:
        assert not kinds.is_terminal("Door", [Door.CLOSED])

    def test_iteration(self, kinds: KindRegistry) -> None:
        assert [k.name for k in kinds] == ["Door"]
