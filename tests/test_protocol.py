"""Tests for the ResourceProtocol facade."""

from __future__ import annotations

import pytest

from protoguard import (
    Completed,
    ProtoguardSettings,
    ResourceProtocol,
    UnknownKindError,
    in_states,
)
from tests.conftest import Door


@pytest.fixture
def protocol() -> ResourceProtocol:
    protocol = ResourceProtocol("doors")
    protocol.declare_kind("Door", Door.CLOSED, {Door.CLOSED}, states=Door, cleanup_operation="shut")

    @protocol.operation("Door", outcomes={True, False}, precondition=in_states(Door.CLOSED))
    def open(state: Door, opened: bool) -> Door:  # noqa: A001
        return Door.OPEN if opened else state

    protocol.register_operation("Door", "shut", in_states(Door.OPEN), {None}, lambda s, _: Door.CLOSED)
    return protocol


class TestResourceProtocol:
    def test_protocols_are_independent(self, protocol: ResourceProtocol) -> None:
        other = ResourceProtocol("empty")

        with pytest.raises(UnknownKindError):
            other.get_kind("Door")
        assert protocol.get_kind("Door").name == "Door"

    def test_settings_shared_by_components(self) -> None:
        settings = ProtoguardSettings(max_session_steps=3)
        protocol = ResourceProtocol("doors", settings)

        assert protocol.operations.settings is settings
        assert protocol.checker.settings is settings
        assert protocol.runner.settings is settings

    def test_create_and_invoke(self, protocol: ResourceProtocol) -> None:
        door = protocol.create("Door")

        assert protocol.invoke(door, "open", lambda: True) is True
        assert not protocol.is_terminal("Door", door.state)

    def test_open_session(self, protocol: ResourceProtocol) -> None:
        session = protocol.open_session("Door")
        session.invoke("open", lambda: True)
        session.invoke("shut", lambda: None)

        assert session.close() == Completed(Door.CLOSED, session=None)

    def test_decorated_operation_registered(self, protocol: ResourceProtocol) -> None:
        assert protocol.get_operation("Door", "open").outcomes == frozenset({True, False})

    def test_repr(self, protocol: ResourceProtocol) -> None:
        assert repr(protocol) == "<ResourceProtocol 'doors' kinds=['Door']>"
