"""Pytest fixtures for protoguard tests."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

import pytest

from protoguard import (
    KindRegistry,
    OperationRegistry,
    ProtocolChecker,
    ProtoguardSettings,
    ResourceProtocol,
    in_states,
    transition_table,
)
from protoguard.protocols import build_file_protocol, build_word_game_protocol


class Door(Enum):
    CLOSED = "closed"
    OPEN = "open"
    LOCKED = "locked"


class FlakyAction:
    """Action that raises for the first ``failures`` calls, then returns ``outcome``."""

    def __init__(self, outcome: Any, failures: int = 1, error: type[Exception] = OSError) -> None:
        self.outcome = outcome
        self.failures = failures
        self.error = error
        self.calls = 0

    def __call__(self) -> Any:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error(f"attempt {self.calls} failed")
        return self.outcome


@pytest.fixture(autouse=True)
def reset_protoguard_logger():
    """Undo configure_logging() so caplog sees protoguard records in every test."""
    yield
    logger = logging.getLogger("protoguard")
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "PROTOGUARD_MAX_REACHABLE_STATES",
        "PROTOGUARD_MAX_SESSION_STEPS",
        "PROTOGUARD_RECORD_HISTORY",
        "PROTOGUARD_LOG_LEVEL",
        "PROTOGUARD_LOG_JSON",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings() -> ProtoguardSettings:
    return ProtoguardSettings()


@pytest.fixture
def kinds() -> KindRegistry:
    registry = KindRegistry()
    registry.declare_kind(
        "Door",
        initial_state=Door.CLOSED,
        terminal_states={Door.CLOSED, Door.LOCKED},
        states=Door,
        cleanup_operation="shut",
    )
    return registry


@pytest.fixture
def operations(kinds: KindRegistry, settings: ProtoguardSettings) -> OperationRegistry:
    """Door operations: open may stick, shut always works, lock only when closed."""
    registry = OperationRegistry(kinds, settings)
    registry.register_operation(
        "Door",
        "open",
        precondition=in_states(Door.CLOSED),
        outcomes={True, False},
        next_state=lambda state, opened: Door.OPEN if opened else state,
    )
    registry.register_operation(
        "Door",
        "shut",
        precondition=in_states(Door.OPEN),
        outcomes={None},
        next_state=transition_table({(Door.OPEN, None): Door.CLOSED}),
    )
    registry.register_operation(
        "Door",
        "lock",
        precondition=in_states(Door.CLOSED),
        outcomes={None},
        next_state=lambda state, _: Door.LOCKED,
    )
    return registry


@pytest.fixture
def checker(kinds: KindRegistry, operations: OperationRegistry) -> ProtocolChecker:
    return ProtocolChecker(kinds, operations)


@pytest.fixture
def file_protocol() -> ResourceProtocol:
    return build_file_protocol()


@pytest.fixture
def word_game() -> ResourceProtocol:
    return build_word_game_protocol(max_guesses=3, max_letters=4)
