"""Tests for the session runner."""

from __future__ import annotations

import logging

import pytest

from protoguard import (
    AbortReason,
    Aborted,
    Call,
    Completed,
    KindRegistry,
    OperationRegistry,
    OwnershipError,
    PreconditionViolation,
    ProtocolChecker,
    ProtoguardSettings,
    Session,
    StaleWitnessError,
    find,
    remove,
)
from protoguard.runner import SessionRunner
from tests.conftest import Door, FlakyAction


@pytest.fixture
def runner(checker: ProtocolChecker) -> SessionRunner:
    return SessionRunner(checker)


class TestRunSession:
    """Tests for SessionRunner.run_session."""

    def test_script_reaching_terminal_state_completes(self, runner: SessionRunner) -> None:
        def script(session: Session) -> Call | None:
            match session.state:
                case Door.CLOSED if not session.steps:
                    return Call("open", lambda: True)
                case Door.OPEN:
                    return Call("shut", lambda: None)
            return None

        result = runner.run_session("Door", Door.CLOSED, script)

        assert isinstance(result, Completed)
        assert [s.operation for s in result.steps] == ["open", "shut"]
        assert result.session.instance.released

    def test_script_stopping_early_aborts(self, runner: SessionRunner) -> None:
        def script(session: Session) -> Call | None:
            return None if session.steps else Call("open", lambda: True)

        result = runner.run_session("Door", Door.CLOSED, script)

        assert isinstance(result, Aborted)
        assert result.reason is AbortReason.PROTOCOL_NOT_COMPLETED
        assert result.final_state is Door.OPEN

    def test_script_sees_outcomes(self, runner: SessionRunner) -> None:
        attempts = iter([False, False, True])

        def script(session: Session) -> Call | None:
            if session.state is Door.OPEN:
                return Call("shut", lambda: None)
            if session.steps and session.steps[-1].operation == "shut":
                return None
            return Call("open", lambda: next(attempts))

        result = runner.run_session("Door", Door.CLOSED, script)

        assert result.completed
        assert [s.outcome for s in result.steps] == [False, False, True, None]

    def test_failed_action_lets_script_retry(self, runner: SessionRunner) -> None:
        opener = FlakyAction(True, failures=2)

        def script(session: Session) -> Call | None:
            if session.state is Door.CLOSED and not session.steps:
                return Call("open", opener)
            if session.state is Door.OPEN:
                return Call("shut", lambda: None)
            return None

        result = runner.run_session("Door", Door.CLOSED, script)

        assert result.completed
        assert opener.calls == 3
        assert len(result.session.failures) == 2

    def test_library_error_in_action_lets_script_retry(self, runner: SessionRunner) -> None:
        keys = ["front"]
        stale = find(keys, "front")
        keys.append("back")

        def script(session: Session) -> Call | None:
            if session.state is Door.OPEN:
                return Call("shut", lambda: None)
            if session.steps:
                return None
            if session.last_failure is None:
                return Call("open", lambda: remove(keys, stale))
            return Call("open", lambda: True)

        result = runner.run_session("Door", Door.CLOSED, script)

        assert result.completed
        assert len(result.session.failures) == 1
        assert isinstance(result.session.failures[0].cause, StaleWitnessError)
        assert keys == ["front", "back"]

    def test_protocol_error_propagates_after_closing(self, runner: SessionRunner) -> None:
        sessions: list[Session] = []

        def script(session: Session) -> Call | None:
            sessions.append(session)
            return Call("shut", lambda: None)

        with pytest.raises(PreconditionViolation):
            runner.run_session("Door", Door.CLOSED, script)

        assert sessions[0].closed
        assert sessions[0].instance.released

    def test_step_limit(self, kinds: KindRegistry, operations: OperationRegistry) -> None:
        runner = SessionRunner(
            ProtocolChecker(kinds, operations),
            ProtoguardSettings(max_session_steps=5),
        )

        result = runner.run_session("Door", Door.CLOSED, lambda session: Call("open", lambda: False))

        assert isinstance(result, Aborted)
        assert result.reason is AbortReason.STEP_LIMIT_EXCEEDED
        assert len(result.steps) == 5
        assert result.final_state is Door.CLOSED


class TestWithResource:
    """Tests for scoped acquisition with cleanup on early exit."""

    def test_body_completing_protocol(self, runner: SessionRunner) -> None:
        def body(session: Session) -> None:
            session.invoke("open", lambda: True)
            session.invoke("shut", lambda: None)

        result = runner.with_resource("Door", Door.CLOSED, body)

        assert isinstance(result, Completed)

    def test_body_leaving_resource_open_aborts(self, runner: SessionRunner) -> None:
        result = runner.with_resource("Door", Door.CLOSED, lambda s: s.invoke("open", lambda: True))

        assert isinstance(result, Aborted)
        assert result.final_state is Door.OPEN

    def test_cleanup_runs_before_failure_propagates(self, runner: SessionRunner) -> None:
        sessions: list[Session] = []
        cleanup_calls = []

        def body(session: Session) -> None:
            sessions.append(session)
            session.invoke("open", lambda: True)
            raise RuntimeError("body failed")

        with pytest.raises(RuntimeError, match="body failed"):
            runner.with_resource(
                "Door", Door.CLOSED, body, cleanup_action=lambda: cleanup_calls.append("shut")
            )

        session = sessions[0]
        assert cleanup_calls == ["shut"]
        assert session.steps[-1].operation == "shut"
        assert isinstance(session.result, Completed)

    def test_cleanup_skipped_when_not_allowed(self, runner: SessionRunner) -> None:
        sessions: list[Session] = []

        def body(session: Session) -> None:
            sessions.append(session)
            raise ValueError("nothing opened")

        with pytest.raises(ValueError):
            runner.with_resource("Door", Door.CLOSED, body)

        assert sessions[0].steps == []
        assert sessions[0].result.completed

    def test_failing_cleanup_is_logged_not_raised(
        self, runner: SessionRunner, caplog: pytest.LogCaptureFixture
    ) -> None:
        sessions: list[Session] = []

        def body(session: Session) -> None:
            sessions.append(session)
            session.invoke("open", lambda: True)
            raise RuntimeError("body failed")

        def broken_cleanup() -> None:
            raise OSError("disk gone")

        with caplog.at_level(logging.ERROR, logger="protoguard"):
            with pytest.raises(RuntimeError, match="body failed"):
                runner.with_resource("Door", Door.CLOSED, body, cleanup_action=broken_cleanup)

        assert "Cleanup shut failed" in caplog.text
        assert isinstance(sessions[0].result, Aborted)
        assert sessions[0].result.final_state is Door.OPEN


class TestAdopt:
    def test_adopt_requires_current_owner(self, runner: SessionRunner) -> None:
        first = runner.open_session("Door")

        with pytest.raises(OwnershipError):
            runner.adopt(first.instance, "someone-else")

        assert first.owns_instance
