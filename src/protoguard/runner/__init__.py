"""Session Runner - drives checked operations to a terminal state."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from protoguard.config import ProtoguardSettings
from protoguard.core.checker import Action, ProtocolChecker
from protoguard.core.kind import ResourceKind
from protoguard.core.resource import ResourceInstance
from protoguard.core.session import AbortReason, Call, Session, SessionResult, new_session_id
from protoguard.core.state import state_label
from protoguard.errors import ActionFailed, ProtoguardError
from protoguard.observability.logging import log_context

logger = logging.getLogger(__name__)

Script = Callable[[Session], "Call | None"]
Body = Callable[[Session], Any]


def _unit() -> None:
    return None


class SessionRunner:
    """Runs sessions against resource instances.

    A session ends successfully only if its resource finishes in one of the
    kind's terminal states; anything else is reported as
    ``Aborted(AbortReason.PROTOCOL_NOT_COMPLETED)``.

    Example:
        def script(session):
            match session.state:
                case FileState.CLOSED if not session.steps:
                    return Call("open", fs.open_for_read, Mode.READ)
                case FileState.READ_OPEN:
                    return Call("close", fs.close)
            return None

        result = runner.run_session("File", FileState.CLOSED, script)
    """

    def __init__(self, checker: ProtocolChecker, settings: ProtoguardSettings | None = None) -> None:
        self.checker = checker
        self.settings = settings or checker.settings

    def open_session(
        self,
        kind: str | ResourceKind,
        initial_state: Any = None,
        session_id: str | None = None,
    ) -> Session:
        """Create a fresh instance owned by a new session."""
        resolved = self.checker.kinds.get_kind(kind)
        sid = session_id or new_session_id()
        session = Session(
            self.checker,
            self.checker.create(resolved, state=initial_state, owner=sid),
            session_id=sid,
        )
        logger.debug(
            "Opened session %s on %s in %s",
            session.id,
            session.instance.id,
            state_label(session.state),
        )
        return session

    def adopt(
        self,
        instance: ResourceInstance,
        previous_owner: Session | str | None,
        session_id: str | None = None,
    ) -> Session:
        """Start a new session on an existing instance through an explicit handoff.

        Raises:
            OwnershipError: If ``previous_owner`` does not own the instance.
        """
        session = Session(self.checker, instance, session_id=session_id)
        owner = previous_owner.id if isinstance(previous_owner, Session) else previous_owner
        instance.handoff(owner, session.id)
        logger.debug("Session %s adopted %s from %s", session.id, instance.id, owner)
        return session

    def run_session(
        self,
        kind: str | ResourceKind,
        initial_state: Any,
        script: Script,
    ) -> SessionResult:
        """Drive a session with a state-dependent control function.

        ``script(session)`` is called before every step and returns the next
        Call, or None to end the session. A failed action is recorded on the
        session (``session.last_failure``) and the script is consulted again,
        so it can retry or branch to error handling.

        Raises:
            PreconditionViolation, UnknownOperationError, TransitionUndefinedError:
                Protocol errors always propagate; the session is closed first.
        """
        session = self.open_session(kind, initial_state)
        limit = self.settings.max_session_steps
        attempts = 0

        with log_context(session=session.id, kind=session.kind.name):
            try:
                while True:
                    call = script(session)
                    if call is None:
                        break
                    if attempts >= limit:
                        logger.warning("Session %s exceeded %d steps", session.id, limit)
                        return session.close(AbortReason.STEP_LIMIT_EXCEEDED)
                    attempts += 1
                    try:
                        session.invoke(call.operation, call.action, call.argument)
                    except ActionFailed:
                        continue
            finally:
                if not session.closed:
                    session.close()

        assert session.result is not None
        return session.result

    def with_resource(
        self,
        kind: str | ResourceKind,
        initial_state: Any,
        body: Body,
        cleanup_action: Action | None = None,
    ) -> SessionResult:
        """Run ``body(session)`` and report whether it left the resource terminal.

        If ``body`` raises, the kind's cleanup operation is attempted (when
        declared and allowed in the current state) before the original
        exception propagates. A failing cleanup is logged, never raised.
        """
        session = self.open_session(kind, initial_state)

        with log_context(session=session.id, kind=session.kind.name):
            try:
                body(session)
            except BaseException:
                self._cleanup(session, cleanup_action or _unit)
                session.close()
                raise
            return session.close()

    def _cleanup(self, session: Session, action: Action) -> None:
        operation = session.kind.cleanup_operation
        if operation is None or session.closed or not session.owns_instance:
            return
        if session.kind.is_terminal(session.state):
            return
        try:
            if not session.can_invoke(operation):
                logger.info(
                    "Cleanup %s not allowed in %s; leaving %s as is",
                    operation,
                    state_label(session.state),
                    session.instance.id,
                )
                return
            session.invoke(operation, action)
            logger.info("Cleanup %s moved %s to %s", operation, session.instance.id, state_label(session.state))
        except ProtoguardError as e:
            logger.error("Cleanup %s failed on %s: %s", operation, session.instance.id, e)


__all__ = ["Body", "Script", "SessionRunner"]
