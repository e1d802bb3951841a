"""Step dataclass: one committed, checked invocation."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from protoguard.core.state import state_label


@dataclass(frozen=True)
class Step:
    """A committed invocation: which operation ran, what it produced, where it led."""

    id: str
    operation: str
    outcome: Any
    entry_state: Any
    resulting_state: Any
    argument: Any = None
    duration_ms: float = 0.0
    timestamp: datetime = field(default_factory=datetime.now)

    @classmethod
    def create(
        cls,
        operation: str,
        outcome: Any,
        entry_state: Any,
        resulting_state: Any,
        argument: Any = None,
        duration_ms: float = 0.0,
    ) -> Step:
        """Create a step with a generated ID."""
        return cls(
            id=f"st_{uuid.uuid4().hex[:12]}",
            operation=operation,
            outcome=outcome,
            entry_state=entry_state,
            resulting_state=resulting_state,
            argument=argument,
            duration_ms=duration_ms,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "operation": self.operation,
            "argument": None if self.argument is None else repr(self.argument),
            "outcome": repr(self.outcome),
            "entry_state": state_label(self.entry_state),
            "resulting_state": state_label(self.resulting_state),
            "duration_ms": round(self.duration_ms, 3),
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        arg = "" if self.argument is None else f"({self.argument!r})"
        return (
            f"{state_label(self.entry_state)} --{self.operation}{arg}"
            f" => {self.outcome!r}--> {state_label(self.resulting_state)}"
        )
